"""Constants shared across converters — annotation keys, API versions, suffixes."""

# Traefik CRD group/version for Middleware and IngressRoute objects
TRAEFIK_API_VERSION = "traefik.io/v1alpha1"

_NGINX_PREFIX = "nginx.ingress.kubernetes.io/"

# ingress-nginx annotations handled by the converters
CONFIGURATION_SNIPPET = _NGINX_PREFIX + "configuration-snippet"
SSL_REDIRECT = _NGINX_PREFIX + "ssl-redirect"
FORCE_SSL_REDIRECT = _NGINX_PREFIX + "force-ssl-redirect"
UPSTREAM_VHOST = _NGINX_PREFIX + "upstream-vhost"
PROXY_BUFFERING = _NGINX_PREFIX + "proxy-buffering"
SERVICE_UPSTREAM = _NGINX_PREFIX + "service-upstream"
ENABLE_OPENTRACING = _NGINX_PREFIX + "enable-opentracing"
ENABLE_OPENTELEMETRY = _NGINX_PREFIX + "enable-opentelemetry"
BACKEND_PROTOCOL = _NGINX_PREFIX + "backend-protocol"
GRPC_BACKEND = _NGINX_PREFIX + "grpc-backend"

# Fixed middleware name suffixes (<ingress-name>-<suffix>)
SNIPPET_HEADERS_SUFFIX = "snippet-headers"
CORS_SUFFIX = "cors"
HTTPS_REDIRECT_SUFFIX = "https-redirect"
UPSTREAM_VHOST_SUFFIX = "upstream-vhost"

# Methods used when a conditional CORS block names none
DEFAULT_CORS_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
