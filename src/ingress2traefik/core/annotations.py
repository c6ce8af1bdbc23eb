"""One-to-one annotation mappers — SSL redirect, upstream vhost, redundant annotations."""

import logging

from ingress2traefik.core.constants import (
    BACKEND_PROTOCOL, ENABLE_OPENTELEMETRY, ENABLE_OPENTRACING, FORCE_SSL_REDIRECT,
    GRPC_BACKEND, HTTPS_REDIRECT_SUFFIX, PROXY_BUFFERING, SERVICE_UPSTREAM,
    SSL_REDIRECT, UPSTREAM_VHOST, UPSTREAM_VHOST_SUFFIX,
)
from ingress2traefik.pacts.helpers import new_headers_middleware, new_middleware
from ingress2traefik.pacts.types import ConvertContext

logger = logging.getLogger(__name__)

_OTEL_TRACING_EXAMPLE = """tracing:
  otlp:
    grpc:
      endpoint: otel-collector:4317"""


def ssl_redirect(ctx: ConvertContext) -> None:
    """Map ssl-redirect / force-ssl-redirect to a redirectScheme middleware."""
    logger.debug("running converter SSLRedirect")

    ssl = ctx.annotations.get(SSL_REDIRECT)
    force = ctx.annotations.get(FORCE_SSL_REDIRECT)
    if ssl != "true" and force != "true":
        return

    ctx.result.middlewares.append(
        new_middleware(ctx, HTTPS_REDIRECT_SUFFIX, {
            "redirectScheme": {"scheme": "https", "permanent": True},
        })
    )


def upstream_vhost(ctx: ConvertContext) -> None:
    """Map upstream-vhost to a Host request header override."""
    logger.debug("running converter UpstreamVHost")

    value = ctx.annotations.get(UPSTREAM_VHOST)
    if value is None or not value.strip():
        return

    ctx.result.middlewares.append(
        new_headers_middleware(ctx, UPSTREAM_VHOST_SUFFIX, {
            "customRequestHeaders": {"Host": value},
        })
    )


def extra_annotations(ctx: ConvertContext) -> None:
    """Warn about annotations that are redundant or global-only in Traefik."""
    logger.debug("running converter ExtraAnnotations")
    ann = ctx.annotations
    warnings = ctx.result.warnings

    if ann.get(PROXY_BUFFERING) == "off":
        warnings.append("proxy-buffering=off is default behavior in Traefik")
    if ann.get(SERVICE_UPSTREAM) == "true":
        warnings.append("service-upstream=true is default behavior in Traefik")
    if ann.get(ENABLE_OPENTRACING) == "true":
        warnings.append(
            "enable-opentracing is global in Traefik and cannot be enabled per Ingress")
    if ann.get(ENABLE_OPENTELEMETRY) == "true":
        warnings.append(
            "enable-opentelemetry must be configured globally in Traefik static config:\n"
            + _OTEL_TRACING_EXAMPLE)
    if ann.get(BACKEND_PROTOCOL):
        warnings.append(
            "backend-protocol must be applied to IngressRoute service scheme, "
            "check for generated ingressroutes.yaml")
    if ann.get(GRPC_BACKEND) == "true":
        warnings.append(
            "grpc-backend requires IngressRoute service scheme h2c or https+h2, "
            "check for generated ingressroutes.yaml")
