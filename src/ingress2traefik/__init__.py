"""ingress2traefik — convert ingress-nginx annotations to Traefik Middlewares and IngressRoutes."""

__version__ = "0.1.0"
