"""Public helper functions available to converters."""

from ingress2traefik.core.constants import TRAEFIK_API_VERSION
from ingress2traefik.pacts.types import ConvertContext


def mw_name(ctx: ConvertContext, suffix: str) -> str:
    """Return the middleware name for an Ingress: '<name>-<suffix>'."""
    return f"{ctx.name}-{suffix}"


def new_middleware(ctx: ConvertContext, suffix: str, spec: dict) -> dict:
    """Build a Traefik Middleware manifest scoped to the Ingress namespace."""
    return {
        "apiVersion": TRAEFIK_API_VERSION,
        "kind": "Middleware",
        "metadata": {
            "name": mw_name(ctx, suffix),
            "namespace": ctx.namespace,
        },
        "spec": spec,
    }


def new_headers_middleware(ctx: ConvertContext, suffix: str, headers: dict) -> dict:
    """Build a Middleware whose only behavior is a headers payload."""
    return new_middleware(ctx, suffix, {"headers": headers})
