"""Ingress conversion — annotation converter dispatch, backend scheme, IngressRoute."""

import fnmatch
import logging

from ingress2traefik.core.annotations import extra_annotations, ssl_redirect, upstream_vhost
from ingress2traefik.core.constants import BACKEND_PROTOCOL, GRPC_BACKEND, TRAEFIK_API_VERSION
from ingress2traefik.core.snippet import configuration_snippet
from ingress2traefik.pacts.types import ConvertContext, ConverterError, ConvertResult

logger = logging.getLogger(__name__)

# Annotation converters, run in this order against every Ingress
_ANNOTATION_CONVERTERS = [
    configuration_snippet,
    ssl_redirect,
    upstream_vhost,
    extra_annotations,
]


def resolve_scheme(annotations: dict) -> str:
    """Return the IngressRoute service scheme for the backend-protocol annotations."""
    if annotations.get(GRPC_BACKEND) == "true":
        return "h2c"
    protocol = (annotations.get(BACKEND_PROTOCOL) or "").upper()
    if protocol in ("", "HTTP"):
        return "http"
    if protocol in ("HTTPS", "GRPCS"):
        return "https"
    if protocol == "GRPC":
        return "h2c"
    raise ConverterError("unsupported backend-protocol")


def entry_points_for_scheme(scheme: str) -> list[str]:
    """Traefik entry points an IngressRoute with this scheme listens on."""
    if scheme == "https":
        return ["websecure"]
    return ["web"]


def needs_ingress_route(annotations: dict) -> bool:
    """True if the annotations can only be expressed through an IngressRoute."""
    if annotations.get(GRPC_BACKEND) == "true":
        return True
    return BACKEND_PROTOCOL in annotations


def resolve_backend(path_entry: dict) -> tuple[str, int | str]:
    """Return (service name, port) for a path, v1 or v1beta1 backend format."""
    backend = path_entry.get("backend") or {}
    if "service" in backend:
        svc = backend["service"] or {}
        port = svc.get("port") or {}
        return svc.get("name", ""), port.get("number", port.get("name", 80))
    return backend.get("serviceName", ""), backend.get("servicePort", 80)


def _route_match(host: str, path: str, path_type: str | None = None) -> str:
    """Traefik rule matching a host (optional) and a path.

    `Exact` paths match only that path; every other pathType is a prefix.
    """
    matcher = "Path" if path_type == "Exact" else "PathPrefix"
    if host:
        return f"Host(`{host}`) && {matcher}(`{path}`)"
    return f"{matcher}(`{path}`)"


def build_ingress_route(ctx: ConvertContext, manifest: dict, scheme: str,
                        middlewares: list[dict]) -> dict:
    """Build an IngressRoute equivalent to the Ingress rules."""
    mw_refs = [{"name": m["metadata"]["name"], "namespace": m["metadata"]["namespace"]}
               for m in middlewares]
    routes = []
    for rule in (manifest.get("spec") or {}).get("rules") or []:
        host = rule.get("host", "")
        for path_entry in (rule.get("http") or {}).get("paths") or []:
            svc_name, svc_port = resolve_backend(path_entry)
            route = {
                "kind": "Rule",
                "match": _route_match(host, path_entry.get("path") or "/",
                                      path_entry.get("pathType")),
                "services": [{"name": svc_name, "port": svc_port, "scheme": scheme}],
            }
            # Fresh copies per route, shared objects dump as YAML aliases
            if mw_refs:
                route["middlewares"] = [dict(r) for r in mw_refs]
            routes.append(route)
    return {
        "apiVersion": TRAEFIK_API_VERSION,
        "kind": "IngressRoute",
        "metadata": {"name": ctx.name, "namespace": ctx.namespace},
        "spec": {
            "entryPoints": entry_points_for_scheme(scheme),
            "routes": routes,
        },
    }


def _is_excluded(name: str, exclude_list: list[str]) -> bool:
    """Check if an Ingress name matches any exclude pattern (supports wildcards)."""
    return any(fnmatch.fnmatch(name, pattern) for pattern in exclude_list)


class IngressConverter:
    """Convert Ingress manifests to Traefik Middlewares (+ IngressRoutes when needed)."""
    kinds = ["Ingress"]

    def convert(self, _kind: str, manifests: list[dict], result: ConvertResult,
                config: dict) -> None:
        """Convert all Ingress manifests, appending into the shared result."""
        exclude = config.get("exclude") or []
        for m in manifests:
            meta = m.get("metadata") or {}
            name = meta.get("name", "")
            if not name or _is_excluded(name, exclude):
                logger.debug("skipping Ingress %r", name)
                continue
            ctx = ConvertContext(
                name=name, namespace=meta.get("namespace", ""),
                annotations=meta.get("annotations") or {},
                result=result, config=config,
            )
            self._convert_one(m, ctx)

    @staticmethod
    def _convert_one(manifest: dict, ctx: ConvertContext) -> None:
        """Run every annotation converter for one Ingress."""
        first = len(ctx.result.middlewares)
        for converter in _ANNOTATION_CONVERTERS:
            converter(ctx)
        if not needs_ingress_route(ctx.annotations):
            return
        try:
            scheme = resolve_scheme(ctx.annotations)
        except ConverterError as e:
            protocol = ctx.annotations.get(BACKEND_PROTOCOL, "")
            ctx.result.warnings.append(
                f"Ingress '{ctx.name}': {e.message} '{protocol}', IngressRoute skipped")
            return
        ctx.result.ingress_routes.append(
            build_ingress_route(ctx, manifest, scheme, ctx.result.middlewares[first:]))
