"""Main conversion orchestration — convert(), manifest indexing, kind dispatch."""

from ingress2traefik.core.ingress import IngressConverter
from ingress2traefik.pacts.types import ConvertResult

# Converter instances used by convert()
_CONVERTERS = []
_CONVERTERS.extend([IngressConverter()])

# All kinds handled by the converter pipeline; anything else is ignored
CONVERTED_KINDS = {k for c in _CONVERTERS for k in c.kinds}


def group_by_kind(documents: list[dict]) -> dict[str, list[dict]]:
    """Classify parsed YAML documents by kind, dropping non-mapping documents."""
    manifests: dict[str, list[dict]] = {}
    for doc in documents:
        if not doc or not isinstance(doc, dict):
            continue
        manifests.setdefault(doc.get("kind", "Unknown"), []).append(doc)
    return manifests


def convert(manifests: dict[str, list[dict]],
            config: dict) -> tuple[list[dict], list[dict], list[str]]:
    """Main conversion: returns (middlewares, ingress_routes, warnings).

    Converters run one after another against a single ConvertResult, so the
    append-only lists are never touched concurrently.
    """
    result = ConvertResult()
    for converter in _CONVERTERS:
        for kind in converter.kinds:
            converter.convert(kind, manifests.get(kind, []), result, config)
    return result.middlewares, result.ingress_routes, result.warnings
