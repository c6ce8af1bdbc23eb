"""Configuration-snippet conversion — nginx directive lines to Traefik headers/CORS middleware."""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType

from ingress2traefik.core.constants import (
    CONFIGURATION_SNIPPET, CORS_SUFFIX, DEFAULT_CORS_METHODS, SNIPPET_HEADERS_SUFFIX,
)
from ingress2traefik.pacts.helpers import new_headers_middleware
from ingress2traefik.pacts.types import ConvertContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Directive vocabulary
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnsupportedDirective:
    """Known nginx directive with no Traefik equivalent."""
    message: str
    enterprise: bool = False


# Directives we recognize but cannot convert (read-only, process-wide)
UNSUPPORTED_DIRECTIVES = MappingProxyType({
    "gzip": UnsupportedDirective(
        "gzip is only configurable via middleware in Traefik and was ignored"),
    "gzip_comp_level": UnsupportedDirective(
        "gzip_comp_level is not configurable in Traefik"),
    "gzip_types": UnsupportedDirective(
        "gzip_types is not configurable in Traefik"),
    "proxy_buffer_size": UnsupportedDirective(
        "proxy_buffer_size is not supported in Traefik"),
    "proxy_cache": UnsupportedDirective(
        "proxy_cache is not supported in Traefik OSS", enterprise=True),
})

_ENTERPRISE_NOTE = (
    ". Traefik Enterprise provides an alternative, but it cannot be auto-converted."
)


def unsupported_warning(entry: UnsupportedDirective) -> str:
    """Render the canned warning for an unsupported directive."""
    if entry.enterprise:
        return entry.message + _ENTERPRISE_NOTE
    return entry.message


# ---------------------------------------------------------------------------
# Line classification
# ---------------------------------------------------------------------------

def split_lines(snippet: str) -> list[str]:
    """Split a snippet into trimmed, non-empty lines (order preserved)."""
    return [t for t in (line.strip() for line in snippet.split("\n")) if t]


def directive(line: str) -> str:
    """Return the first whitespace-delimited token of a line, or ''."""
    fields = line.split()
    return fields[0] if fields else ""


# ---------------------------------------------------------------------------
# Header directive parsing
# ---------------------------------------------------------------------------

@dataclass
class DirectiveOutcome:
    """Result of handling one snippet line: captured headers plus diagnostics."""
    request_headers: dict = field(default_factory=dict)
    response_headers: dict = field(default_factory=dict)
    warnings: list = field(default_factory=list)


def _header_parse_failure(line: str) -> DirectiveOutcome:
    return DirectiveOutcome(warnings=[f"failed to parse header directive: {line}"])


def parse_more_set_headers(line: str) -> tuple[str, str] | None:
    """Parse `more_set_headers "Key: value";` into (key, value)."""
    line = line.removesuffix(";")
    start = line.find('"')
    end = line.rfind('"')
    if start == -1 or end <= start:
        return None
    key, sep, value = line[start + 1:end].partition(":")
    if not sep:
        return None
    return key.strip(), value.strip()


def parse_add_header(line: str) -> tuple[str, str] | None:
    """Parse `add_header Key value...;` into (key, value), quotes stripped."""
    fields = line.removesuffix(";").split()
    if len(fields) < 3:
        return None
    return fields[1].strip('"'), " ".join(fields[2:]).strip('"')


def parse_proxy_set_header(line: str) -> tuple[str, str] | None:
    """Parse `proxy_set_header Key value...;` into (key, value)."""
    fields = line.removesuffix(";").split()
    if len(fields) < 3:
        return None
    return fields[1].strip('"'), " ".join(fields[2:])


def _handle_more_set_headers(line: str) -> DirectiveOutcome:
    parsed = parse_more_set_headers(line)
    if parsed is None:
        return _header_parse_failure(line)
    key, value = parsed
    return DirectiveOutcome(response_headers={key: value})


def _handle_add_header(line: str) -> DirectiveOutcome:
    parsed = parse_add_header(line)
    if parsed is None:
        return _header_parse_failure(line)
    key, value = parsed
    return DirectiveOutcome(response_headers={key: value})


def _handle_proxy_set_header(line: str) -> DirectiveOutcome:
    parsed = parse_proxy_set_header(line)
    if parsed is None:
        return _header_parse_failure(line)
    key, value = parsed
    outcome = DirectiveOutcome(request_headers={key: value})
    # Header is still kept, Traefik sends the variable name literally
    if "$" in value:
        outcome.warnings.append(
            "proxy_set_header uses NGINX variables which are not evaluated by Traefik"
        )
    return outcome


# Keyword → handler for directives that carry headers
_HEADER_HANDLERS = MappingProxyType({
    "more_set_headers": _handle_more_set_headers,
    "add_header": _handle_add_header,
    "proxy_set_header": _handle_proxy_set_header,
})


def classify_line(line: str) -> DirectiveOutcome:
    """Dispatch a single snippet line on its (lower-cased) directive keyword."""
    keyword = directive(line.lower())
    handler = _HEADER_HANDLERS.get(keyword)
    if handler is not None:
        return handler(line)
    entry = UNSUPPORTED_DIRECTIVES.get(keyword)
    if entry is not None:
        return DirectiveOutcome(warnings=[unsupported_warning(entry)])
    return DirectiveOutcome(warnings=[
        f"unsupported directive in configuration-snippet was ignored: {line}"
    ])


# ---------------------------------------------------------------------------
# Conditional CORS detection
# ---------------------------------------------------------------------------

_ORIGIN_GUARD = "if ($http_origin"
_ALLOW_METHODS = "access-control-allow-methods"
_ALLOW_HEADERS = "access-control-allow-headers"
_ALLOW_CREDENTIALS = "access-control-allow-credentials"
_MAX_AGE = "access-control-max-age"

# Any of these means the `if` block does more than gate CORS headers
_CORS_DISQUALIFIERS = ("rewrite", "proxy_pass", "fastcgi", "lua_", "set ")


def is_conditional_cors(lines: list[str]) -> bool:
    """True if the lines form a pure origin-gated CORS block.

    nginx `if` blocks are never converted in general. The one exception is an
    `if ($http_origin ...)` guard wrapping Access-Control-* headers, which
    Traefik's CORS middleware covers natively.
    """
    has_origin_guard = has_methods = False
    for raw in lines:
        lower = raw.lower()
        if _ORIGIN_GUARD in lower:
            has_origin_guard = True
        if _ALLOW_METHODS in lower:
            has_methods = True
        if any(marker in lower for marker in _CORS_DISQUALIFIERS):
            return False
    return has_origin_guard and has_methods


# ---------------------------------------------------------------------------
# CORS config extraction
# ---------------------------------------------------------------------------

_ORIGIN_IF_RE = re.compile(r'\$http_origin\s+~\*\s+\((.+?)\)\s*\)')
_INT_RE = re.compile(r'[+-]?[0-9]+')


@dataclass
class CorsConfig:
    """Values pulled out of a conditional CORS block."""
    origin_regex: str
    allow_headers: list = field(default_factory=list)
    allow_methods: list = field(default_factory=list)
    allow_credentials: bool | None = None  # None = not set in the snippet
    max_age: int = 0  # 0 = not set


def extract_origin_regex(lines: list[str]) -> str | None:
    """Return the capture of the first `$http_origin ~* (...)` test, if any."""
    for line in lines:
        m = _ORIGIN_IF_RE.search(line)
        if m:
            return m.group(1)
    return None


def extract_quoted_value(line: str) -> str:
    """Return the last quoted segment of a line ('' if none).

    Double-quoted segments are collected first, then single-quoted ones, so a
    value in single quotes wins over a double-quoted directive name.
    """
    values = []
    for quote in ('"', "'"):
        rest = line
        while True:
            start = rest.find(quote)
            if start == -1:
                break
            end = rest.find(quote, start + 1)
            if end == -1:
                break
            values.append(rest[start + 1:end])
            rest = rest[end + 1:]
    return values[-1] if values else ""


def split_csv(value: str) -> list[str]:
    """Split a comma-separated list, trimming items and dropping empties."""
    return [s for s in (p.strip() for p in value.split(",")) if s]


def extract_int(line: str) -> int:
    """Parse the last token of a line (';' stripped) as an int, 0 on failure."""
    fields = line.split()
    if not fields:
        return 0
    token = fields[-1].removesuffix(";")
    if not _INT_RE.fullmatch(token):
        return 0
    return int(token)


def parse_conditional_cors(lines: list[str]) -> CorsConfig | None:
    """Extract a CorsConfig from a conditional CORS block.

    Returns None when no origin regex can be found; the caller treats that as
    a failed conversion of the whole snippet.
    """
    origin = extract_origin_regex(lines)
    if origin is None:
        return None
    cfg = CorsConfig(origin_regex=origin)

    for raw in lines:
        line = raw.strip()
        lower = line.lower()
        if _ALLOW_HEADERS in lower:
            cfg.allow_headers = split_csv(extract_quoted_value(line))
        elif _ALLOW_METHODS in lower:
            cfg.allow_methods = split_csv(extract_quoted_value(line))
        elif _ALLOW_CREDENTIALS in lower:
            value = extract_quoted_value(line).lower()
            if value in ("true", "false"):
                cfg.allow_credentials = value == "true"
        elif _MAX_AGE in lower:
            age = extract_int(line)
            if age > 0:
                cfg.max_age = age

    if not cfg.allow_methods:
        cfg.allow_methods = list(DEFAULT_CORS_METHODS)
    return cfg


# ---------------------------------------------------------------------------
# Middleware emission
# ---------------------------------------------------------------------------

def emit_cors_middleware(ctx: ConvertContext, cfg: CorsConfig) -> None:
    """Append the CORS middleware and its review warnings to the result."""
    headers = {
        "accessControlAllowMethods": list(cfg.allow_methods),
        "accessControlAllowHeaders": list(cfg.allow_headers),
        "accessControlAllowOriginListRegex": [cfg.origin_regex],
        "accessControlMaxAge": cfg.max_age,
    }
    if cfg.allow_credentials is not None:
        headers["accessControlAllowCredentials"] = cfg.allow_credentials

    ctx.result.middlewares.append(new_headers_middleware(ctx, CORS_SUFFIX, headers))

    if not cfg.allow_headers or not cfg.allow_methods:
        ctx.result.warnings.append(
            "conditional CORS snippet was partially parsed; verify generated middleware"
        )
    ctx.result.warnings.append(
        "conditional NGINX CORS logic was converted to Traefik CORS middleware"
    )


def convert_generic_snippet(ctx: ConvertContext, lines: list[str]) -> None:
    """Convert header directives line by line, warning on everything else."""
    request_headers: dict[str, str] = {}
    response_headers: dict[str, str] = {}
    warnings: list[str] = []

    for line in lines:
        outcome = classify_line(line)
        request_headers.update(outcome.request_headers)
        response_headers.update(outcome.response_headers)
        warnings.extend(outcome.warnings)

    ctx.result.warnings.extend(warnings)

    if not request_headers and not response_headers:
        return

    ctx.result.middlewares.append(
        new_headers_middleware(ctx, SNIPPET_HEADERS_SUFFIX, {
            "customRequestHeaders": request_headers,
            "customResponseHeaders": response_headers,
        })
    )


def configuration_snippet(ctx: ConvertContext) -> None:
    """Convert nginx.ingress.kubernetes.io/configuration-snippet."""
    logger.debug("running converter ConfigurationSnippet")

    snippet = ctx.annotations.get(CONFIGURATION_SNIPPET)
    if snippet is None:
        return

    lines = split_lines(snippet)
    if not lines:
        return

    if is_conditional_cors(lines):
        cfg = parse_conditional_cors(lines)
        if cfg is None:
            ctx.result.warnings.append("failed to parse conditional CORS snippet; skipped")
            return
        emit_cors_middleware(ctx, cfg)
        return

    convert_generic_snippet(ctx, lines)
