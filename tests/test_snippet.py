from itertools import permutations

import pytest

from ingress2traefik.core.constants import CONFIGURATION_SNIPPET
from ingress2traefik.core.snippet import (
    UNSUPPORTED_DIRECTIVES,
    classify_line,
    configuration_snippet,
    directive,
    extract_int,
    extract_quoted_value,
    is_conditional_cors,
    parse_add_header,
    parse_conditional_cors,
    parse_more_set_headers,
    split_csv,
    split_lines,
)
from ingress2traefik.pacts.types import ConvertContext, ConvertResult


def _run(snippet, name="web", namespace="shop"):
    result = ConvertResult()
    ctx = ConvertContext(
        name=name, namespace=namespace,
        annotations={CONFIGURATION_SNIPPET: snippet}, result=result,
    )
    configuration_snippet(ctx)
    return result


CORS_SNIPPET = """
if ($http_origin ~* (https://example\\.com)) {
    add_header Access-Control-Allow-Methods "GET, POST";
}
"""


def test_split_lines_trims_and_drops_blank_lines():
    assert split_lines("  a b;\n\n\t\n c;  \r\n") == ["a b;", "c;"]
    assert split_lines("") == []


def test_split_lines_breaks_only_on_newline():
    assert split_lines("add_header X-A 'a\x0bb';\fexpires 1h; x") == [
        "add_header X-A 'a\x0bb';\fexpires 1h; x"]
    assert split_lines("a;\r\nb;") == ["a;", "b;"]


def test_directive_returns_first_token():
    assert directive("add_header X 1;") == "add_header"
    assert directive("") == ""


def test_add_header_single_response_header():
    result = _run('add_header X-Test "1";')

    assert result.warnings == []
    assert len(result.middlewares) == 1
    mw = result.middlewares[0]
    assert mw["kind"] == "Middleware"
    assert mw["metadata"] == {"name": "web-snippet-headers", "namespace": "shop"}
    assert mw["spec"]["headers"]["customResponseHeaders"] == {"X-Test": "1"}
    assert mw["spec"]["headers"]["customRequestHeaders"] == {}


def test_proxy_set_header_with_variable_warns_but_keeps_header():
    result = _run("proxy_set_header Host $host;")

    headers = result.middlewares[0]["spec"]["headers"]
    assert headers["customRequestHeaders"] == {"Host": "$host"}
    assert result.warnings == [
        "proxy_set_header uses NGINX variables which are not evaluated by Traefik"
    ]


def test_more_set_headers_splits_on_first_colon():
    assert parse_more_set_headers('more_set_headers "X-Url: http://a:8080";') == (
        "X-Url", "http://a:8080")


@pytest.mark.parametrize("line", [
    'more_set_headers "X-Frame-Options DENY";',
    "more_set_headers X-Frame-Options: DENY;",
])
def test_more_set_headers_malformed(line):
    assert parse_more_set_headers(line) is None
    result = _run(line)
    assert result.middlewares == []
    assert result.warnings == [f"failed to parse header directive: {line}"]


def test_add_header_joins_value_fields():
    assert parse_add_header('add_header Cache-Control "no-cache, no-store";') == (
        "Cache-Control", "no-cache, no-store")
    assert parse_add_header("add_header X-Only;") is None


def test_short_proxy_set_header_is_warned():
    result = _run("proxy_set_header Host;")
    assert result.middlewares == []
    assert result.warnings == ["failed to parse header directive: proxy_set_header Host;"]


def test_headers_independent_of_directive_order():
    lines = [
        'add_header X-A "a";',
        'more_set_headers "X-B: b";',
        "proxy_set_header X-Real-Port 443;",
    ]
    for order in permutations(lines):
        headers = _run("\n".join(order)).middlewares[0]["spec"]["headers"]
        assert headers["customResponseHeaders"] == {"X-A": "a", "X-B": "b"}
        assert headers["customRequestHeaders"] == {"X-Real-Port": "443"}


def test_duplicate_header_last_write_wins():
    result = _run('add_header X-A "1";\nadd_header X-A "2";')
    assert result.middlewares[0]["spec"]["headers"]["customResponseHeaders"] == {"X-A": "2"}


def test_keyword_match_is_case_insensitive():
    result = _run('ADD_HEADER X-Mixed "Value";')
    assert result.middlewares[0]["spec"]["headers"]["customResponseHeaders"] == {
        "X-Mixed": "Value"}


def test_gzip_is_warned_and_ignored():
    result = _run("gzip on;")
    assert result.middlewares == []
    assert result.warnings == [
        "gzip is only configurable via middleware in Traefik and was ignored"
    ]


def test_enterprise_directive_gets_note():
    result = _run("proxy_cache my_cache;")
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("proxy_cache is not supported in Traefik OSS.")
    assert "Traefik Enterprise" in result.warnings[0]


def test_unknown_directives_one_warning_per_line():
    snippet = "client_max_body_size 10m;\nexpires 1h;\nclient_max_body_size 10m;"
    result = _run(snippet)
    assert result.middlewares == []
    assert result.warnings == [
        "unsupported directive in configuration-snippet was ignored: client_max_body_size 10m;",
        "unsupported directive in configuration-snippet was ignored: expires 1h;",
        "unsupported directive in configuration-snippet was ignored: client_max_body_size 10m;",
    ]


def test_vocabulary_is_read_only():
    with pytest.raises(TypeError):
        UNSUPPORTED_DIRECTIVES["brotli"] = UNSUPPORTED_DIRECTIVES["gzip"]


def test_classify_line_returns_outcome_without_side_effects():
    outcome = classify_line('add_header X-A "1";')
    assert outcome.response_headers == {"X-A": "1"}
    assert outcome.request_headers == {}
    assert outcome.warnings == []


@pytest.mark.parametrize("snippet", ["", "   \n\t\n  "])
def test_empty_snippet_is_noop(snippet):
    result = _run(snippet)
    assert result.middlewares == []
    assert result.warnings == []


def test_missing_annotation_is_noop():
    result = ConvertResult()
    configuration_snippet(ConvertContext(name="web", namespace="shop",
                                         annotations={}, result=result))
    assert result.middlewares == []
    assert result.warnings == []


def test_same_snippet_is_idempotent():
    snippet = 'add_header X-A "1";\nproxy_set_header Host $host;\nexpires 1h;'
    first, second = _run(snippet), _run(snippet)
    assert first.middlewares == second.middlewares
    assert first.warnings == second.warnings


# --- conditional CORS -------------------------------------------------------

_GUARD = "if ($http_origin ~* (https://a\\.com)) {"
_METHODS = "add_header Access-Control-Allow-Methods 'GET';"
_REWRITE = "rewrite ^ /foo;"


@pytest.mark.parametrize("lines,expected", [
    ([_GUARD, _METHODS, "}"], True),
    ([_GUARD, "}"], False),
    ([_METHODS], False),
    ([_GUARD, _METHODS, _REWRITE], False),
    ([_GUARD, _METHODS, "proxy_pass http://up;"], False),
    ([_GUARD, _METHODS, "fastcgi_param A b;"], False),
    ([_GUARD, _METHODS, "lua_code_cache off;"], False),
    ([_GUARD, _METHODS, "set $cors 1;"], False),
])
def test_conditional_cors_detection_any_order(lines, expected):
    for order in permutations(lines):
        assert is_conditional_cors(list(order)) is expected


def test_conditional_cors_scenario():
    result = _run(CORS_SNIPPET, name="api")

    assert len(result.middlewares) == 1
    mw = result.middlewares[0]
    assert mw["metadata"] == {"name": "api-cors", "namespace": "shop"}
    headers = mw["spec"]["headers"]
    assert headers["accessControlAllowOriginListRegex"] == ["https://example\\.com"]
    assert headers["accessControlAllowMethods"] == ["GET", "POST"]
    assert headers["accessControlAllowHeaders"] == []
    assert headers["accessControlMaxAge"] == 0
    assert "accessControlAllowCredentials" not in headers
    assert result.warnings == [
        "conditional CORS snippet was partially parsed; verify generated middleware",
        "conditional NGINX CORS logic was converted to Traefik CORS middleware",
    ]


def test_conditional_cors_with_rewrite_falls_back_to_generic():
    result = _run(CORS_SNIPPET + "rewrite ^ /foo;\n")

    assert len(result.middlewares) == 1
    mw = result.middlewares[0]
    assert mw["metadata"]["name"] == "web-snippet-headers"
    assert mw["spec"]["headers"]["customResponseHeaders"] == {
        "Access-Control-Allow-Methods": "GET, POST"}
    assert result.warnings == [
        "unsupported directive in configuration-snippet was ignored: "
        "if ($http_origin ~* (https://example\\.com)) {",
        "unsupported directive in configuration-snippet was ignored: }",
        "unsupported directive in configuration-snippet was ignored: rewrite ^ /foo;",
    ]


def test_full_conditional_cors_block():
    snippet = "\n".join([
        "if ($http_origin ~* (https://(app|admin)\\.example\\.com)) {",
        "  add_header 'Access-Control-Allow-Origin' \"$http_origin\" always;",
        "  add_header 'Access-Control-Allow-Methods' 'GET, PUT, , OPTIONS' always;",
        "  add_header 'Access-Control-Allow-Headers' 'Authorization,Content-Type';",
        "  add_header 'Access-Control-Allow-Credentials' 'TRUE';",
        "  add_header Access-Control-Max-Age 1728000;",
        "}",
    ])
    result = _run(snippet)

    headers = result.middlewares[0]["spec"]["headers"]
    assert headers["accessControlAllowOriginListRegex"] == [
        "https://(app|admin)\\.example\\.com"]
    assert headers["accessControlAllowMethods"] == ["GET", "PUT", "OPTIONS"]
    assert headers["accessControlAllowHeaders"] == ["Authorization", "Content-Type"]
    assert headers["accessControlAllowCredentials"] is True
    assert headers["accessControlMaxAge"] == 1728000
    assert result.warnings == [
        "conditional NGINX CORS logic was converted to Traefik CORS middleware",
    ]


def test_conditional_cors_defaults_methods():
    lines = [
        "if ($http_origin ~* (https://a\\.com)) {",
        "add_header Access-Control-Allow-Methods GET;",
        "}",
    ]
    cfg = parse_conditional_cors(lines)
    assert cfg.allow_methods == ["GET", "POST", "PUT", "DELETE", "OPTIONS"]


def test_conditional_cors_invalid_credentials_and_age_stay_unset():
    lines = [
        "if ($http_origin ~* (https://a\\.com)) {",
        "add_header Access-Control-Allow-Methods 'GET';",
        "add_header Access-Control-Allow-Credentials 'yes';",
        "add_header Access-Control-Max-Age -5;",
        "}",
    ]
    cfg = parse_conditional_cors(lines)
    assert cfg.allow_credentials is None
    assert cfg.max_age == 0


def test_conditional_cors_explicit_false_credentials():
    snippet = "\n".join([
        "if ($http_origin ~* (https://a\\.com)) {",
        "add_header Access-Control-Allow-Methods 'GET';",
        "add_header Access-Control-Allow-Credentials 'false';",
        "}",
    ])
    headers = _run(snippet).middlewares[0]["spec"]["headers"]
    assert headers["accessControlAllowCredentials"] is False


def test_conditional_cors_without_origin_regex_is_skipped():
    snippet = "\n".join([
        'if ($http_origin = "https://a.com") {',
        "add_header Access-Control-Allow-Methods 'GET';",
        "}",
    ])
    result = _run(snippet)
    assert result.middlewares == []
    assert result.warnings == ["failed to parse conditional CORS snippet; skipped"]


def test_extract_quoted_value_last_segment_wins():
    assert extract_quoted_value("""add_header 'Name' 'value';""") == "value"
    assert extract_quoted_value('add_header Name "a" "b";') == "b"
    # Single-quoted segments are collected after double-quoted ones
    assert extract_quoted_value("""add_header "Name" 'value';""") == "value"
    assert extract_quoted_value("add_header Name value;") == ""


def test_split_csv_and_extract_int():
    assert split_csv(" a, ,b ,") == ["a", "b"]
    assert extract_int("add_header Access-Control-Max-Age 600;") == 600
    assert extract_int("add_header Access-Control-Max-Age ten;") == 0
    assert extract_int("") == 0
