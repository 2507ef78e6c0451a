"""Unit tests for request normalizers."""

import pytest
from starlette.requests import Request as StarletteRequest

from debounce_guard.models import NormalizedRequest
from debounce_guard.normalizer import (
    MappingRequestNormalizer,
    RequestNormalizer,
    StarletteRequestNormalizer,
    parse_json_body,
)


def make_request(
    path: str = "/api/orders",
    query_string: bytes = b"",
    headers: list[tuple[bytes, bytes]] | None = None,
    body: bytes = b"",
    client: tuple[str, int] | None = ("10.0.0.7", 5123),
) -> StarletteRequest:
    """Build a Starlette request from a raw ASGI scope."""
    scope = {
        "type": "http",
        "method": "POST",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string,
        "headers": headers or [],
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
        "root_path": "",
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return StarletteRequest(scope, receive)


# ============================================================================
# parse_json_body
# ============================================================================


def test_parse_json_body_valid():
    assert parse_json_body("application/json", b'{"a": 1}') == {"a": 1}


def test_parse_json_body_with_charset():
    assert parse_json_body("application/json; charset=UTF-8", b"[1, 2]") == [1, 2]


def test_parse_json_body_not_json_content_type():
    assert parse_json_body("text/plain", b'{"a": 1}') is None


def test_parse_json_body_invalid_json():
    assert parse_json_body("application/json", b"{not json") is None


def test_parse_json_body_invalid_utf8():
    assert parse_json_body("application/json", b"\xff\xfe\xfa") is None


def test_parse_json_body_empty():
    assert parse_json_body("application/json", b"") is None


# ============================================================================
# StarletteRequestNormalizer
# ============================================================================


@pytest.mark.asyncio
async def test_starlette_normalizes_all_fields():
    request = make_request(
        query_string=b"page=1&tag=a&tag=b",
        headers=[(b"x-user-id", b"u1"), (b"content-type", b"application/json")],
        body=b'{"product_id": "p1"}',
    )

    normalized = await StarletteRequestNormalizer().normalize(request)

    assert normalized.path == "/api/orders"
    assert normalized.remote_address == "10.0.0.7"
    assert normalized.header("X-User-Id") == "u1"
    assert normalized.parameters == {"page": ["1"], "tag": ["a", "b"]}
    assert normalized.body == {"product_id": "p1"}


@pytest.mark.asyncio
async def test_starlette_skips_body_when_disabled():
    request = make_request(
        headers=[(b"content-type", b"application/json")],
        body=b'{"product_id": "p1"}',
    )
    normalized = await StarletteRequestNormalizer(include_body=False).normalize(request)
    assert normalized.body is None


@pytest.mark.asyncio
async def test_starlette_unparseable_body_is_dropped():
    request = make_request(
        headers=[(b"content-type", b"application/json")],
        body=b"{definitely not json",
    )
    normalized = await StarletteRequestNormalizer().normalize(request)
    assert normalized.body is None
    assert normalized.path == "/api/orders"


@pytest.mark.asyncio
async def test_starlette_body_still_readable_downstream():
    request = make_request(
        headers=[(b"content-type", b"application/json")],
        body=b'{"a": 1}',
    )
    await StarletteRequestNormalizer().normalize(request)
    assert await request.body() == b'{"a": 1}'


@pytest.mark.asyncio
async def test_starlette_missing_client():
    normalized = await StarletteRequestNormalizer().normalize(make_request(client=None))
    assert normalized.remote_address == "unknown"


@pytest.mark.asyncio
async def test_starlette_wrong_type_degrades():
    normalized = await StarletteRequestNormalizer().normalize({"path": "/api/orders"})
    assert normalized == NormalizedRequest.degraded()


@pytest.mark.asyncio
async def test_starlette_receive_failure_degrades():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/orders",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json")],
        "client": ("10.0.0.7", 1),
    }

    async def receive():
        raise RuntimeError("connection reset")

    normalized = await StarletteRequestNormalizer().normalize(StarletteRequest(scope, receive))
    assert normalized == NormalizedRequest.degraded()


def test_normalizers_implement_protocol():
    assert isinstance(StarletteRequestNormalizer(), RequestNormalizer)
    assert isinstance(MappingRequestNormalizer(), RequestNormalizer)


# ============================================================================
# MappingRequestNormalizer
# ============================================================================


@pytest.mark.asyncio
async def test_mapping_normalizes_fields():
    normalized = await MappingRequestNormalizer().normalize(
        {
            "headers": {"X-User-Id": "u1"},
            "parameters": {"page": "1", "tag": ["a", "b"]},
            "path": "/api/orders",
            "remote_address": "10.0.0.7",
            "body": {"amount": 3},
        }
    )
    assert normalized.header("x-user-id") == "u1"
    assert normalized.parameters == {"page": ["1"], "tag": ["a", "b"]}
    assert normalized.path == "/api/orders"
    assert normalized.remote_address == "10.0.0.7"
    assert normalized.body == {"amount": 3}


@pytest.mark.asyncio
async def test_mapping_missing_fields_use_defaults():
    normalized = await MappingRequestNormalizer().normalize({})
    assert normalized == NormalizedRequest.degraded()


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [None, "GET /", 42, {"headers": "not-a-mapping"}])
async def test_mapping_bad_input_degrades(raw):
    normalized = await MappingRequestNormalizer().normalize(raw)
    assert normalized == NormalizedRequest.degraded()
