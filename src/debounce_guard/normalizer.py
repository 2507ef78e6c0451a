"""Request normalization for the debounce guard.

A RequestNormalizer converts a transport-specific request into a
NormalizedRequest. Each supported transport has its own implementation,
selected explicitly by whoever wires the guard:

- StarletteRequestNormalizer: Starlette/FastAPI ``Request`` objects
- MappingRequestNormalizer: plain mappings, for non-HTTP entry points

Normalizers never raise. When a request cannot be read they return
``NormalizedRequest.degraded()``, so unrelated requests may share a coarser
fingerprint instead of the guard pipeline failing.

Examples:
    >>> normalizer = MappingRequestNormalizer()
    >>> request = await normalizer.normalize({"path": "/api/orders", "headers": {"X-User-Id": "u1"}})
    >>> request.header("X-User-Id")
    'u1'
"""

import json
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from starlette.requests import Request as StarletteRequest

from debounce_guard.exceptions import NormalizationError
from debounce_guard.models import UNKNOWN_ADDRESS, NormalizedRequest
from debounce_guard.observability.logging import get_logger
from debounce_guard.utils.headers import get_header

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"


@runtime_checkable
class RequestNormalizer(Protocol):
    """Protocol for converting transport requests to NormalizedRequest."""

    async def normalize(self, raw: Any) -> NormalizedRequest:
        """Convert ``raw`` to a NormalizedRequest; never raises."""
        ...


def parse_json_body(content_type: str | None, body: bytes) -> Any | None:
    """Parse a request body as JSON if its content type says it is JSON.

    Returns:
        The parsed document, or None if the body is empty, not JSON, or
        not valid JSON.
    """
    if not body or not content_type or JSON_CONTENT_TYPE not in content_type.lower():
        return None

    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError):
        logger.debug("normalize.body_unparseable", content_type=content_type)
        return None


class StarletteRequestNormalizer:
    """Normalizer for Starlette and FastAPI requests.

    Attributes:
        include_body: Whether JSON bodies are read and attached.
    """

    def __init__(self, include_body: bool = True) -> None:
        self.include_body = include_body

    async def normalize(self, raw: Any) -> NormalizedRequest:
        try:
            return await self._extract(raw)
        except Exception as e:
            logger.debug("normalize.degraded", transport="starlette", error=str(e))
            return NormalizedRequest.degraded()

    async def _extract(self, request: StarletteRequest) -> NormalizedRequest:
        if not isinstance(request, StarletteRequest):
            raise NormalizationError(f"Expected a Starlette request, got {type(request).__name__}")

        headers: dict[str, str] = {}
        for key, value in request.headers.items():
            headers[key] = value

        parameters: dict[str, list[str]] = {}
        for key, value in request.query_params.multi_items():
            parameters.setdefault(key, []).append(value)

        body = None
        if self.include_body:
            # Starlette caches the body, so downstream handlers can still read it
            body = parse_json_body(get_header(headers, "content-type"), await request.body())

        return NormalizedRequest(
            headers=headers,
            parameters=parameters,
            path=request.url.path,
            remote_address=request.client.host if request.client else UNKNOWN_ADDRESS,
            body=body,
        )


class MappingRequestNormalizer:
    """Normalizer for requests already held as plain mappings.

    Recognized keys: ``headers``, ``parameters``, ``path``,
    ``remote_address`` and ``body``. Scalar parameter values are wrapped in
    one-element lists.
    """

    async def normalize(self, raw: Any) -> NormalizedRequest:
        try:
            return self._extract(raw)
        except Exception as e:
            logger.debug("normalize.degraded", transport="mapping", error=str(e))
            return NormalizedRequest.degraded()

    def _extract(self, raw: Mapping[str, Any]) -> NormalizedRequest:
        if not isinstance(raw, Mapping):
            raise NormalizationError(f"Expected a mapping, got {type(raw).__name__}")

        parameters: dict[str, list[str]] = {}
        for name, values in (raw.get("parameters") or {}).items():
            if isinstance(values, (list, tuple)):
                parameters[str(name)] = [str(v) for v in values]
            else:
                parameters[str(name)] = [str(values)]

        return NormalizedRequest(
            headers={str(k): str(v) for k, v in (raw.get("headers") or {}).items()},
            parameters=parameters,
            path=raw.get("path") or "/",
            remote_address=raw.get("remote_address") or UNKNOWN_ADDRESS,
            body=raw.get("body"),
        )
