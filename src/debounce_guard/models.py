"""Core data models for the debounce guard.

Examples:
    Building a normalized request by hand::

        from debounce_guard.models import NormalizedRequest

        request = NormalizedRequest(
            headers={"X-User-Id": "u1"},
            parameters={"page": ["1"]},
            path="/api/orders",
            remote_address="10.0.0.7",
        )
        request.header("x-user-id")  # 'u1'

    The degraded fallback used when a transport request cannot be read::

        NormalizedRequest.degraded().path  # '/'
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from debounce_guard.utils.headers import get_header

UNKNOWN_ADDRESS = "unknown"


class NormalizedRequest(BaseModel):
    """Transport-independent view of an inbound call.

    Created fresh per call by a RequestNormalizer and discarded once the
    fingerprint has been computed.

    Attributes:
        headers: Request headers. Lookups through ``header()`` ignore case.
        parameters: Query parameters; every name maps to all of its values.
        path: Request path without the query string.
        remote_address: Address of the direct peer connection.
        body: Parsed JSON body, if the transport supplied one.
    """

    headers: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, list[str]] = Field(default_factory=dict)
    path: str = Field(default="/")
    remote_address: str = Field(default=UNKNOWN_ADDRESS)
    body: Any | None = Field(default=None)

    model_config = {"frozen": True}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Empty paths are treated as the root path."""
        return v or "/"

    @classmethod
    def degraded(cls) -> "NormalizedRequest":
        """Return the fallback request used when extraction fails.

        Returns:
            A request with empty headers and parameters, path ``/`` and
            address ``unknown``.
        """
        return cls(headers={}, parameters={}, path="/", remote_address=UNKNOWN_ADDRESS)

    def header(self, name: str) -> str | None:
        """Look up a header value ignoring case.

        Args:
            name: Header name.

        Returns:
            The header value, or None if the header is absent.
        """
        return get_header(self.headers, name)


class Lease(BaseModel):
    """A held lock entry acquired with an owner token.

    Attributes:
        key: The fingerprint under which the lock is stored.
        token: UUID4 owner token stored as the lock value.
        window_ms: Lock expiry in milliseconds.
    """

    key: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    window_ms: int = Field(..., gt=0)

    model_config = {"frozen": True}


class RejectionBody(BaseModel):
    """JSON body returned to transport callers when a call is rejected.

    Examples:
        >>> RejectionBody(message="Order is being processed").model_dump()
        {'success': False, 'message': 'Order is being processed'}
    """

    success: Literal[False] = False
    message: str
