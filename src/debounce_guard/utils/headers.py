"""Header lookup utilities for the debounce guard.

This module provides functions for:
- Case-insensitive header lookup
- Resolving the originating client address from proxy headers
"""

from collections.abc import Mapping

# Address headers consulted in order before falling back to the peer address
CLIENT_IP_HEADERS = (
    "X-Forwarded-For",
    "Proxy-Client-IP",
    "WL-Proxy-Client-IP",
    "HTTP_CLIENT_IP",
    "HTTP_X_FORWARDED_FOR",
)


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Look up a header value ignoring case.

    Args:
        headers: Header mapping with arbitrary key casing
        name: Header name to look up

    Returns:
        The header value, or None if absent

    Example:
        >>> get_header({"X-User-Id": "u1"}, "x-user-id")
        'u1'
    """
    value = headers.get(name)
    if value is not None:
        return value

    name_lower = name.lower()
    for key, value in headers.items():
        if key.lower() == name_lower:
            return value

    return None


def is_valid_address(value: str | None) -> bool:
    """Return True unless the candidate address is missing, empty or 'unknown'."""
    return bool(value) and value.lower() != "unknown"  # type: ignore[union-attr]


def first_hop(value: str) -> str:
    """Return the left-most address of a comma-separated proxy chain.

    Example:
        >>> first_hop("203.0.113.9, 10.0.0.2, 10.0.0.1")
        '203.0.113.9'
    """
    return value.split(",", 1)[0].strip()


def resolve_client_ip(headers: Mapping[str, str], remote_address: str) -> str:
    """Resolve the originating client address of a request.

    Proxy headers are consulted in the order of CLIENT_IP_HEADERS; the
    first valid one wins, otherwise the peer address is used. When the
    winning value is a proxy chain only its first hop is returned.

    Args:
        headers: Request headers
        remote_address: Address of the direct peer connection

    Returns:
        The client address

    Example:
        >>> resolve_client_ip({"X-Forwarded-For": "unknown", "Proxy-Client-IP": "1.2.3.4"}, "10.0.0.1")
        '1.2.3.4'
    """
    candidate: str | None = None
    for name in CLIENT_IP_HEADERS:
        candidate = get_header(headers, name)
        if is_valid_address(candidate):
            break
    else:
        candidate = remote_address

    if candidate and "," in candidate:
        candidate = first_hop(candidate)
    return candidate or remote_address
