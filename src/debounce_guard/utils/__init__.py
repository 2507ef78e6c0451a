"""Utility modules for the debounce guard."""

from .headers import (
    CLIENT_IP_HEADERS,
    first_hop,
    get_header,
    is_valid_address,
    resolve_client_ip,
)

__all__ = [
    "get_header",
    "resolve_client_ip",
    "first_hop",
    "is_valid_address",
    "CLIENT_IP_HEADERS",
]
