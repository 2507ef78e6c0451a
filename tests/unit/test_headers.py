"""Unit tests for header lookup and client address resolution."""

import pytest

from debounce_guard.utils.headers import (
    first_hop,
    get_header,
    is_valid_address,
    resolve_client_ip,
)

# ============================================================================
# get_header
# ============================================================================


def test_get_header_exact_case():
    assert get_header({"X-User-Id": "u1"}, "X-User-Id") == "u1"


def test_get_header_ignores_case():
    assert get_header({"x-user-id": "u1"}, "X-User-Id") == "u1"
    assert get_header({"X-USER-ID": "u1"}, "x-user-id") == "u1"


def test_get_header_missing():
    assert get_header({"Content-Type": "application/json"}, "X-User-Id") is None


def test_get_header_empty_value_is_returned():
    assert get_header({"X-User-Id": ""}, "X-User-Id") == ""


# ============================================================================
# Address validity
# ============================================================================


@pytest.mark.parametrize("value", [None, "", "unknown", "UNKNOWN", "Unknown"])
def test_invalid_addresses(value):
    assert is_valid_address(value) is False


@pytest.mark.parametrize("value", ["1.2.3.4", "::1", "unknown-host"])
def test_valid_addresses(value):
    assert is_valid_address(value) is True


def test_first_hop_strips_whitespace():
    assert first_hop(" 203.0.113.9 , 10.0.0.2") == "203.0.113.9"


def test_first_hop_single_address():
    assert first_hop("203.0.113.9") == "203.0.113.9"


# ============================================================================
# resolve_client_ip precedence
# ============================================================================


def test_falls_back_to_remote_address():
    assert resolve_client_ip({}, "10.0.0.1") == "10.0.0.1"


def test_forwarded_for_wins():
    headers = {
        "X-Forwarded-For": "203.0.113.9",
        "Proxy-Client-IP": "198.51.100.1",
    }
    assert resolve_client_ip(headers, "10.0.0.1") == "203.0.113.9"


def test_forwarded_for_uses_first_hop():
    headers = {"X-Forwarded-For": "203.0.113.9, 10.0.0.2, 10.0.0.1"}
    assert resolve_client_ip(headers, "10.0.0.1") == "203.0.113.9"


def test_unknown_forwarded_for_is_skipped():
    headers = {
        "X-Forwarded-For": "unknown",
        "Proxy-Client-IP": "198.51.100.1",
    }
    assert resolve_client_ip(headers, "10.0.0.1") == "198.51.100.1"


@pytest.mark.parametrize(
    "header",
    ["Proxy-Client-IP", "WL-Proxy-Client-IP", "HTTP_CLIENT_IP", "HTTP_X_FORWARDED_FOR"],
)
def test_each_proxy_header_is_consulted(header):
    assert resolve_client_ip({header: "198.51.100.7"}, "10.0.0.1") == "198.51.100.7"


def test_precedence_order():
    headers = {
        "HTTP_X_FORWARDED_FOR": "5.5.5.5",
        "HTTP_CLIENT_IP": "4.4.4.4",
        "WL-Proxy-Client-IP": "3.3.3.3",
    }
    assert resolve_client_ip(headers, "10.0.0.1") == "3.3.3.3"


def test_lowercase_transport_headers():
    # ASGI servers deliver lowercase header names
    headers = {"x-forwarded-for": "203.0.113.9"}
    assert resolve_client_ip(headers, "10.0.0.1") == "203.0.113.9"


def test_all_headers_invalid_uses_remote_address():
    headers = {
        "X-Forwarded-For": "",
        "Proxy-Client-IP": "unknown",
        "WL-Proxy-Client-IP": "UNKNOWN",
    }
    assert resolve_client_ip(headers, "10.0.0.1") == "10.0.0.1"


def test_remote_address_chain_uses_first_hop():
    assert resolve_client_ip({}, "10.0.0.1, 10.0.0.2") == "10.0.0.1"
