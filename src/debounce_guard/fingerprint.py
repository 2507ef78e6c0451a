"""Request fingerprinting for the debounce guard.

A fingerprint identifies "the same logical call by the same caller" and is
used directly as the lock key:

    debounce:[prefix:]path:user:[params_hash]

1. Literal ``debounce:``
2. ``prefix:`` when a prefix is configured
3. ``path:``
4. ``user:`` where user is the X-User-Id header, else the client address
5. MD5 hex digest of the canonical parameter JSON; omitted (with no trailing
   separator) when there are no parameters or they cannot be serialized

Key strategies are pluggable. The StrategyRegistry maps identifiers to
strategy instances and falls back to its default strategy on a miss.

Examples:
    >>> request = NormalizedRequest(path="/api/orders", headers={"X-User-Id": "u1"})
    >>> DefaultKeyStrategy().generate_key(request, "order")
    'debounce:order:/api/orders:u1:'
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from debounce_guard.config import DEFAULT_STRATEGY
from debounce_guard.exceptions import ParameterSerializationError
from debounce_guard.models import NormalizedRequest
from debounce_guard.observability.logging import get_logger
from debounce_guard.utils.headers import resolve_client_ip

logger = get_logger(__name__)

KEY_NAMESPACE = "debounce"
USER_ID_HEADER = "X-User-Id"


@runtime_checkable
class KeyStrategy(Protocol):
    """Protocol for computing a fingerprint from a normalized request."""

    def generate_key(self, request: NormalizedRequest, prefix: str = "") -> str:
        """Return the lock key for ``request``.

        Args:
            request: The normalized request.
            prefix: Optional business prefix; empty means none.
        """
        ...


def get_user_identifier(request: NormalizedRequest) -> str:
    """Return the caller identity: X-User-Id if set, else the client address."""
    user_id = request.header(USER_ID_HEADER)
    if user_id:
        return user_id
    return resolve_client_ip(request.headers, request.remote_address)


def _canonicalize_parameters(
    parameters: Mapping[str, list[str]],
    body: Any | None = None,
) -> str:
    """Serialize parameters (and body, if any) to canonical JSON.

    Keys are sorted at every level and separators are compact, so two
    requests with the same parameters in a different order serialize
    identically.

    Raises:
        ParameterSerializationError: If the payload is not JSON-serializable.
    """
    payload: Any = dict(parameters)
    if body is not None:
        payload = {"parameters": payload, "body": body}

    try:
        return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ParameterSerializationError(f"Cannot serialize request parameters: {e}") from e


def compute_params_hash(
    parameters: Mapping[str, list[str]],
    body: Any | None = None,
) -> str | None:
    """Compute the parameter hash segment of a fingerprint.

    Args:
        parameters: Multi-valued query parameters.
        body: Parsed request body to merge in, if any.

    Returns:
        32-character MD5 hex digest, or None when there is nothing to hash
        or serialization fails.
    """
    if not parameters and body is None:
        return None

    try:
        canonical = _canonicalize_parameters(parameters, body)
    except ParameterSerializationError as e:
        logger.debug("fingerprint.params_unhashable", error=e.message)
        return None

    return hashlib.md5(canonical.encode("utf-8"), usedforsecurity=False).hexdigest()


class DefaultKeyStrategy:
    """Header/IP/path/parameter-hash key strategy.

    Attributes:
        include_body: When True the parsed JSON body takes part in the
            parameter hash; when False only query parameters do.
    """

    def __init__(self, include_body: bool = False) -> None:
        self.include_body = include_body

    def generate_key(self, request: NormalizedRequest, prefix: str = "") -> str:
        parts = [KEY_NAMESPACE, ":"]

        if prefix:
            parts.extend([prefix, ":"])

        parts.extend([request.path, ":"])
        parts.extend([get_user_identifier(request), ":"])

        params_hash = compute_params_hash(
            request.parameters,
            request.body if self.include_body else None,
        )
        if params_hash is not None:
            parts.append(params_hash)

        return "".join(parts)


class StrategyRegistry:
    """Typed map from strategy identifier to key strategy instance.

    Lookups never fail: an unknown identifier resolves to the default
    strategy.

    Examples:
        >>> registry = StrategyRegistry()
        >>> registry.register("tenant", TenantKeyStrategy())
        >>> registry.get("tenant")
        <TenantKeyStrategy ...>
        >>> registry.get("missing") is registry.default
        True
    """

    def __init__(
        self,
        default: KeyStrategy | None = None,
        strategies: Mapping[str, KeyStrategy] | None = None,
    ) -> None:
        self.default: KeyStrategy = default or DefaultKeyStrategy()
        self._strategies: dict[str, KeyStrategy] = {DEFAULT_STRATEGY: self.default}
        if strategies:
            self._strategies.update(strategies)

    def register(self, identifier: str, strategy: KeyStrategy) -> None:
        """Register ``strategy`` under ``identifier``, replacing any previous one.

        Raises:
            TypeError: If ``strategy`` does not implement generate_key.
        """
        if not isinstance(strategy, KeyStrategy):
            raise TypeError(f"{type(strategy).__name__} does not implement KeyStrategy")
        self._strategies[identifier] = strategy

    def get(self, identifier: str) -> KeyStrategy:
        strategy = self._strategies.get(identifier)
        if strategy is None:
            logger.warning("strategy.fallback", strategy=identifier)
            return self.default
        return strategy

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._strategies
