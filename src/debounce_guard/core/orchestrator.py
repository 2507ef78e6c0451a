"""Guard orchestration: normalize, key, acquire, invoke, release.

The orchestrator is the contract consumed by interception layers (the
call-site decorator and the ASGI middleware). It is framework-agnostic:
the transport is hidden behind a RequestNormalizer and the guarded
operation is any zero-argument coroutine function.

Flow:
    1. Normalize the raw request
    2. Pick the key strategy from the registry (default on a miss)
    3. Generate the fingerprint
    4. Skip the guard entirely if the config is disabled
    5. Acquire; on failure raise GuardRejectedError without invoking the target
    6. Invoke the target and release on every exit path

Examples:
    Using the orchestrator directly::

        orchestrator = GuardOrchestrator(DistributedGuard(MemoryLockStore()))
        config = GuardConfig(window_ms=5000, message="Order in progress", prefix="order")

        try:
            result = await orchestrator.guard(request, config, lambda: create_order(data))
        except GuardRejectedError as e:
            return {"success": False, "message": e.message}
"""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from debounce_guard.config import DebounceSettings, GuardConfig
from debounce_guard.exceptions import GuardRejectedError, StoreUnavailableError
from debounce_guard.fingerprint import DefaultKeyStrategy, StrategyRegistry
from debounce_guard.guard import DistributedGuard
from debounce_guard.models import NormalizedRequest
from debounce_guard.normalizer import RequestNormalizer, StarletteRequestNormalizer
from debounce_guard.observability.logging import get_logger, guard_context
from debounce_guard.observability.metrics import record_decision

logger = get_logger(__name__)

T = TypeVar("T")


class GuardOrchestrator:
    """Sequences the guard around a target operation.

    Attributes:
        lock_guard: Distributed guard used for acquire/release
        settings: Process-wide settings; seeds call-site defaults
        registry: Key strategy registry
        normalizer: Transport normalizer for raw requests

    When no registry or normalizer is given, both follow
    ``settings.include_body`` so a body that is read is also hashed.
    """

    def __init__(
        self,
        guard: DistributedGuard,
        registry: StrategyRegistry | None = None,
        normalizer: RequestNormalizer | None = None,
        settings: DebounceSettings | None = None,
    ) -> None:
        self.lock_guard = guard
        self.settings = settings or DebounceSettings()
        include_body = self.settings.include_body
        self.registry = registry or StrategyRegistry(DefaultKeyStrategy(include_body=include_body))
        self.normalizer = normalizer or StarletteRequestNormalizer(include_body=include_body)

    def key_for(self, request: NormalizedRequest, config: GuardConfig) -> str:
        """Compute the fingerprint of ``request`` under ``config``."""
        strategy = self.registry.get(config.strategy)
        return strategy.generate_key(request, config.prefix)

    async def run(
        self,
        config: GuardConfig,
        key: str,
        target: Callable[[], Awaitable[T]],
        path: str | None = None,
    ) -> T:
        """Invoke ``target`` while holding the lock for ``key``.

        ``key`` and ``path`` are bound to the log context for the whole
        guarded call.

        Args:
            config: Guard settings for this call
            key: Precomputed fingerprint
            target: Zero-argument coroutine function to guard
            path: Request path, for logging only

        Returns:
            Whatever ``target`` returns.

        Raises:
            GuardRejectedError: If the key is already held; target not invoked
            StoreUnavailableError: If the store cannot be reached; target not invoked
        """
        if not config.enabled:
            record_decision("bypassed")
            return await target()

        with guard_context(key, path):
            try:
                async with self.lock_guard.hold(key, config.window_ms, config.message):
                    record_decision("acquired")
                    return await target()
            except GuardRejectedError as e:
                if e.key != key:
                    raise
                record_decision("rejected")
                logger.info("guard.rejected")
                raise
            except StoreUnavailableError:
                record_decision("store_error")
                raise

    async def guard(
        self,
        raw_request: Any,
        config: GuardConfig,
        target: Callable[[], Awaitable[T]],
    ) -> T:
        """Normalize ``raw_request``, compute its fingerprint and run ``target``.

        Raises:
            GuardRejectedError: If the fingerprint is already held
            StoreUnavailableError: If the store cannot be reached
        """
        if not config.enabled:
            record_decision("bypassed")
            return await target()

        request = await self.normalizer.normalize(raw_request)
        key = self.key_for(request, config)
        logger.debug("guard.key", key=key, path=request.path)
        return await self.run(config, key, target, request.path)
