"""Unit tests for GuardOrchestrator and the debounce decorator."""

import pytest
import structlog
from prometheus_client import REGISTRY
from starlette.requests import Request as StarletteRequest

from debounce_guard.config import DebounceSettings, GuardConfig
from debounce_guard.core.decorators import debounce, find_request
from debounce_guard.core.orchestrator import GuardOrchestrator
from debounce_guard.exceptions import GuardRejectedError, StoreUnavailableError
from debounce_guard.fingerprint import DefaultKeyStrategy, StrategyRegistry
from debounce_guard.guard import DistributedGuard
from debounce_guard.models import NormalizedRequest
from debounce_guard.normalizer import MappingRequestNormalizer
from debounce_guard.storage.memory import MemoryLockStore

ORDER_CONFIG = GuardConfig(window_ms=5000, message="Order is being processed", prefix="order")
ORDER_KEY = "debounce:order:/api/orders:u1:"

RAW_ORDER = {
    "headers": {"X-User-Id": "u1"},
    "path": "/api/orders",
    "remote_address": "10.0.0.7",
}


class FixedKeyStrategy:
    def generate_key(self, request: NormalizedRequest, prefix: str = "") -> str:
        return "fixed"


class FailingStore(MemoryLockStore):
    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        raise StoreUnavailableError("store down")


@pytest.fixture
def orchestrator(guard) -> GuardOrchestrator:
    return GuardOrchestrator(guard, normalizer=MappingRequestNormalizer())


class Target:
    """Async target that records invocations and checks the lock is held."""

    def __init__(self, store: MemoryLockStore | None = None, key: str | None = None) -> None:
        self.calls = 0
        self.store = store
        self.key = key
        self.held_during_call: bool | None = None

    async def __call__(self) -> str:
        self.calls += 1
        if self.store is not None and self.key is not None:
            self.held_during_call = await self.store.exists(self.key)
        return "done"


# ============================================================================
# key_for
# ============================================================================


def test_key_for_uses_default_strategy(orchestrator, order_request):
    assert orchestrator.key_for(order_request, ORDER_CONFIG) == ORDER_KEY


def test_key_for_uses_registered_strategy(guard, order_request):
    registry = StrategyRegistry(strategies={"fixed": FixedKeyStrategy()})
    orchestrator = GuardOrchestrator(guard, registry)
    config = GuardConfig(strategy="fixed")
    assert orchestrator.key_for(order_request, config) == "fixed"


def test_key_for_unknown_strategy_falls_back(orchestrator, order_request):
    config = GuardConfig(prefix="order", strategy="not-registered")
    assert orchestrator.key_for(order_request, config) == ORDER_KEY


# ============================================================================
# run
# ============================================================================


@pytest.mark.asyncio
async def test_run_invokes_target_under_lock(orchestrator, store):
    target = Target(store, ORDER_KEY)
    assert await orchestrator.run(ORDER_CONFIG, ORDER_KEY, target) == "done"
    assert target.calls == 1
    assert target.held_during_call is True
    assert await store.exists(ORDER_KEY) is False


@pytest.mark.asyncio
async def test_run_rejects_when_held(orchestrator, guard):
    await guard.acquire(ORDER_KEY, 5000)
    target = Target()

    with pytest.raises(GuardRejectedError) as exc_info:
        await orchestrator.run(ORDER_CONFIG, ORDER_KEY, target)

    assert exc_info.value.message == "Order is being processed"
    assert target.calls == 0


@pytest.mark.asyncio
async def test_run_disabled_skips_guard(orchestrator, guard, store):
    await guard.acquire(ORDER_KEY, 5000)
    target = Target()
    config = ORDER_CONFIG.model_copy(update={"enabled": False})

    assert await orchestrator.run(config, ORDER_KEY, target) == "done"
    assert target.calls == 1
    # Bypassing does not touch someone else's lock
    assert await store.exists(ORDER_KEY) is True


@pytest.mark.asyncio
async def test_run_releases_when_target_fails(orchestrator, store):
    async def failing():
        raise ValueError("payment declined")

    with pytest.raises(ValueError, match="payment declined"):
        await orchestrator.run(ORDER_CONFIG, ORDER_KEY, failing)
    assert await store.exists(ORDER_KEY) is False


@pytest.mark.asyncio
async def test_run_store_failure_is_fail_closed():
    orchestrator = GuardOrchestrator(DistributedGuard(FailingStore()))
    target = Target()
    with pytest.raises(StoreUnavailableError):
        await orchestrator.run(ORDER_CONFIG, ORDER_KEY, target)
    assert target.calls == 0


@pytest.mark.asyncio
async def test_nested_rejection_from_target_propagates(orchestrator, guard):
    await guard.acquire("debounce:other", 5000)

    async def nested():
        return await orchestrator.run(ORDER_CONFIG, "debounce:other", Target())

    with pytest.raises(GuardRejectedError) as exc_info:
        await orchestrator.run(ORDER_CONFIG, ORDER_KEY, nested)
    assert exc_info.value.key == "debounce:other"


# ============================================================================
# guard
# ============================================================================


@pytest.mark.asyncio
async def test_guard_second_call_rejected(orchestrator, store):
    async def check_duplicate():
        with pytest.raises(GuardRejectedError):
            await orchestrator.guard(RAW_ORDER, ORDER_CONFIG, Target())
        return "first"

    assert await orchestrator.guard(RAW_ORDER, ORDER_CONFIG, check_duplicate) == "first"
    assert await store.exists(ORDER_KEY) is False


@pytest.mark.asyncio
async def test_guard_degraded_request_still_guarded(orchestrator):
    target = Target()
    assert await orchestrator.guard(object(), ORDER_CONFIG, target) == "done"
    assert target.calls == 1


@pytest.mark.asyncio
async def test_guard_disabled(orchestrator):
    target = Target()
    config = GuardConfig(enabled=False)
    assert await orchestrator.guard(RAW_ORDER, config, target) == "done"


# ============================================================================
# debounce decorator
# ============================================================================


def test_find_request_by_keyword():
    assert find_request((), {"request": RAW_ORDER}) is RAW_ORDER


def test_find_request_none():
    assert find_request((1, "x"), {"order": {}}) is None


@pytest.mark.asyncio
async def test_decorator_guards_call(orchestrator, guard):
    calls = []

    @debounce(orchestrator, window_ms=5000, message="Order is being processed", prefix="order")
    async def create_order(request, quantity):
        calls.append(quantity)
        return quantity

    await guard.acquire(ORDER_KEY, 5000)
    with pytest.raises(GuardRejectedError):
        await create_order(request=RAW_ORDER, quantity=1)
    assert calls == []

    await guard.release(ORDER_KEY)
    assert await create_order(request=RAW_ORDER, quantity=2) == 2
    assert calls == [2]


@pytest.mark.asyncio
async def test_decorator_without_request_runs_unguarded(orchestrator, guard):
    @debounce(orchestrator, prefix="order")
    async def job(value):
        return value * 2

    await guard.acquire(ORDER_KEY, 5000)
    assert await job(21) == 42


@pytest.mark.asyncio
async def test_decorator_accepts_prebuilt_config(orchestrator):
    @debounce(orchestrator, config=ORDER_CONFIG)
    async def create_order(request):
        return "ok"

    assert create_order.debounce_config is ORDER_CONFIG
    assert create_order.__name__ == "create_order"
    assert await create_order(request=RAW_ORDER) == "ok"


@pytest.mark.asyncio
async def test_decorator_with_body_strategy(guard):
    orchestrator = GuardOrchestrator(
        guard,
        StrategyRegistry(DefaultKeyStrategy(include_body=True)),
        MappingRequestNormalizer(),
    )

    @debounce(orchestrator, window_ms=5000, prefix="order")
    async def create_order(request):
        other = {**RAW_ORDER, "body": {"product_id": "p2"}}
        # A different body is a different fingerprint
        return await create_order_inner(request=other)

    @debounce(orchestrator, window_ms=5000, prefix="order")
    async def create_order_inner(request):
        return "ok"

    assert await create_order(request={**RAW_ORDER, "body": {"product_id": "p1"}}) == "ok"


@pytest.mark.asyncio
async def test_disabled_decorator_counts_bypass(orchestrator):
    @debounce(orchestrator, enabled=False)
    async def create_order(request):
        return "ok"

    before = bypassed_count()
    assert await create_order(request=RAW_ORDER) == "ok"
    assert bypassed_count() == before + 1


def bypassed_count() -> float:
    return REGISTRY.get_sample_value("debounce_decisions_total", {"result": "bypassed"}) or 0.0


# ============================================================================
# Wiring from settings
# ============================================================================


def test_guard_method_is_not_shadowed(guard):
    orchestrator = GuardOrchestrator(guard)
    assert orchestrator.lock_guard is guard
    assert not isinstance(orchestrator.guard, DistributedGuard)
    assert callable(orchestrator.guard)


@pytest.mark.parametrize("include_body", [True, False])
def test_default_wiring_follows_include_body(guard, include_body):
    orchestrator = GuardOrchestrator(guard, settings=DebounceSettings(include_body=include_body))
    assert orchestrator.normalizer.include_body is include_body
    assert orchestrator.registry.default.include_body is include_body


def test_default_wiring_hashes_bodies(guard):
    orchestrator = GuardOrchestrator(guard)
    assert orchestrator.normalizer.include_body is True
    assert orchestrator.registry.default.include_body is True


@pytest.mark.asyncio
async def test_default_wiring_keys_differ_by_body(guard):
    orchestrator = GuardOrchestrator(guard)
    keys = []

    for product in ("p1", "p2"):
        request = await orchestrator.normalizer.normalize(
            json_request(f'{{"product_id": "{product}"}}'.encode())
        )
        keys.append(orchestrator.key_for(request, ORDER_CONFIG))

    assert keys[0] != keys[1]
    assert keys[0].startswith(ORDER_KEY)


def json_request(body: bytes) -> StarletteRequest:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/orders",
        "raw_path": b"/api/orders",
        "query_string": b"",
        "headers": [(b"x-user-id", b"u1"), (b"content-type", b"application/json")],
        "client": ("10.0.0.7", 5123),
        "server": ("testserver", 80),
        "scheme": "http",
        "root_path": "",
    }

    async def receive():
        return {"type": "http.request", "body": body, "more_body": False}

    return StarletteRequest(scope, receive)


def test_decorator_defaults_come_from_settings(guard):
    settings = DebounceSettings(default_window_ms=9000, default_message="Hold on")
    orchestrator = GuardOrchestrator(guard, settings=settings)

    @debounce(orchestrator, prefix="order")
    async def create_order(request):
        return "ok"

    assert create_order.debounce_config.window_ms == 9000
    assert create_order.debounce_config.message == "Hold on"
    assert create_order.debounce_config.prefix == "order"


def test_decorator_arguments_override_settings(guard):
    orchestrator = GuardOrchestrator(guard, settings=DebounceSettings(default_window_ms=9000))

    @debounce(orchestrator, window_ms=5000, message="Order is being processed")
    async def create_order(request):
        return "ok"

    assert create_order.debounce_config.window_ms == 5000
    assert create_order.debounce_config.message == "Order is being processed"


def test_decorator_defaults_from_env(guard, monkeypatch):
    monkeypatch.setenv("DEBOUNCE_DEFAULT_WINDOW_MS", "9000")
    orchestrator = GuardOrchestrator(guard, settings=DebounceSettings.from_env())

    @debounce(orchestrator)
    async def create_order(request):
        return "ok"

    assert create_order.debounce_config.window_ms == 9000


# ============================================================================
# Log context
# ============================================================================


@pytest.mark.asyncio
async def test_run_binds_key_and_path_to_log_context(orchestrator):
    seen = {}

    async def target():
        seen.update(structlog.contextvars.get_contextvars())
        return "done"

    await orchestrator.guard(RAW_ORDER, ORDER_CONFIG, target)

    assert seen["key"] == ORDER_KEY
    assert seen["path"] == "/api/orders"
    assert "key" not in structlog.contextvars.get_contextvars()


@pytest.mark.asyncio
async def test_log_context_cleared_after_rejection(orchestrator, guard):
    await guard.acquire(ORDER_KEY, 5000)
    with pytest.raises(GuardRejectedError):
        await orchestrator.run(ORDER_CONFIG, ORDER_KEY, Target())
    assert "key" not in structlog.contextvars.get_contextvars()
