"""
Pytest configuration and shared fixtures for debounce_guard tests.
"""

import pytest

from debounce_guard.guard import DistributedGuard
from debounce_guard.models import NormalizedRequest
from debounce_guard.storage.memory import MemoryLockStore


class FakeClock:
    """Manually advanced monotonic clock for expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000.0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> MemoryLockStore:
    """Provide a memory lock store driven by the fake clock."""
    return MemoryLockStore(clock=clock)


@pytest.fixture
def guard(store: MemoryLockStore) -> DistributedGuard:
    return DistributedGuard(store)


@pytest.fixture
def order_request() -> NormalizedRequest:
    """Provide the order submission request used across tests."""
    return NormalizedRequest(
        headers={"X-User-Id": "u1"},
        parameters={},
        path="/api/orders",
        remote_address="10.0.0.7",
    )
