"""Distributed acquire/release on top of a shared lock store.

The guard wraps the store's atomic conditional set with expiry and its
delete into ``acquire`` and ``release``. Both are a single attempt: no
retries, no backoff, no waiting.

Two acquisition modes are offered:

- ``acquire``/``release``: the lock value is a constant marker and release
  deletes unconditionally. A late release can remove a lock that another
  caller acquired after the first one expired.
- ``acquire_lease``/``release(key, token)`` and ``hold``: the lock value is
  a UUID4 owner token and release is a compare-and-delete, so an expired
  holder never removes its successor's lock.

The window only throttles initiation. When a guarded operation outlives
the window the lock expires and a second caller can start.

Examples:
    Scoped acquisition::

        guard = DistributedGuard(MemoryLockStore())

        async with guard.hold(key, 5000):
            await create_order()
"""

import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from debounce_guard.exceptions import GuardRejectedError
from debounce_guard.models import Lease
from debounce_guard.observability.logging import get_logger
from debounce_guard.observability.metrics import (
    decrement_held_locks,
    increment_held_locks,
    record_guarded_duration,
)
from debounce_guard.storage.base import LockStore

logger = get_logger(__name__)

LOCK_MARKER = "1"


class DistributedGuard:
    """Acquire/release protocol against a shared lock store.

    Attributes:
        store: The shared lock store.
    """

    def __init__(self, store: LockStore) -> None:
        self.store = store

    async def acquire(self, key: str, window_ms: int) -> bool:
        """Take the lock for ``key`` if nobody holds it.

        Args:
            key: The fingerprint.
            window_ms: Lock expiry in milliseconds.

        Returns:
            True if the lock was taken, False if it is already held.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        return await self.store.set_if_absent(key, LOCK_MARKER, window_ms)

    async def acquire_lease(self, key: str, window_ms: int) -> Lease | None:
        """Take the lock for ``key`` with a fresh owner token.

        Returns:
            The Lease if the lock was taken, None if it is already held.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        token = str(uuid.uuid4())
        if not await self.store.set_if_absent(key, token, window_ms):
            return None
        return Lease(key=key, token=token, window_ms=window_ms)

    async def release(self, key: str, token: str | None = None) -> bool:
        """Release the lock for ``key``.

        Without a token the entry is deleted unconditionally. With a token
        it is deleted only while it still stores that token.

        Returns:
            True if an entry was removed.

        Raises:
            StoreUnavailableError: If the store cannot be reached.
        """
        if token is None:
            return await self.store.delete(key)

        released = await self.store.delete_if_equals(key, token)
        if not released:
            logger.info("guard.release_skipped", key=key, reason="expired_or_taken_over")
        return released

    @asynccontextmanager
    async def hold(self, key: str, window_ms: int, message: str = "") -> AsyncIterator[Lease]:
        """Hold the lock for ``key`` for the duration of the block.

        The lease is released exactly once on every exit path, including
        exceptions and task cancellation.

        Args:
            key: The fingerprint.
            window_ms: Lock expiry in milliseconds.
            message: Message carried by the rejection.

        Raises:
            GuardRejectedError: If the lock is already held.
            StoreUnavailableError: If the store cannot be reached.
        """
        lease = await self.acquire_lease(key, window_ms)
        if lease is None:
            raise GuardRejectedError(message or f"Lock {key} is held", key=key)

        logger.debug("guard.acquired", key=key, window_ms=window_ms)
        increment_held_locks()
        start_time = time.perf_counter()
        try:
            yield lease
        finally:
            record_guarded_duration(time.perf_counter() - start_time)
            decrement_held_locks()
            await self.release(lease.key, lease.token)
            logger.debug("guard.released", key=key)
