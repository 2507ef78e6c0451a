"""In-memory lock store with asyncio concurrency control.

The MemoryLockStore is suitable for:
    - Single-process applications
    - Development and testing

It is not shared between processes; multi-instance deployments use
RedisLockStore instead.

Thread Safety:
    - One asyncio.Lock serializes every check-and-set
    - Expiry is evaluated against a monotonic clock on each access
    - Expired entries are purged lazily when their key is accessed
    - Keys that are never accessed again stay until cleanup_expired()
      runs; debounce_guard.core.cleanup.start_cleanup_task schedules it

Examples:
    Basic usage::

        from debounce_guard.storage.memory import MemoryLockStore

        store = MemoryLockStore()

        assert await store.set_if_absent("debounce:/api/orders:u1:", "1", 5000)
        assert not await store.set_if_absent("debounce:/api/orders:u1:", "1", 5000)

        await store.delete("debounce:/api/orders:u1:")
"""

import asyncio
import time
from collections.abc import Callable


class MemoryLockStore:
    """In-memory lock store with monotonic expiry.

    Attributes:
        _entries: Mapping of key to (value, expires_at) pairs.
        _lock: Lock serializing all mutations.
        _clock: Monotonic clock in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock

    def _live_value(self, key: str, now: float) -> str | None:
        """Return the value stored under key, dropping it if expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        value, expires_at = entry
        if expires_at <= now:
            del self._entries[key]
            return None
        return value

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """Atomically set the key with expiry if it is absent.

        Args:
            key: Lock key.
            value: Marker or owner token.
            ttl_ms: Expiry in milliseconds.

        Returns:
            True if the key was set, False if it is already held.
        """
        async with self._lock:
            now = self._clock()
            if self._live_value(key, now) is not None:
                return False

            self._entries[key] = (value, now + ttl_ms / 1000.0)
            return True

    async def delete(self, key: str) -> bool:
        async with self._lock:
            if self._live_value(key, self._clock()) is None:
                return False

            del self._entries[key]
            return True

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete the key only if it currently stores value."""
        async with self._lock:
            if self._live_value(key, self._clock()) != value:
                return False

            del self._entries[key]
            return True

    async def exists(self, key: str) -> bool:
        async with self._lock:
            return self._live_value(key, self._clock()) is not None

    async def cleanup_expired(self) -> int:
        """Remove expired entries.

        Returns:
            The number of entries removed.
        """
        async with self._lock:
            now = self._clock()
            expired_keys = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired_keys:
                del self._entries[key]

        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._entries)
