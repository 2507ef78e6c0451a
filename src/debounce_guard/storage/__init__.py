"""Lock stores for the debounce guard.

All stores implement the LockStore protocol defined in base.py.

Available Stores:
    - MemoryLockStore: In-process store with asyncio concurrency
    - RedisLockStore: Redis-based store shared between processes
"""

from debounce_guard.config import DebounceSettings
from debounce_guard.storage.base import LockStore
from debounce_guard.storage.memory import MemoryLockStore
from debounce_guard.storage.redis import RedisLockStore


def create_store(settings: DebounceSettings) -> LockStore:
    """Build the lock store selected by ``settings.store_backend``.

    Example:
        >>> create_store(DebounceSettings(store_backend="memory"))
        <debounce_guard.storage.memory.MemoryLockStore object at ...>
    """
    if settings.store_backend == "redis":
        return RedisLockStore.from_url(settings.redis_url, namespace=settings.store_namespace)
    return MemoryLockStore()


__all__ = [
    "LockStore",
    "MemoryLockStore",
    "RedisLockStore",
    "create_store",
]
