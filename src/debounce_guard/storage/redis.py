"""Redis-backed lock store.

Every operation is a single round-trip except compare-and-delete, which
uses an optimistic WATCH/MULTI transaction so that an entry rewritten by
another owner between the read and the delete is left untouched.

Errors raised by the Redis client are wrapped in StoreUnavailableError;
the guard fails closed on them.

Examples:
    Production wiring::

        from redis.asyncio import Redis
        from debounce_guard.storage.redis import RedisLockStore

        store = RedisLockStore(Redis.from_url("redis://cache:6379/0"))

    Tests use fakeredis::

        from fakeredis.aioredis import FakeRedis

        store = RedisLockStore(FakeRedis())
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError, WatchError

from debounce_guard.exceptions import StoreUnavailableError
from debounce_guard.observability.logging import get_logger

logger = get_logger(__name__)


def _as_text(value: bytes | str | None) -> str | None:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class RedisLockStore:
    """Lock store backed by a shared Redis instance.

    Attributes:
        redis: The asyncio Redis client.
        namespace: Optional prefix prepended to every key as ``namespace:key``.
    """

    def __init__(self, redis: Redis, namespace: str = "") -> None:
        self.redis = redis
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = "") -> "RedisLockStore":
        """Create a store with a client connected to ``url``."""
        return cls(Redis.from_url(url), namespace=namespace)

    def _k(self, key: str) -> str:
        return f"{self.namespace}:{key}" if self.namespace else key

    def _unavailable(self, operation: str, key: str, exc: RedisError) -> StoreUnavailableError:
        logger.error("store.error", operation=operation, key=key, error=str(exc))
        return StoreUnavailableError(f"Redis {operation} failed for key {key}: {exc}", cause=exc)

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """SET key value PX ttl_ms NX.

        Returns:
            True if the key was set, False if it is already held.

        Raises:
            StoreUnavailableError: If Redis cannot be reached.
        """
        try:
            result = await self.redis.set(self._k(key), value, px=ttl_ms, nx=True)
        except RedisError as e:
            raise self._unavailable("set", key, e) from e
        return bool(result)

    async def delete(self, key: str) -> bool:
        try:
            removed = await self.redis.delete(self._k(key))
        except RedisError as e:
            raise self._unavailable("delete", key, e) from e
        return removed > 0

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete the key only if it still stores value.

        Raises:
            StoreUnavailableError: If Redis cannot be reached.
        """
        store_key = self._k(key)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                await pipe.watch(store_key)
                current = _as_text(await pipe.get(store_key))
                if current != value:
                    await pipe.unwatch()
                    return False

                pipe.multi()
                pipe.delete(store_key)
                await pipe.execute()
                return True
        except WatchError:
            # Rewritten by another owner after our read
            return False
        except RedisError as e:
            raise self._unavailable("delete_if_equals", key, e) from e

    async def exists(self, key: str) -> bool:
        try:
            count = await self.redis.exists(self._k(key))
        except RedisError as e:
            raise self._unavailable("exists", key, e) from e
        return count > 0

    async def close(self) -> None:
        """Close the underlying connection pool."""
        await self.redis.aclose()
