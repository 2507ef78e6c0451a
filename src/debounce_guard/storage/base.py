"""Lock store protocol for the debounce guard.

A lock store is the shared, externally visible key-value service that all
process instances coordinate through. The guard needs only a handful of
operations from it, each a single round-trip:

    set_if_absent(key, value, ttl_ms)   SET key value PX ttl NX
    delete(key)                         DEL key
    delete_if_equals(key, value)        compare-and-delete
    exists(key)                         EXISTS key

Examples:
    Implementing a custom lock store::

        from debounce_guard.storage.base import LockStore

        class MyLockStore:
            async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
                return await self.backend.put_if_absent(key, value, ttl_ms)

            async def delete(self, key: str) -> bool:
                return await self.backend.remove(key)

            ...

Atomicity Requirements:
    All LockStore implementations MUST guarantee:

    1. **Atomic conditional set**: set_if_absent() must check and set in one
       step. Of N concurrent callers for the same absent key exactly one
       receives True.

    2. **Store-side expiry**: entries must disappear once ttl_ms elapses,
       independently of whether delete() is ever called.

    3. **Atomic compare-and-delete**: delete_if_equals() must not remove an
       entry written by another owner between its read and its delete.

Error Handling:
    Implementations raise StoreUnavailableError for connectivity or backend
    failures and never return a plain False to signal one. A False result
    from set_if_absent() always means the key is held.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class LockStore(Protocol):
    """Protocol defining the interface for shared lock stores.

    All methods are async and must be safe to call concurrently from
    multiple asyncio tasks, threads and processes.
    """

    async def set_if_absent(self, key: str, value: str, ttl_ms: int) -> bool:
        """Set ``key`` to ``value`` with expiry only if the key is absent.

        Args:
            key: Lock key (the fingerprint).
            value: Marker or owner token stored under the key.
            ttl_ms: Expiry in milliseconds.

        Returns:
            True if the key was absent and is now held, False otherwise.
        """
        ...

    async def delete(self, key: str) -> bool:
        """Delete ``key`` unconditionally.

        Returns:
            True if an entry was removed.
        """
        ...

    async def delete_if_equals(self, key: str, value: str) -> bool:
        """Delete ``key`` only if it currently stores ``value``.

        Returns:
            True if the entry was removed, False if it was absent or owned
            by someone else.
        """
        ...

    async def exists(self, key: str) -> bool:
        """Return True if ``key`` is currently held."""
        ...
