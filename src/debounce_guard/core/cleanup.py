"""Periodic sweep of expired locks in the in-memory store.

MemoryLockStore only purges an expired entry when that same key is touched
again. Fingerprints that are never seen twice (one-off callers, locks whose
release was lost, plain ``acquire()`` without ``release()``) would otherwise
stay in memory forever. The sweep calls ``cleanup_expired()`` on a fixed
interval.

Redis expires keys on its own and needs no sweep.

Examples:
    With a FastAPI lifespan::

        @asynccontextmanager
        async def lifespan(app):
            sweeper = start_cleanup_task(store, interval_seconds=60)
            yield
            await sweeper.stop()
"""

import asyncio

from debounce_guard.observability.logging import get_logger
from debounce_guard.observability.metrics import record_expired_locks_removed
from debounce_guard.storage.memory import MemoryLockStore

logger = get_logger(__name__)

DEFAULT_CLEANUP_INTERVAL_SECONDS = 60.0


async def cleanup_loop(
    store: MemoryLockStore,
    interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
    stop_event: asyncio.Event | None = None,
) -> None:
    """Sweep ``store`` every ``interval_seconds`` until ``stop_event`` is set.

    A failing sweep is logged and the loop keeps going.
    """
    stop_event = stop_event or asyncio.Event()
    logger.info("cleanup.started", interval_seconds=interval_seconds)

    while not stop_event.is_set():
        try:
            removed = await store.cleanup_expired()
        except Exception as e:
            logger.error("cleanup.failed", error=str(e), error_type=type(e).__name__)
        else:
            record_expired_locks_removed(removed)
            if removed:
                logger.info("cleanup.completed", locks_removed=removed)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass

    logger.info("cleanup.stopped")


class CleanupTask:
    """Handle on a running sweep.

    Attributes:
        task: The asyncio task running cleanup_loop.
    """

    def __init__(self, task: asyncio.Task[None], stop_event: asyncio.Event) -> None:
        self.task = task
        self._stop_event = stop_event

    async def stop(self, timeout: float = 5.0) -> None:
        """Signal the loop to stop and wait for it; cancel it after ``timeout``."""
        self._stop_event.set()
        try:
            await asyncio.wait_for(self.task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("cleanup.stop_timeout")


def start_cleanup_task(
    store: MemoryLockStore,
    interval_seconds: float = DEFAULT_CLEANUP_INTERVAL_SECONDS,
) -> CleanupTask:
    """Start cleanup_loop in the background on the running event loop."""
    stop_event = asyncio.Event()
    task = asyncio.create_task(cleanup_loop(store, interval_seconds, stop_event))
    return CleanupTask(task, stop_event)
