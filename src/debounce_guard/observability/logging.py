"""Structured logging for the debounce guard.

Guard decisions are logged with dotted event names:

- guard.key / guard.acquired / guard.rejected / guard.released
- guard.release_skipped
- store.error
- strategy.fallback
- normalize.degraded

While a call is being guarded, ``guard_context`` binds the fingerprint
(``key``) and the request ``path`` into structlog's context variables, so
every event emitted inside the guarded call carries them, including events
logged by the application itself.

Examples:
    Configure logging from settings::

        settings = DebounceSettings.from_env()
        configure_logging(settings)

    Output (JSON) of a rejected duplicate::

        {
            "event": "guard.rejected",
            "key": "debounce:order:/api/orders:u1:",
            "path": "/api/orders",
            "level": "info",
            "timestamp": "2024-01-01T00:00:00.000000Z"
        }
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog

from debounce_guard.config import DebounceSettings


def configure_logging(settings: DebounceSettings | None = None) -> None:
    """Configure structlog from ``settings.log_level`` and ``settings.log_json``.

    Call once at application startup.
    """
    settings = settings or DebounceSettings()
    level = getattr(logging, settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer(colors=True)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def guard_context(key: str, path: str | None = None) -> Iterator[None]:
    """Bind the fingerprint (and path, if known) for the enclosed block."""
    fields: dict[str, Any] = {"key": key}
    if path is not None:
        fields["path"] = path
    with structlog.contextvars.bound_contextvars(**fields):
        yield


def get_logger(name: str) -> Any:
    return structlog.get_logger(name)
