"""Call-site debounce decorator.

The decorator attaches a GuardConfig to an async endpoint. Each call
locates the raw request among the endpoint's arguments (a Starlette
``Request`` instance, or a ``request`` keyword argument) and runs the
endpoint through the orchestrator. Calls made without a request, for
example from a background job, run unguarded.

Examples:
    FastAPI endpoint::

        orchestrator = GuardOrchestrator(DistributedGuard(store))

        @app.post("/api/orders")
        @debounce(orchestrator, window_ms=5000, message="Order in progress", prefix="order")
        async def create_order(request: Request, order: OrderRequest):
            ...

    Rejections raise GuardRejectedError; register_exception_handlers()
    in debounce_guard.adapters.asgi turns them into JSON responses.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from starlette.requests import Request as StarletteRequest

from debounce_guard.config import DEFAULT_STRATEGY, GuardConfig
from debounce_guard.core.orchestrator import GuardOrchestrator

T = TypeVar("T")


def find_request(args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any | None:
    """Return the raw request passed to an endpoint call, if any."""
    for value in (*args, *kwargs.values()):
        if isinstance(value, StarletteRequest):
            return value
    return kwargs.get("request")


def debounce(
    orchestrator: GuardOrchestrator,
    window_ms: int | None = None,
    message: str | None = None,
    prefix: str = "",
    strategy: str = DEFAULT_STRATEGY,
    enabled: bool = True,
    config: GuardConfig | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Guard an async callable against duplicate calls within ``window_ms``.

    Args:
        orchestrator: Orchestrator that performs the guarded call
        window_ms: Debounce window in milliseconds; defaults to
            ``orchestrator.settings.default_window_ms``
        message: Rejection message; defaults to
            ``orchestrator.settings.default_message``
        prefix: Fingerprint prefix for this call site
        strategy: Key strategy identifier
        enabled: When False calls are never guarded
        config: Prebuilt GuardConfig; overrides the individual settings

    Returns:
        A decorator preserving the wrapped function's signature.
    """
    overrides: dict[str, Any] = {"prefix": prefix, "strategy": strategy, "enabled": enabled}
    if window_ms is not None:
        overrides["window_ms"] = window_ms
    if message is not None:
        overrides["message"] = message
    guard_config = config or orchestrator.settings.guard_config(**overrides)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            raw_request = find_request(args, kwargs)
            if raw_request is None:
                return await func(*args, **kwargs)

            return await orchestrator.guard(
                raw_request,
                guard_config,
                lambda: func(*args, **kwargs),
            )

        wrapper.debounce_config = guard_config  # type: ignore[attr-defined]
        return wrapper

    return decorator
