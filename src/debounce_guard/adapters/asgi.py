"""ASGI middleware adapter for FastAPI and Starlette applications.

This module provides the URL-pattern variant of the guard: a route table
of glob patterns selects per-route settings, and matching requests are
guarded before they reach the application.

The middleware:
1. Resolves the route settings for the request path
2. Passes unmatched or disabled routes straight through
3. Runs the rest of the stack under the guard
4. Answers rejections with a JSON body, without calling the application

Examples:
    FastAPI integration::

        from fastapi import FastAPI
        from debounce_guard.adapters.asgi import ASGIDebounceMiddleware
        from debounce_guard.config import DebounceSettings, RouteRule
        from debounce_guard.guard import DistributedGuard
        from debounce_guard.storage import create_store

        settings = DebounceSettings.from_env()
        guard = DistributedGuard(create_store(settings))

        app = FastAPI()
        app.add_middleware(
            ASGIDebounceMiddleware,
            guard=guard,
            settings=settings,
        )

    Rejection response::

        HTTP/1.1 429 Too Many Requests
        content-type: application/json; charset=UTF-8

        {"success": false, "message": "Too many requests, please try again later"}
"""

from collections.abc import Awaitable, Callable
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request as StarletteRequest
from starlette.responses import JSONResponse, Response

from debounce_guard.config import DebounceSettings, RouteRule
from debounce_guard.core.orchestrator import GuardOrchestrator
from debounce_guard.exceptions import GuardRejectedError, StoreUnavailableError
from debounce_guard.fingerprint import StrategyRegistry
from debounce_guard.guard import DistributedGuard
from debounce_guard.models import RejectionBody
from debounce_guard.normalizer import RequestNormalizer
from debounce_guard.routing import RouteConfigResolver

JSON_MEDIA_TYPE = "application/json; charset=UTF-8"
STORE_ERROR_STATUS = 503


def rejection_response(message: str, status_code: int) -> Response:
    """Build the JSON rejection response.

    Args:
        message: Message to return to the caller
        status_code: HTTP status code

    Returns:
        A JSONResponse with ``{"success": false, "message": ...}``
    """
    return JSONResponse(
        content=RejectionBody(message=message).model_dump(),
        status_code=status_code,
        media_type=JSON_MEDIA_TYPE,
    )


class ASGIDebounceMiddleware(BaseHTTPMiddleware):
    """ASGI middleware for the URL-pattern debounce variant.

    Attributes:
        settings: Process-wide settings
        resolver: Route table resolver
        orchestrator: Core orchestrator instance
    """

    def __init__(
        self,
        app: Any,
        guard: DistributedGuard,
        settings: DebounceSettings | None = None,
        routes: list[RouteRule] | None = None,
        registry: StrategyRegistry | None = None,
        normalizer: RequestNormalizer | None = None,
    ) -> None:
        """Initialize the ASGI middleware.

        Args:
            app: The ASGI application
            guard: Distributed guard backed by the shared store
            settings: Settings (uses defaults if not provided)
            routes: Route table; defaults to ``settings.routes``
            registry: Key strategy registry
            normalizer: Request normalizer
        """
        super().__init__(app)
        self.settings = settings or DebounceSettings()
        self.resolver = RouteConfigResolver(routes if routes is not None else self.settings.routes)
        self.orchestrator = GuardOrchestrator(guard, registry, normalizer, settings=self.settings)

    async def dispatch(
        self,
        request: StarletteRequest,
        call_next: Callable[[StarletteRequest], Awaitable[Response]],
    ) -> Response:
        """Process an ASGI request under the route's guard, if any.

        Args:
            request: The Starlette request object
            call_next: Function to call the next middleware/handler

        Returns:
            The application's response, or a JSON rejection
        """
        config = self.resolver.resolve(request.url.path)
        if config is None:
            return await call_next(request)

        try:
            return await self.orchestrator.guard(request, config, lambda: call_next(request))
        except GuardRejectedError as e:
            return rejection_response(e.message, self.settings.rejection_status_code)
        except StoreUnavailableError:
            return rejection_response(self.settings.store_error_message, STORE_ERROR_STATUS)


def register_exception_handlers(app: Any, settings: DebounceSettings | None = None) -> None:
    """Map guard exceptions raised by decorated endpoints to JSON responses.

    Args:
        app: FastAPI or Starlette application
        settings: Settings providing status code and store error message
    """
    settings = settings or DebounceSettings()

    async def handle_rejection(_request: StarletteRequest, exc: Exception) -> Response:
        message = exc.message if isinstance(exc, GuardRejectedError) else str(exc)
        return rejection_response(message, settings.rejection_status_code)

    async def handle_store_error(_request: StarletteRequest, _exc: Exception) -> Response:
        return rejection_response(settings.store_error_message, STORE_ERROR_STATUS)

    app.add_exception_handler(GuardRejectedError, handle_rejection)
    app.add_exception_handler(StoreUnavailableError, handle_store_error)
