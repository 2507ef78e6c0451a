"""Framework adapters for the debounce guard.

- asgi.py: ASGI middleware and exception handlers for FastAPI, Starlette, etc.

The adapters handle the conversion between framework-specific request and
response objects and the guard's internal representation.
"""

from debounce_guard.adapters.asgi import ASGIDebounceMiddleware, register_exception_handlers

__all__ = ["ASGIDebounceMiddleware", "register_exception_handlers"]
