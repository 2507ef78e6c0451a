"""Demo FastAPI application with the debounce guard.

Orders are guarded per endpoint with the ``debounce`` decorator; payments
are guarded by the URL-pattern middleware.

Run with: python demo_app.py
Then submit the same order twice within five seconds:

    curl -X POST localhost:8000/api/orders -H 'X-User-Id: u1' \
        -H 'content-type: application/json' -d '{"product_id": "p1", "quantity": 1}'
"""

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, Request
from pydantic import BaseModel

from debounce_guard.adapters.asgi import ASGIDebounceMiddleware, register_exception_handlers
from debounce_guard.config import DebounceSettings, RouteRule
from debounce_guard.core.cleanup import start_cleanup_task
from debounce_guard.core.decorators import debounce
from debounce_guard.core.orchestrator import GuardOrchestrator
from debounce_guard.guard import DistributedGuard
from debounce_guard.observability.logging import configure_logging
from debounce_guard.storage import LockStore, MemoryLockStore, create_store


class OrderRequest(BaseModel):
    product_id: str
    quantity: int


class OrderResponse(BaseModel):
    order_id: str
    status: str
    product_id: str
    quantity: int
    created_at: str


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"


def default_settings() -> DebounceSettings:
    return DebounceSettings(
        routes=[
            RouteRule(pattern="/api/payments/*/refund", time=10000, message="Refund already requested"),
            RouteRule(pattern="/api/payments/**", time=3000, message="Payment is being processed"),
        ],
    )


def create_app(
    settings: DebounceSettings | None = None,
    processing_delay: float = 0.0,
    store: LockStore | None = None,
) -> FastAPI:
    """Build the demo application.

    Args:
        settings: Guard settings; the demo route table is used if omitted
        processing_delay: Simulated handler latency in seconds
        store: Lock store; built from the settings if omitted
    """
    settings = settings or default_settings()
    if store is None:
        store = create_store(settings)
    guard = DistributedGuard(store)
    orchestrator = GuardOrchestrator(guard, settings=settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        sweeper = start_cleanup_task(store) if isinstance(store, MemoryLockStore) else None
        yield
        if sweeper is not None:
            await sweeper.stop()

    app = FastAPI(
        title="Debounce Guard Demo",
        description="Demo API showing duplicate submission suppression",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(ASGIDebounceMiddleware, guard=guard, settings=settings)
    register_exception_handlers(app, settings)
    app.state.guard = guard

    @app.get("/api/status")
    async def get_status():
        """Health check endpoint - unguarded."""
        return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}

    @app.post("/api/orders", response_model=OrderResponse)
    @debounce(orchestrator, window_ms=5000, message="Order is being processed, do not resubmit", prefix="order")
    async def create_order(request: Request, order: OrderRequest):
        """Create an order; duplicate submissions within 5s are rejected."""
        await asyncio.sleep(processing_delay)
        return OrderResponse(
            order_id=f"ord_{uuid.uuid4().hex[:12]}",
            status="created",
            product_id=order.product_id,
            quantity=order.quantity,
            created_at=datetime.now(UTC).isoformat(),
        )

    @app.post("/api/orders/{order_id}/cancel")
    @debounce(orchestrator, window_ms=3000, message="Cancellation is being processed", prefix="order")
    async def cancel_order(request: Request, order_id: str):
        """Cancel an order; duplicate cancellations within 3s are rejected."""
        await asyncio.sleep(processing_delay)
        return {"order_id": order_id, "status": "cancelled"}

    @app.post("/api/payments/{payment_id}")
    async def create_payment(payment_id: str, payment: PaymentRequest):
        """Create a payment; guarded by the route table."""
        await asyncio.sleep(processing_delay)
        return {
            "id": payment_id,
            "status": "success",
            "amount": payment.amount,
            "currency": payment.currency,
            "processed_at": int(time.time() * 1000),
        }

    @app.post("/api/payments/{payment_id}/refund")
    async def refund_payment(payment_id: str):
        await asyncio.sleep(processing_delay)
        return {"id": payment_id, "status": "refunded"}

    return app


app = create_app()


if __name__ == "__main__":
    configure_logging(DebounceSettings.from_env())
    print("Starting Debounce Guard Demo on http://localhost:8000")
    print("API docs available at http://localhost:8000/docs")
    uvicorn.run(app, host="0.0.0.0", port=8000)
