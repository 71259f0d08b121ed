"""Demo FastAPI application with idempotent replay.

Run with: python demo_app.py

Then send the same payment twice; the second response is replayed and
carries ``idempotency-replayed: true``::

    curl -i -c jar -b jar -X POST localhost:8000/api/payments \\
        -H 'Idempotency-Key: pay-1' -H 'content-type: application/json' \\
        -d '{"amount": 100}'
"""

import itertools
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from idempotent_replay.adapters.asgi import ASGIIdempotencyMiddleware
from idempotent_replay.config import IdempotencyConfig
from idempotent_replay.core.cleanup import start_cleanup_task, stop_cleanup_task
from idempotent_replay.observability.logging import configure_logging
from idempotent_replay.storage.memory import MemorySessionStore

configure_logging(level="INFO", json_output=False)

store = MemorySessionStore()
config = (
    IdempotencyConfig()
    .use_idempotency_key_header("Idempotency-Key")
    .expire_after(600)
)
payment_ids = itertools.count(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = await start_cleanup_task(store, interval_seconds=60)
    yield
    await stop_cleanup_task(task)


app = FastAPI(
    title="Idempotent Replay Demo",
    description="Demo API showing replayed responses for retried payments",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    ASGIIdempotencyMiddleware,
    store=store,
    config=config,
)


class PaymentRequest(BaseModel):
    amount: int
    currency: str = "USD"


class PaymentResponse(BaseModel):
    id: str
    status: str
    amount: int
    currency: str
    created_at: str


@app.post("/api/payments", response_model=PaymentResponse)
async def create_payment(payment: PaymentRequest):
    """Charge a payment. Retries with the same Idempotency-Key are not charged again."""
    if payment.amount <= 0:
        # 400 is never cached, so a corrected retry reaches the handler
        raise HTTPException(status_code=400, detail="amount must be positive")

    return PaymentResponse(
        id=f"pay_{next(payment_ids)}",
        status="charged",
        amount=payment.amount,
        currency=payment.currency,
        created_at=datetime.now(UTC).isoformat(),
    )


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")
