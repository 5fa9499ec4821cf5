"""Orders REST API router.

Every request works inside its own session context, keyed by request, and
made ambient for its duration. Sessions are never shared between concurrent
requests. Nested acquisitions within a request share the context, so a
single request produces one created/disposed pair.
"""

from __future__ import annotations

from collections.abc import Iterator
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy import text

from .database import AmbientContextService, SessionContext, SessionContextFactory

router = APIRouter(prefix="/orders", tags=["orders"])

CONTEXT_KEY_PREFIX = "orders-request-"


# -- Request / Response models ------------------------------------------------


class PlaceOrderRequest(BaseModel):
    item: str
    quantity: int = 1


class OrderResponse(BaseModel):
    id: int
    item: str
    quantity: int


# -- Dependencies -------------------------------------------------------------


def get_context(request: Request) -> Iterator[SessionContext]:
    """Acquire the orders context and make it ambient for the request."""
    factory: SessionContextFactory = request.app.state.orders_contexts
    ambient: AmbientContextService = request.app.state.ambient_context
    request.state.context_key = f"{CONTEXT_KEY_PREFIX}{uuid4().hex}"
    context = factory.acquire(request.state.context_key)
    previous = ambient.activate(context)
    try:
        yield context
    finally:
        ambient.activate(previous)
        context.release()


# -- Endpoints ----------------------------------------------------------------


@router.post("/", status_code=201)
def place_order(body: PlaceOrderRequest, context: SessionContext = Depends(get_context)) -> OrderResponse:
    """Insert an order in its own transaction."""
    with context.session.begin():
        order_id = context.session.execute(
            text("INSERT INTO orders (item, quantity) VALUES (:item, :quantity) RETURNING id"),
            {"item": body.item, "quantity": body.quantity},
        ).scalar_one()
    return OrderResponse(id=order_id, item=body.item, quantity=body.quantity)


@router.get("/{order_id}")
def get_order(
    order_id: int, request: Request, context: SessionContext = Depends(get_context)
) -> OrderResponse:
    """Retrieve an order by ID."""
    row = _load_order(request.app.state.orders_contexts, request.state.context_key, order_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")
    return OrderResponse(id=row.id, item=row.item, quantity=row.quantity)


# -- Helpers ------------------------------------------------------------------


def _load_order(factory: SessionContextFactory, key: str, order_id: int):  # type: ignore[no-untyped-def]
    context = factory.acquire(key)
    try:
        return context.session.execute(
            text("SELECT id, item, quantity FROM orders WHERE id = :id"),
            {"id": order_id},
        ).one_or_none()
    finally:
        context.release()
