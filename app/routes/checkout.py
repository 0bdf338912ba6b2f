"""Checkout routes - order creation, Stripe webhook, order and booking listings."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.concurrency import run_in_threadpool

from ..database import create_connection
from ..dependencies import require_admin, require_user
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_order_service, get_webhook_service

router = APIRouter()


@router.post(
    "/api/checkout/create-order",
    dependencies=[Depends(rate_limit(RateLimitProfiles.CHECKOUT))]
)
def create_order(request: Request):
    """Turn the cart into a pending order awaiting payment."""
    user = require_user(request)
    db = create_connection()
    try:
        order = get_order_service(db).create_order_from_cart(user["session_id"], user["id"])
        return {"success": True, "order": order}
    finally:
        db.close()


@router.post("/api/checkout/webhook")
async def stripe_webhook(request: Request):
    """Stripe delivery endpoint; authenticated by the signature header."""
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    return await run_in_threadpool(_process_webhook, payload, signature)


def _process_webhook(payload: bytes, signature: str | None) -> dict:
    db = create_connection()
    try:
        return get_webhook_service(db).handle(payload, signature)
    finally:
        db.close()


@router.get("/api/orders")
def list_my_orders(request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        return {"success": True, "orders": get_order_service(db).list_user_orders(user["id"])}
    finally:
        db.close()


@router.get("/api/bookings")
def list_my_bookings(request: Request):
    """Event bookings of the current user, pending until their order is paid."""
    user = require_user(request)
    db = create_connection()
    try:
        return {"success": True, "bookings": get_order_service(db).list_user_bookings(user["id"])}
    finally:
        db.close()


@router.get(
    "/api/admin/orders",
    dependencies=[Depends(rate_limit(RateLimitProfiles.ADMIN))]
)
def list_all_orders(
    request: Request,
    status: Optional[str] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0)
):
    require_admin(request)
    db = create_connection()
    try:
        orders = get_order_service(db).list_all_orders(status, limit, offset)
        return {"success": True, "orders": orders}
    finally:
        db.close()
