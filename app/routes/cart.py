"""Cart routes - Redis-backed cart tied to the login session."""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field

from ..database import create_connection
from ..dependencies import get_current_user, require_user
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_cart_service

router = APIRouter(
    prefix="/api/cart",
    dependencies=[Depends(rate_limit(RateLimitProfiles.CART))]
)


class CartItemInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    item_type: Optional[str] = Field(None, alias="itemType")
    item_id: Optional[int] = Field(None, alias="itemId")
    quantity: int = 1


@router.get("")
def get_cart(request: Request):
    user = get_current_user(request)
    db = create_connection()
    try:
        service = get_cart_service(db)
        if not user:
            return {"success": True, "cart": service.get_cart(None)}
        return {"success": True, "cart": service.get_cart(user["session_id"], user["id"])}
    finally:
        db.close()


@router.post("/add")
def add_to_cart(data: CartItemInput, request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        cart = get_cart_service(db).add_item(
            session_id=user["session_id"],
            item_type=data.item_type,
            item_id=data.item_id,
            quantity=data.quantity,
            user_id=user["id"]
        )
        return {"success": True, "cart": cart}
    finally:
        db.close()


@router.delete("/remove")
def remove_from_cart(data: CartItemInput, request: Request):
    user = require_user(request)
    db = create_connection()
    try:
        cart = get_cart_service(db).remove_item(
            session_id=user["session_id"],
            item_type=data.item_type,
            item_id=data.item_id,
            user_id=user["id"]
        )
        return {"success": True, "cart": cart}
    finally:
        db.close()
