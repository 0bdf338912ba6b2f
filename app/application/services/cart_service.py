"""Cart service - per-session shopping carts stored in Redis.

A cart lives under ``cart:{session_id}`` as a JSON list of items and
expires seven days after its last change. Prices are always read from the
catalog, never from the client.
"""
import logging
from typing import Optional

from ...config import CART_TTL, MAX_EVENT_TICKETS, TAX_RATE
from ...errors import NotFoundError, ValidationError
from ...infrastructure.repositories import CatalogRepository
from ...infrastructure.repositories.catalog_repository import ITEM_TABLES
from ...infrastructure.services.redis_client import RedisClient, get_redis

logger = logging.getLogger(__name__)

ITEM_TYPES = tuple(ITEM_TABLES)


def cart_key(session_id: str) -> str:
    return f"cart:{session_id}"


def calculate_totals(items: list[dict], tax_rate: float = TAX_RATE) -> dict:
    subtotal = round(sum(item["price"] * item["quantity"] for item in items), 2)
    tax = round(subtotal * tax_rate, 2)
    return {
        "subtotal": subtotal,
        "tax": tax,
        "total": round(subtotal + tax, 2),
        "itemCount": sum(item["quantity"] for item in items),
    }


def _validate_item_type(item_type: Optional[str]) -> str:
    if item_type not in ITEM_TYPES:
        raise ValidationError(f"Invalid item type. Must be one of: {', '.join(ITEM_TYPES)}")
    return item_type


class CartService:
    """Service for cart operations."""

    def __init__(
        self,
        catalog_repository: CatalogRepository,
        cache: Optional[RedisClient] = None
    ):
        self.catalog_repo = catalog_repository
        self.cache = cache or get_redis()

    def _load(self, session_id: str) -> list[dict]:
        return self.cache.get_json(cart_key(session_id)) or []

    def _save(self, session_id: str, items: list[dict]) -> None:
        if items:
            self.cache.set_json(cart_key(session_id), items, CART_TTL)
        else:
            self.cache.delete(cart_key(session_id))

    def get_cart(self, session_id: Optional[str], user_id: Optional[int] = None) -> dict:
        """Cart contents with totals; guests get an empty cart."""
        items = self._load(session_id) if session_id else []
        return {
            "userId": user_id if user_id is not None else "guest",
            "items": items,
            **calculate_totals(items),
        }

    def add_item(
        self,
        session_id: str,
        item_type: Optional[str],
        item_id: Optional[int],
        quantity: int = 1,
        user_id: Optional[int] = None
    ) -> dict:
        """Add an item or raise its quantity.

        Courses and digital products always have quantity 1; event tickets
        accept 1..MAX_EVENT_TICKETS.

        Raises:
            ValidationError: Bad type, id or quantity
            NotFoundError: Unknown or unpublished item
        """
        item_type = _validate_item_type(item_type)
        if not item_id:
            raise ValidationError("Item ID is required")
        if not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("Quantity must be a positive integer")

        product = self.catalog_repo.get_item(item_type, item_id)
        if not product:
            raise NotFoundError("Item")

        items = self._load(session_id)
        existing = next(
            (item for item in items if item["itemType"] == item_type and item["itemId"] == item_id),
            None
        )

        if item_type == "event":
            new_quantity = quantity + (existing["quantity"] if existing else 0)
            if new_quantity > MAX_EVENT_TICKETS:
                raise ValidationError(f"Maximum {MAX_EVENT_TICKETS} tickets per event")
        else:
            new_quantity = 1

        if existing:
            existing["quantity"] = new_quantity
            existing["price"] = product["price"]
        else:
            items.append({
                "itemType": item_type,
                "itemId": item_id,
                "title": product["title"],
                "price": product["price"],
                "quantity": new_quantity,
            })

        self._save(session_id, items)
        logger.info("Cart item added", extra={"item_type": item_type, "item_id": item_id})
        return self.get_cart(session_id, user_id)

    def remove_item(
        self,
        session_id: str,
        item_type: Optional[str],
        item_id: Optional[int],
        user_id: Optional[int] = None
    ) -> dict:
        """Remove an item entirely.

        Raises:
            ValidationError: Missing fields or bad type
            NotFoundError: Item not in the cart
        """
        if not item_type or not item_id:
            raise ValidationError("Item type and ID are required")
        _validate_item_type(item_type)

        items = self._load(session_id)
        remaining = [
            item for item in items
            if not (item["itemType"] == item_type and item["itemId"] == item_id)
        ]
        if len(remaining) == len(items):
            raise NotFoundError("Item in cart")

        self._save(session_id, remaining)
        return self.get_cart(session_id, user_id)

    def clear_cart(self, session_id: str) -> None:
        self.cache.delete(cart_key(session_id))
