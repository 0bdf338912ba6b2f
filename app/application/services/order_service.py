"""Order service - turns carts into pending orders and lists orders."""
import logging
from typing import Optional

from ...config import TAX_RATE
from ...errors import ValidationError
from ...infrastructure.repositories import OrderRepository
from .cart_service import CartService, calculate_totals

logger = logging.getLogger(__name__)

ORDER_STATUSES = ("pending", "completed", "payment_failed", "refunded", "cancelled")


class OrderService:
    """Service for order creation and listing."""

    def __init__(self, order_repository: OrderRepository, cart_service: CartService):
        self.order_repo = order_repository
        self.cart = cart_service

    def create_order_from_cart(self, session_id: str, user_id: int) -> dict:
        """Create a pending order holding the current cart items.

        The returned ``orderId`` is what the Stripe Checkout Session carries
        in ``metadata.orderId``; the cart is cleared only once payment completes.

        Raises:
            ValidationError: Empty cart
        """
        cart = self.cart.get_cart(session_id, user_id)
        items = cart["items"]
        if not items:
            raise ValidationError("Cart is empty")

        totals = calculate_totals(items, TAX_RATE)
        order_id = self.order_repo.create(
            user_id=user_id,
            items=items,
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            total=totals["total"]
        )
        logger.info("Order created", extra={"order_id": order_id, "user_id": user_id, "total": totals["total"]})

        return {
            "orderId": order_id,
            "status": "pending",
            "items": items,
            "subtotal": totals["subtotal"],
            "tax": totals["tax"],
            "total": totals["total"],
            "metadata": {"orderId": str(order_id), "sessionId": session_id},
        }

    def _with_items(self, order: dict) -> dict:
        return {**order, "items": self.order_repo.get_items(order["id"])}

    def list_user_orders(self, user_id: int) -> list[dict]:
        return [self._with_items(order) for order in self.order_repo.list_for_user(user_id)]

    def list_all_orders(
        self,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> list[dict]:
        if status and status not in ORDER_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
        return [self._with_items(order) for order in self.order_repo.list_all(status, limit, offset)]

    def list_user_bookings(self, user_id: int) -> list[dict]:
        return self.order_repo.list_bookings_for_user(user_id)
