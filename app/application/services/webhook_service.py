"""Stripe webhook service - verified, idempotent payment event handling.

Each delivery is verified against the ``Stripe-Signature`` header, then
skipped if Redis already holds ``webhook:processed:{event_id}``. The key is
written only after the event was handled, so a failed delivery can be
retried by Stripe. Order state changes run in one database transaction and
``checkout.session.completed`` is a no-op for an order that is already
completed, which keeps enrolment single even when the Redis check misses.

A completed checkout also confirms the order's event bookings and emails
the buyer a receipt; a refund cancels the bookings again.
"""
import json
import logging
import sqlite3
from typing import Optional

from ...config import (
    SITE_URL,
    STRIPE_SIGNATURE_TOLERANCE,
    STRIPE_WEBHOOK_SECRET,
    WEBHOOK_IDEMPOTENCY_TTL,
)
from ...database import transaction
from ...errors import AppError, NotFoundError, ValidationError
from ...infrastructure.repositories import OrderRepository, UserRepository
from ...infrastructure.services.email import EmailSender
from ...infrastructure.services.redis_client import RedisClient, get_redis
from ...infrastructure.services.stripe_signature import (
    SignatureVerificationError,
    verify_signature,
)
from .cart_service import CartService

logger = logging.getLogger(__name__)


def idempotency_key(event_id: str) -> str:
    return f"webhook:processed:{event_id}"


def _order_id_from(obj: dict) -> Optional[int]:
    raw = (obj.get("metadata") or {}).get("orderId")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


class WebhookService:
    """Service for Stripe webhook deliveries."""

    def __init__(
        self,
        connection: sqlite3.Connection,
        order_repository: OrderRepository,
        cart_service: CartService,
        user_repository: UserRepository,
        email_sender: Optional[EmailSender] = None,
        cache: Optional[RedisClient] = None,
        secret: str = STRIPE_WEBHOOK_SECRET,
        tolerance: int = STRIPE_SIGNATURE_TOLERANCE,
        site_url: str = SITE_URL
    ):
        self.db = connection
        self.order_repo = order_repository
        self.cart = cart_service
        self.user_repo = user_repository
        self.email = email_sender or EmailSender()
        self.cache = cache or get_redis()
        self.secret = secret
        self.tolerance = tolerance
        self.site_url = site_url.rstrip("/")

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict:
        """Verify the signature and decode the event.

        Raises:
            ValidationError: Missing or invalid signature, or undecodable body
        """
        if not signature:
            logger.error("Missing Stripe signature")
            raise ValidationError("Missing Stripe signature")

        try:
            verify_signature(payload, signature, self.secret, self.tolerance)
        except SignatureVerificationError as e:
            logger.error("Webhook signature verification failed: %s", e)
            raise ValidationError("Invalid signature")

        try:
            event = json.loads(payload)
        except ValueError:
            raise ValidationError("Invalid webhook payload")
        if not isinstance(event, dict) or not event.get("id") or not event.get("type"):
            raise ValidationError("Invalid webhook payload")
        return event

    def is_processed(self, event_id: str) -> bool:
        return self.cache.exists(idempotency_key(event_id))

    def mark_processed(self, event_id: str) -> None:
        self.cache.set(idempotency_key(event_id), "1", WEBHOOK_IDEMPOTENCY_TTL)

    def handle(self, payload: bytes, signature: Optional[str]) -> dict:
        """Process one delivery.

        Args:
            payload: Raw request body
            signature: Stripe-Signature header value

        Returns:
            Response body dict (always ``success: True``)
        """
        event = self.construct_event(payload, signature)
        event_id = event["id"]
        event_type = event["type"]
        logger.info("Webhook received", extra={"event_id": event_id, "event_type": event_type})

        if self.is_processed(event_id):
            logger.info("Webhook event already processed", extra={"event_id": event_id})
            return {"success": True, "message": "Event already processed (idempotent)"}

        obj = (event.get("data") or {}).get("object") or {}
        handlers = {
            "checkout.session.completed": self.handle_checkout_completed,
            "payment_intent.succeeded": self.handle_payment_succeeded,
            "payment_intent.payment_failed": self.handle_payment_failed,
            "charge.refunded": self.handle_refund,
        }
        handler = handlers.get(event_type)
        if handler is None:
            logger.info("Unhandled webhook event type", extra={"event_type": event_type})
            result = {"success": True, "message": "Event received"}
        else:
            result = handler(obj)

        self.mark_processed(event_id)
        return result

    def handle_checkout_completed(self, session: dict) -> dict:
        """Complete the order, enroll the buyer and confirm event bookings.

        Raises:
            ValidationError: No orderId in the session metadata
            NotFoundError: Unknown order
        """
        order_id = _order_id_from(session)
        if order_id is None:
            logger.error("No orderId in checkout session")
            raise ValidationError("Order ID not found in session")

        order = self.order_repo.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order")

        if order["status"] == "completed":
            logger.info("Order already completed", extra={"order_id": order_id})
            return {"success": True, "message": "Order already completed", "orderId": order_id}

        with transaction(self.db):
            self.order_repo.set_status(
                order_id,
                "completed",
                payment_intent_id=session.get("payment_intent"),
                stripe_session_id=session.get("id"),
                commit=False
            )
            enrolled = self.order_repo.enroll_courses(order_id, commit=False)
            confirmed = self.order_repo.confirm_bookings(order_id, commit=False)

        logger.info(
            "Order completed",
            extra={"order_id": order_id, "enrollments": enrolled, "bookings": confirmed}
        )

        cart_session = (session.get("metadata") or {}).get("sessionId")
        if cart_session:
            self.cart.clear_cart(cart_session)

        self.send_order_confirmation(order, session)

        return {"success": True, "message": "Order completed successfully", "orderId": order_id}

    def send_order_confirmation(self, order: dict, session: dict) -> bool:
        """Email the receipt; delivery problems are logged, never raised.

        The address Stripe collected at checkout wins over the account email.
        """
        user = self.user_repo.get_by_id(order["user_id"])
        customer_email = (
            (session.get("customer_details") or {}).get("email")
            or session.get("customer_email")
            or (user["email"] if user else None)
        )
        if not customer_email:
            logger.warning("No email address for order confirmation", extra={"order_id": order["id"]})
            return False

        try:
            return self.email.send_order_confirmation(
                customer_email,
                user["name"] if user else "there",
                order,
                self.order_repo.get_items(order["id"]),
                f"{self.site_url}/dashboard/orders/{order['id']}"
            )
        except AppError as e:
            logger.error("Failed to send order confirmation: %s", e.message, extra={"order_id": order["id"]})
            return False

    def handle_payment_succeeded(self, intent: dict) -> dict:
        logger.info("Payment succeeded", extra={"payment_intent": intent.get("id")})
        return {"success": True, "message": "Payment confirmed"}

    def handle_payment_failed(self, intent: dict) -> dict:
        order_id = _order_id_from(intent)
        if order_id is not None and self.order_repo.get_by_id(order_id):
            self.order_repo.set_status(order_id, "payment_failed", payment_intent_id=intent.get("id"))
            logger.warning("Payment failed", extra={"order_id": order_id})
        else:
            logger.warning("Payment failed for unknown order", extra={"payment_intent": intent.get("id")})
        return {"success": True, "message": "Payment failure recorded"}

    def handle_refund(self, charge: dict) -> dict:
        order_id = _order_id_from(charge)
        if order_id is not None and self.order_repo.get_by_id(order_id):
            with transaction(self.db):
                self.order_repo.set_status(order_id, "refunded", commit=False)
                revoked = self.order_repo.revoke_enrollments(order_id, commit=False)
                cancelled = self.order_repo.cancel_bookings(order_id, commit=False)
            logger.info(
                "Order refunded",
                extra={"order_id": order_id, "revoked": revoked, "cancelled_bookings": cancelled}
            )
        else:
            logger.warning("Refund for unknown order", extra={"charge": charge.get("id")})
        return {"success": True, "message": "Refund processed"}
