"""
Cart, checkout and Stripe webhook integration tests.

Verifies:
- Server-side prices and quantity rules in the cart
- Pending order creation from the cart
- Signed, idempotent webhook handling and enrollment
- Event bookings follow the order from pending to confirmed or cancelled
"""
import json
import threading

from fastapi.testclient import TestClient

import app.routes.checkout as checkout_routes
from app.infrastructure.services.stripe_signature import build_signature_header
from tests.conftest import WEBHOOK_SECRET


def _send_webhook(client: TestClient, event: dict, secret: str = WEBHOOK_SECRET):
    payload = json.dumps(event).encode()
    return client.post(
        "/api/checkout/webhook",
        content=payload,
        headers={
            "stripe-signature": build_signature_header(payload, secret),
            "Content-Type": "application/json",
        }
    )


def _checkout_completed(event_id: str, order_id: int, session_id: str) -> dict:
    return {
        "id": event_id,
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_test_1",
            "payment_intent": "pi_test_1",
            "metadata": {"orderId": str(order_id), "sessionId": session_id},
        }},
    }


def _enrollments(db, user_id: int, course_id: int) -> int:
    return db.execute(
        "SELECT COUNT(*) AS n FROM course_enrollments WHERE user_id = ? AND course_id = ?",
        (user_id, course_id)
    ).fetchone()["n"]


class TestCart:

    def test_guest_cart_is_empty(self, client: TestClient):
        cart = client.get("/api/cart").json()["cart"]
        assert cart["userId"] == "guest"
        assert cart["items"] == []
        assert cart["total"] == 0

    def test_guest_cannot_add(self, client: TestClient, catalog: dict):
        client.headers["X-CSRF-Token"] = client.get("/api/auth/csrf-token").json()["csrfToken"]

        response = client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})

        assert response.status_code == 401

    def test_add_course_uses_catalog_price(self, authenticated_client: TestClient, catalog: dict, test_user: dict):
        response = authenticated_client.post("/api/cart/add", json={
            "itemType": "course",
            "itemId": catalog["course"],
            "price": 0.01,
        })

        assert response.status_code == 200
        cart = response.json()["cart"]
        assert cart["userId"] == test_user["id"]
        assert cart["items"][0]["price"] == 49.99
        assert cart["subtotal"] == 49.99
        assert cart["tax"] == 4.0
        assert cart["total"] == 53.99

    def test_course_added_twice_stays_single(self, authenticated_client: TestClient, catalog: dict):
        for _ in range(2):
            authenticated_client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})

        cart = authenticated_client.get("/api/cart").json()["cart"]
        assert cart["itemCount"] == 1

    def test_event_tickets(self, authenticated_client: TestClient, catalog: dict):
        ok = authenticated_client.post("/api/cart/add", json={
            "itemType": "event", "itemId": catalog["event"], "quantity": 3,
        })
        assert ok.json()["cart"]["items"][0]["quantity"] == 3

        too_many = authenticated_client.post("/api/cart/add", json={
            "itemType": "event", "itemId": catalog["event"], "quantity": 8,
        })
        assert too_many.status_code == 400

    def test_unpublished_item_not_found(self, authenticated_client: TestClient, catalog: dict):
        response = authenticated_client.post("/api/cart/add", json={
            "itemType": "course", "itemId": catalog["draft_course"],
        })
        assert response.status_code == 404

    def test_invalid_item_type(self, authenticated_client: TestClient, catalog: dict):
        response = authenticated_client.post("/api/cart/add", json={"itemType": "membership", "itemId": 1})
        assert response.status_code == 400

    def test_remove(self, authenticated_client: TestClient, catalog: dict):
        authenticated_client.post("/api/cart/add", json={"itemType": "digital_product", "itemId": catalog["product"]})

        response = authenticated_client.request(
            "DELETE", "/api/cart/remove",
            json={"itemType": "digital_product", "itemId": catalog["product"]}
        )

        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []

        missing = authenticated_client.request(
            "DELETE", "/api/cart/remove",
            json={"itemType": "digital_product", "itemId": catalog["product"]}
        )
        assert missing.status_code == 404


class TestCheckout:

    def test_empty_cart_rejected(self, authenticated_client: TestClient):
        response = authenticated_client.post("/api/checkout/create-order")
        assert response.status_code == 400

    def test_order_then_webhook_enrolls_once(
        self, authenticated_client: TestClient, catalog: dict, test_user: dict, db
    ):
        client = authenticated_client
        client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})

        order = client.post("/api/checkout/create-order").json()["order"]
        assert order["status"] == "pending"
        assert order["total"] == 53.99
        assert _enrollments(db, test_user["id"], catalog["course"]) == 0

        event = _checkout_completed("evt_test_1", order["orderId"], client.cookies.get("platform_session"))
        first = _send_webhook(client, event)
        duplicate = _send_webhook(client, event)

        assert first.status_code == 200
        assert first.json()["message"] == "Order completed successfully"
        assert duplicate.json()["message"] == "Event already processed (idempotent)"
        assert _enrollments(db, test_user["id"], catalog["course"]) == 1

        orders = client.get("/api/orders").json()["orders"]
        assert orders[0]["status"] == "completed"
        assert orders[0]["items"][0]["title"] == "Mindful Meditation Basics"
        assert client.get("/api/cart").json()["cart"]["items"] == []

    def test_redelivery_with_new_event_id_does_not_reenroll(
        self, authenticated_client: TestClient, catalog: dict, test_user: dict, db
    ):
        client = authenticated_client
        client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})
        order_id = client.post("/api/checkout/create-order").json()["order"]["orderId"]
        session_id = client.cookies.get("platform_session")

        _send_webhook(client, _checkout_completed("evt_a", order_id, session_id))
        second = _send_webhook(client, _checkout_completed("evt_b", order_id, session_id))

        assert second.json()["message"] == "Order already completed"
        assert _enrollments(db, test_user["id"], catalog["course"]) == 1

    def test_refund_revokes_access(self, authenticated_client: TestClient, catalog: dict, test_user: dict, db):
        client = authenticated_client
        client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})
        order_id = client.post("/api/checkout/create-order").json()["order"]["orderId"]
        _send_webhook(client, _checkout_completed("evt_pay", order_id, client.cookies.get("platform_session")))

        _send_webhook(client, {
            "id": "evt_refund",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_1", "metadata": {"orderId": str(order_id)}}},
        })

        assert _enrollments(db, test_user["id"], catalog["course"]) == 0
        assert client.get("/api/orders").json()["orders"][0]["status"] == "refunded"

    def test_payment_failed_marks_order(self, authenticated_client: TestClient, catalog: dict):
        client = authenticated_client
        client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})
        order_id = client.post("/api/checkout/create-order").json()["order"]["orderId"]

        _send_webhook(client, {
            "id": "evt_fail",
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_1", "metadata": {"orderId": str(order_id)}}},
        })

        assert client.get("/api/orders").json()["orders"][0]["status"] == "payment_failed"


class TestWebhookSecurity:

    def test_missing_signature(self, client: TestClient):
        response = client.post("/api/checkout/webhook", content=b"{}")
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Missing Stripe signature"

    def test_wrong_secret(self, client: TestClient):
        response = _send_webhook(client, {"id": "evt_x", "type": "customer.created"}, secret="whsec_wrong")
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid signature"

    def test_unknown_order(self, client: TestClient):
        response = _send_webhook(client, _checkout_completed("evt_missing", 9999, "none"))
        assert response.status_code == 404

    def test_unhandled_event_type_acknowledged(self, client: TestClient):
        response = _send_webhook(client, {"id": "evt_other", "type": "customer.created", "data": {"object": {}}})
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_handled_off_the_event_loop(self, client: TestClient, monkeypatch):
        threads = {}
        dispatch = checkout_routes.run_in_threadpool
        process = checkout_routes._process_webhook

        async def recording_dispatch(func, *args):
            threads["loop"] = threading.get_ident()
            return await dispatch(func, *args)

        def recording_process(payload, signature):
            threads["worker"] = threading.get_ident()
            return process(payload, signature)

        monkeypatch.setattr(checkout_routes, "run_in_threadpool", recording_dispatch)
        monkeypatch.setattr(checkout_routes, "_process_webhook", recording_process)

        response = _send_webhook(client, {"id": "evt_thread", "type": "customer.created", "data": {"object": {}}})

        assert response.status_code == 200
        assert threads["worker"] != threads["loop"]


class TestBookings:

    def _book_tickets(self, client: TestClient, catalog: dict, quantity: int = 2) -> int:
        client.post("/api/cart/add", json={
            "itemType": "event", "itemId": catalog["event"], "quantity": quantity,
        })
        return client.post("/api/checkout/create-order").json()["order"]["orderId"]

    def test_requires_login(self, client: TestClient):
        assert client.get("/api/bookings").status_code == 401

    def test_order_creates_pending_booking(self, authenticated_client: TestClient, catalog: dict):
        order_id = self._book_tickets(authenticated_client, catalog)

        bookings = authenticated_client.get("/api/bookings").json()["bookings"]

        assert len(bookings) == 1
        assert bookings[0]["order_id"] == order_id
        assert bookings[0]["event_id"] == catalog["event"]
        assert bookings[0]["attendees"] == 2
        assert bookings[0]["status"] == "pending"

    def test_payment_confirms_and_refund_cancels(self, authenticated_client: TestClient, catalog: dict):
        client = authenticated_client
        order_id = self._book_tickets(client, catalog, quantity=3)

        _send_webhook(client, _checkout_completed("evt_book", order_id, client.cookies.get("platform_session")))
        assert client.get("/api/bookings").json()["bookings"][0]["status"] == "confirmed"

        _send_webhook(client, {
            "id": "evt_book_refund",
            "type": "charge.refunded",
            "data": {"object": {"id": "ch_2", "metadata": {"orderId": str(order_id)}}},
        })
        assert client.get("/api/bookings").json()["bookings"][0]["status"] == "cancelled"

    def test_failed_payment_leaves_booking_pending(self, authenticated_client: TestClient, catalog: dict):
        client = authenticated_client
        order_id = self._book_tickets(client, catalog)

        _send_webhook(client, {
            "id": "evt_book_fail",
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_2", "metadata": {"orderId": str(order_id)}}},
        })

        assert client.get("/api/bookings").json()["bookings"][0]["status"] == "pending"

    def test_course_order_books_nothing(self, authenticated_client: TestClient, catalog: dict):
        authenticated_client.post("/api/cart/add", json={"itemType": "course", "itemId": catalog["course"]})
        authenticated_client.post("/api/checkout/create-order")

        assert authenticated_client.get("/api/bookings").json()["bookings"] == []
