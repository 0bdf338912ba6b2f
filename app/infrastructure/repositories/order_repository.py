"""Order repository - orders, order items, course enrollments and event bookings."""
from typing import Optional

from .base import Repository

# Cart item type -> order_items foreign key column
ITEM_COLUMNS = {
    "course": "course_id",
    "event": "event_id",
    "digital_product": "product_id",
}


class OrderRepository(Repository):
    """Repository for orders and the enrollments they grant.

    Examples:
        >>> repo = OrderRepository(db)
        >>> order_id = repo.create(1, items, subtotal=50.0, tax=4.0, total=54.0)
        >>> repo.set_status(order_id, "completed")
        >>> repo.enroll_courses(order_id)
    """

    def create(
        self,
        user_id: int,
        items: list[dict],
        subtotal: float,
        tax: float,
        total: float
    ) -> int:
        """Create a pending order with its items and pending event bookings.

        Args:
            user_id: Buyer
            items: Dicts with itemType, itemId, title, price, quantity
            subtotal: Sum of item prices
            tax: Tax amount
            total: subtotal + tax

        Returns:
            New order ID
        """
        cursor = self._execute(
            """INSERT INTO orders (user_id, status, subtotal, tax, total)
               VALUES (?, 'pending', ?, ?, ?)""",
            (user_id, subtotal, tax, total)
        )
        order_id = cursor.lastrowid

        rows = []
        for item in items:
            ids = {column: None for column in ITEM_COLUMNS.values()}
            ids[ITEM_COLUMNS[item["itemType"]]] = item["itemId"]
            rows.append((
                order_id, item["itemType"], ids["course_id"], ids["event_id"],
                ids["product_id"], item["title"], item["price"], item.get("quantity", 1)
            ))
        self._execute_many(
            """INSERT INTO order_items
               (order_id, item_type, course_id, event_id, product_id, title, price, quantity)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            rows
        )
        # Event tickets are held as pending bookings until payment completes
        self._execute(
            """INSERT INTO bookings (user_id, event_id, order_id, attendees)
               SELECT ?, event_id, order_id, quantity FROM order_items
               WHERE order_id = ? AND item_type = 'event' AND event_id IS NOT NULL""",
            (user_id, order_id)
        )
        self._commit()
        return order_id

    def get_by_id(self, order_id: int) -> dict | None:
        return self._fetchone("SELECT * FROM orders WHERE id = ?", (order_id,))

    def get_items(self, order_id: int) -> list[dict]:
        return self._fetchall(
            "SELECT * FROM order_items WHERE order_id = ? ORDER BY id",
            (order_id,)
        )

    def list_for_user(self, user_id: int) -> list[dict]:
        """List a user's orders, newest first."""
        return self._fetchall(
            "SELECT * FROM orders WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,)
        )

    def list_all(self, status: Optional[str] = None, limit: int = 100, offset: int = 0) -> list[dict]:
        """List orders for the admin view.

        Args:
            status: Optional status filter
            limit: Page size
            offset: Page offset

        Returns:
            Order dicts joined with the buyer's email
        """
        sql = """SELECT o.*, u.email AS user_email
                 FROM orders o JOIN users u ON o.user_id = u.id"""
        params: tuple = ()
        if status:
            sql += " WHERE o.status = ?"
            params = (status,)
        sql += " ORDER BY o.created_at DESC, o.id DESC LIMIT ? OFFSET ?"
        return self._fetchall(sql, params + (limit, offset))

    def set_status(
        self,
        order_id: int,
        status: str,
        payment_intent_id: Optional[str] = None,
        stripe_session_id: Optional[str] = None,
        commit: bool = True
    ) -> bool:
        """Change the order status, optionally recording Stripe identifiers.

        Returns:
            True if the order exists
        """
        cursor = self._execute(
            """UPDATE orders
               SET status = ?,
                   stripe_payment_intent_id = COALESCE(?, stripe_payment_intent_id),
                   stripe_session_id = COALESCE(?, stripe_session_id),
                   updated_at = CURRENT_TIMESTAMP
               WHERE id = ?""",
            (status, payment_intent_id, stripe_session_id, order_id)
        )
        self._commit(commit)
        return cursor.rowcount > 0

    def enroll_courses(self, order_id: int, commit: bool = True) -> int:
        """Enroll the buyer in every course of the order.

        Existing enrollments are left untouched, so replays are harmless.

        Returns:
            Number of new enrollments
        """
        cursor = self._execute(
            """INSERT OR IGNORE INTO course_enrollments (user_id, course_id, order_id)
               SELECT o.user_id, oi.course_id, o.id
               FROM orders o JOIN order_items oi ON oi.order_id = o.id
               WHERE o.id = ? AND oi.item_type = 'course' AND oi.course_id IS NOT NULL""",
            (order_id,)
        )
        self._commit(commit)
        return cursor.rowcount

    def revoke_enrollments(self, order_id: int, commit: bool = True) -> int:
        """Remove enrollments granted by an order.

        Returns:
            Number of enrollments removed
        """
        cursor = self._execute(
            "DELETE FROM course_enrollments WHERE order_id = ?",
            (order_id,)
        )
        self._commit(commit)
        return cursor.rowcount

    def is_enrolled(self, user_id: int, course_id: int) -> bool:
        """True if the user is enrolled or holds a completed order for the course."""
        row = self._fetchone(
            """SELECT 1 FROM course_enrollments WHERE user_id = ? AND course_id = ?
               UNION
               SELECT 1 FROM order_items oi JOIN orders o ON oi.order_id = o.id
               WHERE o.user_id = ? AND oi.course_id = ? AND o.status = 'completed'
               LIMIT 1""",
            (user_id, course_id, user_id, course_id)
        )
        return row is not None

    def confirm_bookings(self, order_id: int, commit: bool = True) -> int:
        """Confirm the pending event bookings of a paid order.

        Returns:
            Number of bookings confirmed
        """
        cursor = self._execute(
            """UPDATE bookings SET status = 'confirmed', updated_at = CURRENT_TIMESTAMP
               WHERE order_id = ? AND status = 'pending'""",
            (order_id,)
        )
        self._commit(commit)
        return cursor.rowcount

    def cancel_bookings(self, order_id: int, commit: bool = True) -> int:
        cursor = self._execute(
            """UPDATE bookings SET status = 'cancelled', updated_at = CURRENT_TIMESTAMP
               WHERE order_id = ? AND status != 'cancelled'""",
            (order_id,)
        )
        self._commit(commit)
        return cursor.rowcount

    def list_bookings_for_user(self, user_id: int) -> list[dict]:
        """List a user's bookings with event title and date, newest first."""
        return self._fetchall(
            """SELECT b.*, e.title AS event_title, e.event_date, e.venue_city
               FROM bookings b JOIN events e ON b.event_id = e.id
               WHERE b.user_id = ?
               ORDER BY b.created_at DESC, b.id DESC""",
            (user_id,)
        )
