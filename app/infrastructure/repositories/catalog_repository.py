"""Catalog repository - courses, events and digital products.

The three sellable item kinds share the columns id, title, slug,
description, price and is_published, so most lookups are parametrised
by item type.
"""
from typing import Optional

from .base import Repository

# Cart/order item type -> table
ITEM_TABLES = {
    "course": "courses",
    "event": "events",
    "digital_product": "digital_products",
}

# Search result type -> table
SEARCH_TABLES = {
    "course": "courses",
    "product": "digital_products",
    "event": "events",
}


class CatalogRepository(Repository):
    """Repository for the sellable catalog."""

    # ------------------------------------------------------------------
    # Courses
    # ------------------------------------------------------------------

    def create_course(
        self,
        title: str,
        slug: str,
        price: float,
        description: str = "",
        level: Optional[str] = None,
        instructor_name: Optional[str] = None,
        image_url: Optional[str] = None,
        is_published: bool = True
    ) -> int:
        """Create a course.

        Returns:
            New course ID
        """
        cursor = self._execute(
            """INSERT INTO courses
               (title, slug, description, price, level, instructor_name, image_url, is_published)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (title, slug, description, price, level, instructor_name, image_url, int(is_published))
        )
        self._commit()
        return cursor.lastrowid

    def get_course(self, course_id: int) -> dict | None:
        return self._fetchone("SELECT * FROM courses WHERE id = ?", (course_id,))

    def get_course_by_slug(self, slug: str) -> dict | None:
        return self._fetchone("SELECT * FROM courses WHERE slug = ?", (slug,))

    def list_published_courses(self) -> list[dict]:
        return self._fetchall(
            "SELECT * FROM courses WHERE is_published = 1 ORDER BY title"
        )

    # ------------------------------------------------------------------
    # Events and products
    # ------------------------------------------------------------------

    def create_event(
        self,
        title: str,
        slug: str,
        price: float,
        event_date: Optional[str] = None,
        venue_city: Optional[str] = None,
        venue_name: Optional[str] = None,
        venue_country: Optional[str] = None,
        description: str = "",
        capacity: Optional[int] = None,
        is_published: bool = True
    ) -> int:
        """Create an event.

        Returns:
            New event ID
        """
        cursor = self._execute(
            """INSERT INTO events
               (title, slug, description, price, event_date, venue_name, venue_city,
                venue_country, capacity, is_published)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (title, slug, description, price, event_date, venue_name, venue_city,
             venue_country, capacity, int(is_published))
        )
        self._commit()
        return cursor.lastrowid

    def create_product(
        self,
        title: str,
        slug: str,
        price: float,
        product_type: str,
        description: str = "",
        image_url: Optional[str] = None,
        is_published: bool = True
    ) -> int:
        """Create a digital product.

        Returns:
            New product ID
        """
        cursor = self._execute(
            """INSERT INTO digital_products
               (title, slug, description, price, product_type, image_url, is_published)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (title, slug, description, price, product_type, image_url, int(is_published))
        )
        self._commit()
        return cursor.lastrowid

    def get_item(self, item_type: str, item_id: int) -> dict | None:
        """Get a published sellable item.

        Args:
            item_type: "course", "event" or "digital_product"
            item_id: Row ID

        Returns:
            Item dict or None if unknown, unpublished or the type is invalid
        """
        table = ITEM_TABLES.get(item_type)
        if table is None:
            return None
        return self._fetchone(
            f"SELECT * FROM {table} WHERE id = ? AND is_published = 1",
            (item_id,)
        )

    def list_published(self, item_type: str) -> list[dict]:
        """List published items of one type (used by the sitemap)."""
        table = ITEM_TABLES[item_type]
        return self._fetchall(
            f"SELECT id, slug, title, updated_at FROM {table} WHERE is_published = 1 ORDER BY id"
        )

    def slug_exists(self, item_type: str, slug: str) -> bool:
        table = ITEM_TABLES[item_type]
        return self._fetchone(f"SELECT 1 FROM {table} WHERE slug = ?", (slug,)) is not None

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query: str,
        item_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        level: Optional[str] = None,
        product_type: Optional[str] = None,
        city: Optional[str] = None,
        limit: int = 20,
        offset: int = 0
    ) -> tuple[list[dict], int]:
        """Full-catalog search across courses, products and events.

        Type-specific filters (level, product_type, city) restrict the
        results to the matching type.

        Args:
            query: Text matched against title and description
            item_type: Restrict to "course", "product" or "event"
            min_price: Inclusive lower price bound
            max_price: Inclusive upper price bound
            level: Course level
            product_type: Digital product type
            city: Event city
            limit: Page size
            offset: Page offset

        Returns:
            Tuple of (page of result dicts, total match count)
        """
        pattern = f"%{query.strip().lower()}%"
        selects = []
        params: list = []

        for result_type, table in SEARCH_TABLES.items():
            if item_type and item_type != result_type:
                continue
            if level and result_type != "course":
                continue
            if product_type and result_type != "product":
                continue
            if city and result_type != "event":
                continue

            conditions = ["is_published = 1", "(LOWER(title) LIKE ? OR LOWER(COALESCE(description, '')) LIKE ?)"]
            table_params: list = [pattern, pattern]
            if min_price is not None:
                conditions.append("price >= ?")
                table_params.append(min_price)
            if max_price is not None:
                conditions.append("price <= ?")
                table_params.append(max_price)
            if level and result_type == "course":
                conditions.append("LOWER(level) = ?")
                table_params.append(level.lower())
            if product_type and result_type == "product":
                conditions.append("product_type = ?")
                table_params.append(product_type)
            if city and result_type == "event":
                conditions.append("LOWER(venue_city) = ?")
                table_params.append(city.lower())

            selects.append(
                f"""SELECT '{result_type}' AS type, id, title, slug, description, price
                    FROM {table} WHERE {' AND '.join(conditions)}"""
            )
            params.extend(table_params)

        if not selects:
            return [], 0

        union = " UNION ALL ".join(selects)
        total = self._execute(f"SELECT COUNT(*) AS count FROM ({union})", tuple(params)).fetchone()["count"]
        rows = self._fetchall(
            f"SELECT * FROM ({union}) ORDER BY title, type, id LIMIT ? OFFSET ?",
            tuple(params) + (limit, offset)
        )
        return rows, total
