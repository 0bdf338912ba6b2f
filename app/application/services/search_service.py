"""Search service - query validation and catalog search."""
from typing import Optional

from ...errors import ValidationError
from ...infrastructure.repositories import CatalogRepository
from ...infrastructure.repositories.catalog_repository import SEARCH_TABLES

MAX_QUERY_LENGTH = 200
DEFAULT_LIMIT = 20
MAX_LIMIT = 100
PRODUCT_TYPES = ("pdf", "audio", "video", "ebook")


class SearchService:
    """Service for the public catalog search."""

    def __init__(self, catalog_repository: CatalogRepository):
        self.catalog_repo = catalog_repository

    def search(
        self,
        query: Optional[str],
        item_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        level: Optional[str] = None,
        product_type: Optional[str] = None,
        city: Optional[str] = None,
        limit: int = DEFAULT_LIMIT,
        offset: int = 0
    ) -> dict:
        """Validate parameters and run the search.

        Returns:
            Dict with items, total, limit, offset and hasMore

        Raises:
            ValidationError: Any parameter out of range
        """
        query = (query or "").strip()
        if not query:
            raise ValidationError("Search query is required")
        if len(query) > MAX_QUERY_LENGTH:
            raise ValidationError(f"Search query must be at most {MAX_QUERY_LENGTH} characters")
        if item_type and item_type not in SEARCH_TABLES:
            raise ValidationError(f"Invalid type. Must be one of: {', '.join(SEARCH_TABLES)}")
        if min_price is not None and min_price < 0:
            raise ValidationError("minPrice must be non-negative")
        if max_price is not None and max_price < 0:
            raise ValidationError("maxPrice must be non-negative")
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("minPrice cannot be greater than maxPrice")
        if product_type and product_type not in PRODUCT_TYPES:
            raise ValidationError(f"Invalid productType. Must be one of: {', '.join(PRODUCT_TYPES)}")
        if not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}")
        if offset < 0:
            raise ValidationError("offset must be non-negative")

        items, total = self.catalog_repo.search(
            query,
            item_type=item_type,
            min_price=min_price,
            max_price=max_price,
            level=level,
            product_type=product_type,
            city=city,
            limit=limit,
            offset=offset
        )
        return {
            "items": items,
            "total": total,
            "limit": limit,
            "offset": offset,
            "hasMore": offset + len(items) < total,
        }
