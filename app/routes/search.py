"""Catalog search route."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from ..database import create_connection
from ..infrastructure.services.rate_limiter import RateLimitProfiles, rate_limit
from .deps import get_search_service

router = APIRouter()


@router.get("/api/search", dependencies=[Depends(rate_limit(RateLimitProfiles.SEARCH))])
def search(
    response: Response,
    q: Optional[str] = None,
    type: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    level: Optional[str] = None,
    product_type: Optional[str] = Query(None, alias="productType"),
    city: Optional[str] = None,
    limit: int = 20,
    offset: int = 0
):
    """Search published courses, products and events."""
    db = create_connection()
    try:
        results = get_search_service(db).search(
            q,
            item_type=type,
            min_price=min_price,
            max_price=max_price,
            level=level,
            product_type=product_type,
            city=city,
            limit=limit,
            offset=offset
        )
    finally:
        db.close()

    response.headers["Cache-Control"] = "public, max-age=60"
    return {"success": True, **results}
