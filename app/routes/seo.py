"""Crawler-facing routes - sitemap.xml and robots.txt."""
from fastapi import APIRouter
from fastapi.responses import PlainTextResponse, Response

from ..config import SITE_URL
from ..database import create_connection
from ..infrastructure.repositories import CatalogRepository
from ..seo.robots import generate_robots_txt
from ..seo.sitemap import generate_sitemap, generate_sitemap_xml

router = APIRouter()


@router.get("/sitemap.xml")
def sitemap():
    """Static pages plus every published course, event and product."""
    db = create_connection()
    try:
        catalog = CatalogRepository(db)
        urls = generate_sitemap(
            SITE_URL,
            courses=catalog.list_published("course"),
            events=catalog.list_published("event"),
            products=catalog.list_published("digital_product")
        )
    finally:
        db.close()

    return Response(
        content=generate_sitemap_xml(urls),
        media_type="application/xml",
        headers={
            "Cache-Control": "public, max-age=3600",
            "X-Robots-Tag": "noindex",
        }
    )


@router.get("/robots.txt", response_class=PlainTextResponse)
def robots():
    return generate_robots_txt(sitemap_url=f"{SITE_URL}/sitemap.xml")
