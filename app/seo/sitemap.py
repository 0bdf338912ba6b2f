"""XML sitemap generation (sitemaps.org protocol 0.9)."""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union
from urllib.parse import urlparse
from xml.sax.saxutils import escape

logger = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
URLSET_OPEN = '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">'

MAX_SITEMAP_URLS = 50000
MAX_SITEMAP_SIZE_MB = 50

CHANGEFREQS = ("always", "hourly", "daily", "weekly", "monthly", "yearly", "never")

# (path, priority, changefreq)
STATIC_PAGES = (
    ("/", 1.0, "daily"),
    ("/about/", 0.8, "monthly"),
    ("/contact/", 0.8, "monthly"),
    ("/courses/", 0.9, "daily"),
    ("/events/", 0.9, "daily"),
    ("/products/", 0.9, "daily"),
    ("/blog/", 0.8, "weekly"),
    ("/privacy-policy/", 0.5, "yearly"),
    ("/terms-of-service/", 0.5, "yearly"),
    ("/refund-policy/", 0.5, "yearly"),
    ("/cancellation-policy/", 0.5, "yearly"),
)

# item kind -> (URL prefix, priority)
DYNAMIC_PAGES = {
    "course": ("/courses/", 0.8),
    "event": ("/events/", 0.7),
    "digital_product": ("/products/", 0.8),
}

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclass
class SitemapUrl:
    loc: str
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[float] = None


def is_valid_sitemap_url(url: str) -> bool:
    """Absolute http(s) URL without a fragment."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc) and not parsed.fragment


def validate_priority(priority: float) -> float:
    """Clamp to [0.0, 1.0] and round half up to one decimal."""
    if priority < 0:
        return 0.0
    if priority > 1:
        return 1.0
    return math.floor(priority * 10 + 0.5) / 10


def format_lastmod(value: Union[datetime, date, str]) -> str:
    """Format a timestamp as ``YYYY-MM-DD`` (UTC for aware datetimes).

    Raises:
        ValueError: Unparseable string
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid date: {value!r}")
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    raise ValueError(f"Invalid date: {value!r}")


def create_sitemap_url(
    loc: str,
    lastmod: Union[datetime, date, str, None] = None,
    changefreq: Optional[str] = None,
    priority: Optional[float] = None
) -> SitemapUrl:
    """Build a validated sitemap entry.

    Raises:
        ValueError: Invalid location URL, date or changefreq
    """
    if not is_valid_sitemap_url(loc):
        raise ValueError(f"Invalid sitemap URL: {loc}")
    if changefreq is not None and changefreq not in CHANGEFREQS:
        raise ValueError(f"Invalid changefreq: {changefreq}")
    return SitemapUrl(
        loc=loc,
        lastmod=format_lastmod(lastmod) if lastmod else None,
        changefreq=changefreq,
        priority=validate_priority(priority) if priority is not None else None,
    )


def generate_static_page_urls(base_url: str) -> list[SitemapUrl]:
    base = base_url.rstrip("/")
    return [
        create_sitemap_url(f"{base}{path}", changefreq=changefreq, priority=priority)
        for path, priority, changefreq in STATIC_PAGES
    ]


def generate_item_urls(base_url: str, item_type: str, rows: Iterable[dict]) -> list[SitemapUrl]:
    """Weekly entries for published catalog rows (needs ``slug``, optional ``updated_at``)."""
    base = base_url.rstrip("/")
    prefix, priority = DYNAMIC_PAGES[item_type]
    return [
        create_sitemap_url(
            f"{base}{prefix}{row['slug']}/",
            lastmod=row.get("updated_at"),
            changefreq="weekly",
            priority=priority,
        )
        for row in rows
    ]


def generate_sitemap(
    base_url: str,
    courses: Iterable[dict] = (),
    events: Iterable[dict] = (),
    products: Iterable[dict] = (),
    include_static: bool = True
) -> list[SitemapUrl]:
    urls = generate_static_page_urls(base_url) if include_static else []
    urls += generate_item_urls(base_url, "course", courses)
    urls += generate_item_urls(base_url, "event", events)
    urls += generate_item_urls(base_url, "digital_product", products)
    return urls


def generate_sitemap_xml(urls: list[SitemapUrl]) -> str:
    """Serialize entries to sitemap XML.

    Raises:
        ValueError: More than MAX_SITEMAP_URLS entries or over MAX_SITEMAP_SIZE_MB
    """
    if len(urls) > MAX_SITEMAP_URLS:
        raise ValueError(f"Sitemap contains {len(urls)} URLs; the maximum is {MAX_SITEMAP_URLS}")

    entries = []
    for url in urls:
        lines = ["  <url>", f"    <loc>{escape(url.loc, _XML_ENTITIES)}</loc>"]
        if url.lastmod:
            lines.append(f"    <lastmod>{url.lastmod}</lastmod>")
        if url.changefreq:
            lines.append(f"    <changefreq>{url.changefreq}</changefreq>")
        if url.priority is not None:
            lines.append(f"    <priority>{url.priority:.1f}</priority>")
        lines.append("  </url>")
        entries.append("\n".join(lines))

    xml = "\n".join([XML_DECLARATION, URLSET_OPEN, *entries, "</urlset>"])

    size_mb = len(xml.encode("utf-8")) / (1024 * 1024)
    if size_mb > MAX_SITEMAP_SIZE_MB:
        raise ValueError(f"Sitemap size ({size_mb:.2f}MB) exceeds maximum of {MAX_SITEMAP_SIZE_MB}MB")

    logger.debug("Generated sitemap with %d URLs", len(urls))
    return xml


def validate_sitemap_xml(xml: str) -> list[str]:
    """Structural checks; returns the list of problems (empty when valid)."""
    errors = []
    if not xml.startswith(XML_DECLARATION):
        errors.append("Missing or invalid XML declaration")
    if URLSET_OPEN not in xml:
        errors.append("Missing or invalid urlset element with namespace")
    if "</urlset>" not in xml:
        errors.append("Missing closing urlset tag")

    url_count = xml.count("<url>")
    loc_count = xml.count("<loc>")
    if url_count != loc_count:
        errors.append(f"URL count ({url_count}) does not match loc count ({loc_count})")

    size_mb = len(xml.encode("utf-8")) / (1024 * 1024)
    if size_mb > MAX_SITEMAP_SIZE_MB:
        errors.append(f"Sitemap size ({size_mb:.2f}MB) exceeds maximum of {MAX_SITEMAP_SIZE_MB}MB")
    if url_count > MAX_SITEMAP_URLS:
        errors.append(f"URL count ({url_count}) exceeds maximum of {MAX_SITEMAP_URLS}")

    return errors
