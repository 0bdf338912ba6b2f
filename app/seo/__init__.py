"""SEO helpers: slugs, sitemap, robots.txt, JSON-LD, breadcrumbs, canonical URLs."""
from .slug import generate_slug, generate_unique_slug, is_valid_slug, validate_slug
from .sitemap import generate_sitemap, generate_sitemap_xml, validate_priority
from .robots import generate_robots_txt
from .canonical import canonical_url

__all__ = [
    "generate_slug",
    "generate_unique_slug",
    "is_valid_slug",
    "validate_slug",
    "generate_sitemap",
    "generate_sitemap_xml",
    "validate_priority",
    "generate_robots_txt",
    "canonical_url",
]
