"""Sitemap generation tests."""
from datetime import date, datetime, timezone

import pytest

from app.seo.sitemap import (
    STATIC_PAGES,
    SitemapUrl,
    create_sitemap_url,
    format_lastmod,
    generate_sitemap,
    generate_sitemap_xml,
    is_valid_sitemap_url,
    validate_priority,
    validate_sitemap_xml,
)

BASE = "https://example.com"


class TestPriority:

    @pytest.mark.parametrize("value,expected", [
        (1.5, 1.0),
        (-0.2, 0.0),
        (0.75, 0.8),
        (0.44, 0.4),
        (0.0, 0.0),
        (1.0, 1.0),
    ])
    def test_clamped_and_rounded(self, value, expected):
        assert validate_priority(value) == expected


class TestHelpers:

    def test_valid_urls(self):
        assert is_valid_sitemap_url("https://example.com/courses/") is True
        assert is_valid_sitemap_url("http://example.com") is True

    def test_invalid_urls(self):
        assert is_valid_sitemap_url("/courses/") is False
        assert is_valid_sitemap_url("ftp://example.com/file") is False
        assert is_valid_sitemap_url("https://example.com/#top") is False

    def test_format_lastmod(self):
        assert format_lastmod(date(2024, 1, 2)) == "2024-01-02"
        assert format_lastmod("2024-03-05T10:00:00Z") == "2024-03-05"
        assert format_lastmod("2024-03-05 23:10:00") == "2024-03-05"
        aware = datetime(2024, 6, 1, 23, 30, tzinfo=timezone.utc)
        assert format_lastmod(aware) == "2024-06-01"

    def test_format_lastmod_rejects_garbage(self):
        with pytest.raises(ValueError):
            format_lastmod("next tuesday")

    def test_create_sitemap_url_validates(self):
        with pytest.raises(ValueError):
            create_sitemap_url("/relative")
        with pytest.raises(ValueError):
            create_sitemap_url(f"{BASE}/", changefreq="sometimes")


class TestGenerateSitemap:

    def test_static_and_dynamic_pages(self):
        urls = generate_sitemap(
            BASE,
            courses=[{"slug": "mindful-meditation", "updated_at": "2024-01-01 10:00:00"}],
            events=[{"slug": "full-moon-retreat"}],
            products=[{"slug": "breathwork-guide"}],
        )

        assert len(urls) == len(STATIC_PAGES) + 3
        by_loc = {url.loc: url for url in urls}
        course = by_loc[f"{BASE}/courses/mindful-meditation/"]
        assert course.priority == 0.8
        assert course.changefreq == "weekly"
        assert course.lastmod == "2024-01-01"
        assert by_loc[f"{BASE}/events/full-moon-retreat/"].priority == 0.7
        assert by_loc[f"{BASE}/products/breathwork-guide/"].priority == 0.8
        assert by_loc[f"{BASE}/"].priority == 1.0

    def test_xml_output(self):
        xml = generate_sitemap_xml([
            create_sitemap_url(f"{BASE}/search?q=a&b=c", changefreq="daily", priority=0.5),
            create_sitemap_url(f"{BASE}/about/", lastmod="2024-02-01"),
        ])

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>')
        assert 'xmlns="http://www.sitemaps.org/schemas/sitemap/0.9"' in xml
        assert "<loc>https://example.com/search?q=a&amp;b=c</loc>" in xml
        assert "<priority>0.5</priority>" in xml
        assert "<lastmod>2024-02-01</lastmod>" in xml
        assert validate_sitemap_xml(xml) == []

    def test_priority_always_one_decimal(self):
        xml = generate_sitemap_xml([create_sitemap_url(f"{BASE}/", priority=1)])
        assert "<priority>1.0</priority>" in xml

    def test_too_many_urls(self):
        urls = [SitemapUrl(loc=f"{BASE}/p/{i}/") for i in range(50001)]
        with pytest.raises(ValueError, match="maximum"):
            generate_sitemap_xml(urls)

    def test_validate_broken_xml(self):
        errors = validate_sitemap_xml("<urlset><url></url>")
        assert "Missing or invalid XML declaration" in errors
        assert "Missing closing urlset tag" in errors
        assert any("loc count" in error for error in errors)
