"""robots.txt rendering tests."""
from app.seo.robots import RobotsRule, generate_robots_txt


def test_default_rules():
    text = generate_robots_txt(sitemap_url="https://example.com/sitemap.xml", site_name="Test Site")

    assert text.startswith("# robots.txt for Test Site")
    assert "User-agent: *" in text
    assert "Allow: /\n" in text
    for path in ("/api/", "/admin/", "/cart/", "/checkout/", "/account/"):
        assert f"Disallow: {path}" in text
    assert text.rstrip().endswith("Sitemap: https://example.com/sitemap.xml")


def test_without_sitemap():
    assert "Sitemap:" not in generate_robots_txt()


def test_custom_rules_with_crawl_delay():
    text = generate_robots_txt(rules=[
        RobotsRule(user_agent="Googlebot", allow=["/courses/"]),
        RobotsRule(user_agent="BadBot", disallow=["/"], crawl_delay=10),
    ])

    assert "User-agent: Googlebot\nAllow: /courses/" in text
    assert "User-agent: BadBot\nDisallow: /\nCrawl-delay: 10" in text
