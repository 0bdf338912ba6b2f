"""robots.txt rendering."""
from dataclasses import dataclass, field
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from ..config import SITE_NAME, TEMPLATES_DIR

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True
)


@dataclass
class RobotsRule:
    user_agent: str = "*"
    allow: list[str] = field(default_factory=list)
    disallow: list[str] = field(default_factory=list)
    crawl_delay: Optional[int] = None


DEFAULT_RULES = (
    RobotsRule(
        user_agent="*",
        allow=["/"],
        disallow=["/api/", "/admin/", "/cart/", "/checkout/", "/account/"],
    ),
)


def generate_robots_txt(
    rules: Optional[Sequence[RobotsRule]] = None,
    sitemap_url: Optional[str] = None,
    site_name: str = SITE_NAME
) -> str:
    """Render robots.txt for the given crawler rules.

    Args:
        rules: Rule groups; DEFAULT_RULES when omitted
        sitemap_url: Absolute sitemap URL appended as a ``Sitemap:`` line
        site_name: Name shown in the header comment
    """
    return _templates.get_template("robots.txt").render(
        rules=rules if rules is not None else DEFAULT_RULES,
        sitemap_url=sitemap_url,
        site_name=site_name
    )
