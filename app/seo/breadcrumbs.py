"""Breadcrumb trails derived from URL paths."""
from dataclasses import asdict, dataclass
from typing import Optional

DEFAULT_SEGMENT_LABELS = {
    "courses": "Courses",
    "events": "Events",
    "products": "Products",
    "blog": "Blog",
    "about": "About",
    "contact": "Contact",
    "account": "Account",
    "profile": "Profile",
    "settings": "Settings",
    "dashboard": "Dashboard",
    "cart": "Cart",
    "checkout": "Checkout",
    "orders": "Orders",
    "admin": "Admin",
    "new": "New",
    "edit": "Edit",
    "view": "View",
    "create": "Create",
}

EXCLUDED_SEGMENTS = frozenset({"", "undefined", "null", "api"})


@dataclass
class Breadcrumb:
    name: str
    url: str
    is_current: bool
    position: int


def normalize_segment(segment: str) -> str:
    """``"inner-peace_guide"`` -> ``"Inner Peace Guide"``."""
    if not segment or not segment.strip():
        return ""
    words = segment.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def should_exclude_segment(segment: str) -> bool:
    return not segment or not segment.strip() or segment.lower() in EXCLUDED_SEGMENTS


def get_segment_label(segment: str, labels: Optional[dict[str, str]] = None) -> str:
    if labels and segment in labels:
        return labels[segment]
    if segment in DEFAULT_SEGMENT_LABELS:
        return DEFAULT_SEGMENT_LABELS[segment]
    return normalize_segment(segment)


def parse_path(path: str) -> list[str]:
    if not path or path == "/":
        return []
    return [segment for segment in path.strip("/").split("/") if not should_exclude_segment(segment)]


def build_url(base_url: str, segments: list[str]) -> str:
    base = base_url.rstrip("/")
    if not segments:
        return base
    return f"{base}/{'/'.join(segments)}"


def generate_breadcrumbs(
    path: str,
    labels: Optional[dict[str, str]] = None,
    include_home: bool = True,
    max_items: Optional[int] = None,
    base_url: str = "",
    home_label: str = "Home"
) -> list[Breadcrumb]:
    """Build the trail for ``path``.

    Args:
        path: URL path such as ``/courses/mindful-living``
        labels: Segment -> label overrides
        include_home: Start with a Home crumb
        max_items: Collapse the trail to this many crumbs, keeping the first
            and the last ones
        base_url: Prefix for crumb URLs
        home_label: Label of the Home crumb

    Returns:
        Crumbs with positions from 1; the last one has ``is_current`` set
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    at_root = path in ("", "/")
    crumbs: list[Breadcrumb] = []

    if include_home:
        crumbs.append(Breadcrumb(home_label, base_url or "/", at_root, 1))
    if at_root:
        return crumbs

    segments = parse_path(path)
    for index, segment in enumerate(segments):
        crumbs.append(Breadcrumb(
            name=get_segment_label(segment, labels),
            url=build_url(base_url, segments[:index + 1]),
            is_current=index == len(segments) - 1,
            position=len(crumbs) + 1,
        ))

    if max_items and len(crumbs) > max_items:
        first, last = crumbs[0], crumbs[-1]
        remaining = max_items - 2
        middle = crumbs[-remaining - 1:-1] if remaining > 0 else []
        crumbs = [first, *middle, last]
        for position, crumb in enumerate(crumbs, start=1):
            crumb.position = position

    return crumbs


def breadcrumbs_to_schema_items(crumbs: list[Breadcrumb]) -> list[dict]:
    """Shape accepted by ``structured_data.breadcrumb_list_schema``."""
    return [{"name": crumb.name, "url": crumb.url} for crumb in crumbs]


def breadcrumbs_to_dicts(crumbs: list[Breadcrumb]) -> list[dict]:
    return [asdict(crumb) for crumb in crumbs]
