"""Canonical URL normalization."""
import re
from urllib.parse import urlsplit

from ..config import SITE_URL

_EXTENSION = re.compile(r"\.[a-zA-Z0-9]+$")


def canonical_url(
    url: str,
    site_url: str = SITE_URL,
    trailing_slash: bool = True,
    force_https: bool = True,
    remove_query: bool = True,
    remove_fragment: bool = True,
    lowercase: bool = False
) -> str:
    """Normalize a URL or path to its canonical absolute form.

    Absolute URLs keep their own origin; paths are resolved against
    ``site_url``. Paths ending in a file extension never get a trailing
    slash and the root is always ``/``.

    Args:
        url: Absolute URL or path, possibly with query and fragment
        site_url: Origin for relative paths
        trailing_slash: Append ``/`` to directory-like paths
        force_https: Rewrite ``http://`` origins
        remove_query: Drop the query string
        remove_fragment: Drop the fragment
        lowercase: Lowercase the path
    """
    url = url.strip()
    parts = urlsplit(url)
    if parts.scheme and parts.netloc:
        base = f"{parts.scheme}://{parts.netloc}"
    else:
        base = site_url.strip().rstrip("/")
        parts = urlsplit(url if url.startswith("/") else f"/{url}")

    if force_https and base.startswith("http://"):
        base = "https://" + base[len("http://"):]

    path = parts.path.rstrip("/")
    if lowercase:
        path = path.lower()

    if not path:
        path = "/"
    elif trailing_slash and not _EXTENSION.search(path):
        path += "/"

    if not remove_query and parts.query:
        path += f"?{parts.query}"
    if not remove_fragment and parts.fragment:
        path += f"#{parts.fragment}"

    return f"{base}{path}"


def validate_canonical_url(url: str) -> list[str]:
    """Problems that keep ``url`` from being a good canonical URL."""
    issues = []
    try:
        parts = urlsplit(url)
    except ValueError:
        return ["Invalid URL format"]
    if not parts.scheme or not parts.netloc:
        return ["Invalid URL format"]

    if parts.scheme != "https":
        issues.append("Should use HTTPS protocol")
    if parts.query:
        issues.append("Contains query parameters")
    if parts.fragment:
        issues.append("Contains URL fragment (hash)")
    path = parts.path or "/"
    if not _EXTENSION.search(path) and path != "/" and not path.endswith("/"):
        issues.append("Missing trailing slash")
    if "//" in path:
        issues.append("Contains double slashes in path")
    return issues


def are_urls_equivalent(url1: str, url2: str, **options) -> bool:
    return canonical_url(url1, **options) == canonical_url(url2, **options)
