"""URL slug generation, validation and scoring.

Usage:
    generate_slug("Méditation & Mindfulness: 101")  # "meditation-mindfulness-101"
    generate_unique_slug("yoga-basics", lambda s: repo.slug_exists("course", s))
"""
import re
from dataclasses import dataclass, field
from typing import Callable, Collection, Union

MIN_SLUG_LENGTH = 3
IDEAL_SLUG_LENGTH = 50
MAX_SLUG_LENGTH = 60
ABSOLUTE_MAX_SLUG_LENGTH = 100

STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of",
    "with", "by", "from", "as", "is", "was", "be", "been", "are", "am", "will",
    "would", "should", "could", "may", "might", "can", "this", "that", "these",
    "those",
})

TRANSLITERATION_MAP = {
    "à": "a", "á": "a", "â": "a", "ã": "a", "ä": "a", "å": "a", "æ": "ae",
    "ç": "c",
    "è": "e", "é": "e", "ê": "e", "ë": "e",
    "ì": "i", "í": "i", "î": "i", "ï": "i",
    "ñ": "n",
    "ò": "o", "ó": "o", "ô": "o", "õ": "o", "ö": "o", "ø": "o", "œ": "oe",
    "ù": "u", "ú": "u", "û": "u", "ü": "u",
    "ý": "y", "ÿ": "y",
    "ß": "ss",
    "À": "A", "Á": "A", "Â": "A", "Ã": "A", "Ä": "A", "Å": "A", "Æ": "AE",
    "Ç": "C",
    "È": "E", "É": "E", "Ê": "E", "Ë": "E",
    "Ì": "I", "Í": "I", "Î": "I", "Ï": "I",
    "Ñ": "N",
    "Ò": "O", "Ó": "O", "Ô": "O", "Õ": "O", "Ö": "O", "Ø": "O", "Œ": "OE",
    "Ù": "U", "Ú": "U", "Û": "U", "Ü": "U",
    "Ý": "Y", "Ÿ": "Y",
    "‘": "'", "’": "'", "“": '"', "”": '"',
    "–": "-", "—": "-", "…": "...",
}

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
URL_SAFE_PATTERN = re.compile(r"^[a-z0-9-]+$")


@dataclass
class SlugValidationResult:
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class SlugAnalysis:
    length: int
    word_count: int
    is_optimal_length: bool
    has_numbers: bool
    is_lowercase: bool
    has_stop_words: bool
    seo_score: int
    readability_score: int


def transliterate(text: str) -> str:
    return "".join(TRANSLITERATION_MAP.get(char, char) for char in text)


def strip_stop_words(text: str, separator: str = "-") -> str:
    """Drop stop words; if every word is one, keep the last word."""
    words = text.split(separator)
    filtered = [word for word in words if word.lower() not in STOP_WORDS]
    if not filtered and words:
        return words[-1]
    return separator.join(filtered)


def generate_slug(
    text: str,
    max_length: int = ABSOLUTE_MAX_SLUG_LENGTH,
    remove_stop_words: bool = False,
    preserve_numbers: bool = True,
    separator: str = "-"
) -> str:
    """Turn arbitrary text into a URL slug.

    Accented Latin letters are transliterated, everything outside
    ``[a-z0-9]`` becomes a separator run, and long slugs are cut at the
    last separator when that keeps more than half of ``max_length``.

    Args:
        text: Source text (title, name)
        max_length: Maximum slug length
        remove_stop_words: Drop words like "the" and "of"
        preserve_numbers: Keep digits
        separator: Word separator

    Raises:
        ValueError: Empty text or a result shorter than MIN_SLUG_LENGTH
    """
    if not text or not text.strip():
        raise ValueError("Text cannot be empty")

    sep = re.escape(separator)
    slug = transliterate(text).lower().strip()
    slug = re.sub(r"_+", separator, slug)
    allowed = r"[^a-z0-9\s-]" if preserve_numbers else r"[^a-z\s-]"
    slug = re.sub(allowed, "", slug, flags=re.ASCII)
    slug = re.sub(r"\s+", separator, slug)
    slug = re.sub(f"{sep}+", separator, slug)

    if remove_stop_words:
        slug = strip_stop_words(slug, separator)

    slug = re.sub(f"^{sep}+|{sep}+$", "", slug)

    if len(slug) > max_length:
        slug = slug[:max_length]
        last_separator = slug.rfind(separator)
        if last_separator > max_length / 2:
            slug = slug[:last_separator]
        slug = re.sub(f"{sep}+$", "", slug)

    if len(slug) < MIN_SLUG_LENGTH:
        raise ValueError(f"Slug is too short (minimum {MIN_SLUG_LENGTH} characters)")

    return slug


def generate_unique_slug(
    base_slug: str,
    existing: Union[Callable[[str], bool], Collection[str]]
) -> str:
    """Append ``-2``, ``-3``, ... until the slug is free.

    Args:
        base_slug: Preferred slug
        existing: Predicate telling whether a slug is taken, or a collection
            of taken slugs
    """
    taken = existing if callable(existing) else existing.__contains__
    if not taken(base_slug):
        return base_slug

    counter = 2
    while taken(f"{base_slug}-{counter}"):
        counter += 1
    return f"{base_slug}-{counter}"


def is_valid_slug(slug) -> bool:
    return isinstance(slug, str) and bool(SLUG_PATTERN.match(slug))


def is_url_safe(slug) -> bool:
    return isinstance(slug, str) and bool(URL_SAFE_PATTERN.match(slug))


def validate_slug(slug) -> SlugValidationResult:
    """Check a slug, collecting errors, SEO warnings and fix suggestions."""
    result = SlugValidationResult()

    if not slug or not isinstance(slug, str):
        result.valid = False
        result.errors.append("Slug is required and must be a string")
        return result
    if not slug.strip():
        result.valid = False
        result.errors.append("Slug cannot be empty")
        return result

    def fail(error: str, suggestion: str = None) -> None:
        result.valid = False
        result.errors.append(error)
        if suggestion:
            result.suggestions.append(f'Try: "{suggestion}"')

    if len(slug) < MIN_SLUG_LENGTH:
        fail(f"Slug is too short ({len(slug)} chars). Minimum: {MIN_SLUG_LENGTH} characters")
    if len(slug) > ABSOLUTE_MAX_SLUG_LENGTH:
        fail(f"Slug is too long ({len(slug)} chars). Maximum: {ABSOLUTE_MAX_SLUG_LENGTH} characters")
    if slug != slug.lower():
        fail("Slug contains uppercase letters. Use lowercase only", slug.lower())
    if "_" in slug:
        fail("Slug contains underscores. Use hyphens instead", slug.replace("_", "-"))
    if " " in slug:
        fail("Slug contains spaces. Use hyphens instead", re.sub(r"\s+", "-", slug))
    if not URL_SAFE_PATTERN.match(slug):
        try:
            fail("Slug contains invalid characters. Use only: a-z, 0-9, hyphens", generate_slug(slug))
        except ValueError:
            fail("Slug contains invalid characters. Use only: a-z, 0-9, hyphens")
    if slug.startswith("-") or slug.endswith("-"):
        fail("Slug cannot start or end with hyphens", slug.strip("-"))
    if "--" in slug:
        fail("Slug contains consecutive hyphens", re.sub(r"-+", "-", slug))

    if len(slug) > MAX_SLUG_LENGTH:
        result.warnings.append(
            f"Slug is longer than recommended ({len(slug)} chars). "
            f"Ideal: {IDEAL_SLUG_LENGTH}-{MAX_SLUG_LENGTH} characters"
        )
        result.suggestions.append("Consider shortening the slug for better SEO")

    segments = slug.split("-")
    if len(segments) > 8:
        result.warnings.append(f"Slug has many words ({len(segments)}). Consider reducing to 3-6 words")

    single = [segment for segment in segments if len(segment) == 1]
    if single:
        result.warnings.append(f"Slug contains single-character segments: {', '.join(single)}")

    if any(segment in STOP_WORDS for segment in segments):
        result.warnings.append("Slug contains stop words (the, a, an, etc.) that could be removed")
        optimized = strip_stop_words(slug)
        if optimized != slug and len(optimized) >= MIN_SLUG_LENGTH:
            result.suggestions.append(f'Consider: "{optimized}"')

    return result


def analyze_slug(slug: str) -> SlugAnalysis:
    """Score a slug for SEO and readability (0..100 each)."""
    words = slug.split("-")
    has_stop_words = any(word in STOP_WORDS for word in words)

    seo_score = 100
    if len(slug) < MIN_SLUG_LENGTH:
        seo_score -= 30
    elif len(slug) > ABSOLUTE_MAX_SLUG_LENGTH:
        seo_score -= 50
    elif len(slug) > MAX_SLUG_LENGTH:
        seo_score -= 10
    if len(words) < 2:
        seo_score -= 10
    elif len(words) > 8:
        seo_score -= 15
    if has_stop_words:
        seo_score -= 5
    if not is_valid_slug(slug):
        seo_score -= 40

    readability_score = 100
    if len(slug) < 10:
        readability_score -= 10
    elif len(slug) > 80:
        readability_score -= 20
    if len(words) > 10:
        readability_score -= 15
    readability_score -= 10 * sum(1 for word in words if len(word) == 1)

    return SlugAnalysis(
        length=len(slug),
        word_count=len(words),
        is_optimal_length=MIN_SLUG_LENGTH <= len(slug) <= MAX_SLUG_LENGTH,
        has_numbers=bool(re.search(r"\d", slug)),
        is_lowercase=slug == slug.lower(),
        has_stop_words=has_stop_words,
        seo_score=max(0, seo_score),
        readability_score=max(0, readability_score),
    )


def compare_slug_similarity(slug1: str, slug2: str) -> float:
    """Jaccard similarity of the two slugs' word sets."""
    words1 = set(slug1.split("-"))
    words2 = set(slug2.split("-"))
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def extract_keywords(slug: str, remove_stop: bool = True) -> list[str]:
    words = slug.split("-")
    if remove_stop:
        return [word for word in words if word not in STOP_WORDS]
    return words


def suggest_improvements(slug: str) -> list[str]:
    suggestions: list[str] = []
    try:
        basic = generate_slug(slug)
        if basic != slug and is_valid_slug(basic):
            suggestions.append(basic)

        without_stops = generate_slug(slug, remove_stop_words=True)
        if without_stops not in (basic, slug) and len(without_stops) >= MIN_SLUG_LENGTH:
            suggestions.append(without_stops)

        if len(slug) > MAX_SLUG_LENGTH:
            shortened = generate_slug(slug, max_length=IDEAL_SLUG_LENGTH)
            if shortened != slug and len(shortened) >= MIN_SLUG_LENGTH:
                suggestions.append(shortened)
    except ValueError:
        pass
    return list(dict.fromkeys(suggestions))


def optimize_slug(slug: str) -> str:
    """Normalize, drop stop words (keeping two or more words) and trim to the ideal length."""
    try:
        if not is_valid_slug(slug):
            slug = generate_slug(slug)

        without_stops = strip_stop_words(slug)
        if (
            len(without_stops) >= MIN_SLUG_LENGTH
            and len(without_stops) < len(slug)
            and len(without_stops.split("-")) >= 2
        ):
            slug = without_stops

        if len(slug) > IDEAL_SLUG_LENGTH:
            slug = generate_slug(slug, max_length=IDEAL_SLUG_LENGTH)
    except ValueError:
        return slug
    return slug
