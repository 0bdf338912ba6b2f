"""schema.org JSON-LD builders.

Every builder returns a plain dict with ``@context`` and ``@type`` set;
optional fields are only present when given.

Usage:
    schema = course_schema(
        name=course["title"],
        description=course["description"],
        provider={"@type": "Organization", "name": SITE_NAME},
        offers=offer(course["price"], url=course_url),
    )
    html = to_script_tag(schema)
"""
import json
from typing import Any, Iterable, Optional, Sequence

SCHEMA_CONTEXT = "https://schema.org"

EVENT_STATUSES = ("EventScheduled", "EventCancelled", "EventPostponed", "EventRescheduled")
ATTENDANCE_MODES = (
    "OfflineEventAttendanceMode",
    "OnlineEventAttendanceMode",
    "MixedEventAttendanceMode",
)


def _schema(schema_type: str, required: dict, optional: dict) -> dict:
    schema = {"@context": SCHEMA_CONTEXT, "@type": schema_type, **required}
    schema.update({key: value for key, value in optional.items() if value})
    return schema


def offer(
    price: float,
    currency: str = "USD",
    availability: str = "InStock",
    url: Optional[str] = None,
    valid_from: Optional[str] = None
) -> dict:
    """Offer node; ``availability`` is a schema.org ItemAvailability name."""
    node = {
        "@type": "Offer",
        "price": price,
        "priceCurrency": currency,
        "availability": f"{SCHEMA_CONTEXT}/{availability}",
    }
    if url:
        node["url"] = url
    if valid_from:
        node["validFrom"] = valid_from
    return node


def aggregate_rating(rating_value: float, review_count: int, best: int = 5, worst: int = 1) -> dict:
    return {
        "@type": "AggregateRating",
        "ratingValue": rating_value,
        "reviewCount": review_count,
        "bestRating": best,
        "worstRating": worst,
    }


def organization_schema(
    name: str,
    url: str,
    logo: Optional[str] = None,
    description: Optional[str] = None,
    email: Optional[str] = None,
    telephone: Optional[str] = None,
    address: Optional[dict] = None,
    same_as: Optional[Sequence[str]] = None,
    founding_date: Optional[str] = None,
    founder: Optional[dict] = None
) -> dict:
    return _schema("Organization", {"name": name, "url": url}, {
        "logo": logo,
        "description": description,
        "email": email,
        "telephone": telephone,
        "address": address,
        "sameAs": list(same_as) if same_as else None,
        "foundingDate": founding_date,
        "founder": founder,
    })


def website_schema(
    name: str,
    url: str,
    description: Optional[str] = None,
    search_url_template: Optional[str] = None,
    publisher: Optional[dict] = None,
    in_language: Optional[str] = None
) -> dict:
    """WebSite node; ``search_url_template`` adds a SearchAction.

    The template must contain ``{search_term_string}``, e.g.
    ``https://example.com/search?q={search_term_string}``.
    """
    potential_action = None
    if search_url_template:
        potential_action = {
            "@type": "SearchAction",
            "target": {"@type": "EntryPoint", "urlTemplate": search_url_template},
            "query-input": "required name=search_term_string",
        }
    return _schema("WebSite", {"name": name, "url": url}, {
        "description": description,
        "publisher": publisher,
        "potentialAction": potential_action,
        "inLanguage": in_language,
    })


def breadcrumb_list_schema(items: Iterable[dict]) -> dict:
    """BreadcrumbList from ``{"name", "url"?}`` dicts; positions start at 1."""
    elements = []
    for position, item in enumerate(items, start=1):
        element = {"@type": "ListItem", "position": position, "name": item["name"]}
        if item.get("url"):
            element["item"] = item["url"]
        elements.append(element)
    return {"@context": SCHEMA_CONTEXT, "@type": "BreadcrumbList", "itemListElement": elements}


def course_schema(
    name: str,
    description: str,
    provider: dict,
    url: Optional[str] = None,
    image: Optional[str] = None,
    instructor: Optional[dict] = None,
    course_code: Optional[str] = None,
    educational_level: Optional[str] = None,
    course_instances: Optional[list[dict]] = None,
    offers: Optional[dict] = None,
    rating: Optional[dict] = None,
    reviews: Optional[list[dict]] = None
) -> dict:
    return _schema("Course", {"name": name, "description": description, "provider": provider}, {
        "url": url,
        "image": image,
        "instructor": instructor,
        "courseCode": course_code,
        "educationalLevel": educational_level,
        "hasCourseInstance": course_instances,
        "offers": offers,
        "aggregateRating": rating,
        "review": reviews,
    })


def event_schema(
    name: str,
    description: str,
    start_date: str,
    location: dict,
    end_date: Optional[str] = None,
    url: Optional[str] = None,
    image: Optional[str] = None,
    organizer: Optional[dict] = None,
    performer: Optional[dict] = None,
    offers: Optional[dict] = None,
    event_status: Optional[str] = None,
    attendance_mode: Optional[str] = None
) -> dict:
    """Event node; status and attendance mode take bare schema.org names.

    Raises:
        ValueError: Unknown event status or attendance mode
    """
    if event_status and event_status not in EVENT_STATUSES:
        raise ValueError(f"Invalid eventStatus: {event_status}")
    if attendance_mode and attendance_mode not in ATTENDANCE_MODES:
        raise ValueError(f"Invalid eventAttendanceMode: {attendance_mode}")

    return _schema(
        "Event",
        {"name": name, "description": description, "startDate": start_date, "location": location},
        {
            "endDate": end_date,
            "url": url,
            "image": image,
            "organizer": organizer,
            "performer": performer,
            "offers": offers,
            "eventStatus": f"{SCHEMA_CONTEXT}/{event_status}" if event_status else None,
            "eventAttendanceMode": f"{SCHEMA_CONTEXT}/{attendance_mode}" if attendance_mode else None,
        }
    )


def product_schema(
    name: str,
    description: str,
    url: Optional[str] = None,
    image: Optional[str] = None,
    brand: Optional[dict] = None,
    sku: Optional[str] = None,
    offers: Optional[dict] = None,
    rating: Optional[dict] = None,
    reviews: Optional[list[dict]] = None
) -> dict:
    return _schema("Product", {"name": name, "description": description}, {
        "url": url,
        "image": image,
        "brand": brand,
        "sku": sku,
        "offers": offers,
        "aggregateRating": rating,
        "review": reviews,
    })


def review_schema(
    author_name: str,
    rating_value: int,
    review_body: Optional[str] = None,
    date_published: Optional[str] = None,
    item_reviewed: Optional[dict] = None,
    best: int = 5,
    worst: int = 1
) -> dict:
    return _schema(
        "Review",
        {
            "author": {"@type": "Person", "name": author_name},
            "reviewRating": {
                "@type": "Rating",
                "ratingValue": rating_value,
                "bestRating": best,
                "worstRating": worst,
            },
        },
        {
            "reviewBody": review_body,
            "datePublished": date_published,
            "itemReviewed": item_reviewed,
        }
    )


def faq_page_schema(questions: Iterable[dict]) -> dict:
    """FAQPage from ``{"question", "answer"}`` dicts."""
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": q["question"],
                "acceptedAnswer": {"@type": "Answer", "text": q["answer"]},
            }
            for q in questions
        ],
    }


def _drop_none(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_none(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_none(item) for item in value if item is not None]
    return value


def validate_schema(schema: dict) -> dict:
    """Return a cleaned copy with ``@context`` set and None values removed.

    Raises:
        ValueError: No ``@type``
    """
    if not schema.get("@type"):
        raise ValueError("Schema must have @type property")
    cleaned = _drop_none(schema)
    cleaned.setdefault("@context", SCHEMA_CONTEXT)
    return cleaned


def combine_schemas(schemas: Iterable[dict]) -> dict:
    """Merge several nodes into one ``@graph`` document."""
    graph = []
    for schema in schemas:
        node = validate_schema(schema)
        node.pop("@context", None)
        graph.append(node)
    return {"@context": SCHEMA_CONTEXT, "@graph": graph}


def to_script_tag(schema: dict) -> str:
    """Embed as ``<script type="application/ld+json">``; ``</`` is escaped."""
    payload = json.dumps(validate_schema(schema), ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">{payload}</script>'
