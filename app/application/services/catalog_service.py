"""Catalog service - course listings, course pages and course creation."""
import logging
from typing import Optional

from ...config import SITE_NAME, SITE_URL
from ...errors import NotFoundError, ValidationError
from ...infrastructure.repositories import CatalogRepository, ReviewRepository
from ...seo.breadcrumbs import breadcrumbs_to_dicts, breadcrumbs_to_schema_items, generate_breadcrumbs
from ...seo.canonical import canonical_url
from ...seo.slug import generate_slug, generate_unique_slug, validate_slug
from ...seo.structured_data import (
    aggregate_rating, breadcrumb_list_schema, combine_schemas, course_schema, offer
)

logger = logging.getLogger(__name__)

COURSE_LEVELS = ("beginner", "intermediate", "advanced")


def serialize_course(course: dict) -> dict:
    return {
        "id": course["id"],
        "title": course["title"],
        "slug": course["slug"],
        "description": course["description"],
        "price": course["price"],
        "level": course["level"],
        "imageUrl": course["image_url"],
        "instructorName": course["instructor_name"],
        "isPublished": bool(course["is_published"]),
    }


class CatalogService:
    """Service for the public course catalog."""

    def __init__(
        self,
        catalog_repository: CatalogRepository,
        review_repository: ReviewRepository,
        site_url: str = SITE_URL
    ):
        self.catalog_repo = catalog_repository
        self.review_repo = review_repository
        self.site_url = site_url.rstrip("/")

    def list_courses(self) -> list[dict]:
        return [serialize_course(course) for course in self.catalog_repo.list_published_courses()]

    def get_course_page(self, course_id: int) -> dict:
        """Published course with its canonical URL, breadcrumbs and JSON-LD.

        Raises:
            NotFoundError: Unknown or unpublished course
        """
        course = self.catalog_repo.get_item("course", course_id)
        if not course:
            raise NotFoundError("Course")

        path = f"/courses/{course['slug']}/"
        url = canonical_url(path, site_url=self.site_url)
        crumbs = generate_breadcrumbs(
            path,
            labels={course["slug"]: course["title"]},
            base_url=self.site_url
        )

        summary = self.review_repo.rating_summary(course_id)
        rating = aggregate_rating(summary["average"], summary["count"]) if summary["count"] else None

        schema = course_schema(
            name=course["title"],
            description=course["description"] or course["title"],
            provider={"@type": "Organization", "name": SITE_NAME, "url": self.site_url},
            url=url,
            image=course["image_url"],
            instructor={"@type": "Person", "name": course["instructor_name"]} if course["instructor_name"] else None,
            educational_level=course["level"],
            offers=offer(course["price"], url=url),
            rating=rating
        )

        return {
            "course": serialize_course(course),
            "seo": {
                "canonicalUrl": url,
                "breadcrumbs": breadcrumbs_to_dicts(crumbs),
                "jsonLd": combine_schemas([
                    schema,
                    breadcrumb_list_schema(breadcrumbs_to_schema_items(crumbs)),
                ]),
            },
        }

    def create_course(
        self,
        title: Optional[str],
        price,
        description: str = "",
        slug: Optional[str] = None,
        level: Optional[str] = None,
        instructor_name: Optional[str] = None,
        image_url: Optional[str] = None,
        is_published: bool = False
    ) -> dict:
        """Create a course, deriving a unique slug from the title when none is given.

        Raises:
            ValidationError: Missing title, bad price, level or slug
        """
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        if not isinstance(price, (int, float)) or isinstance(price, bool) or price < 0:
            raise ValidationError("Price must be a non-negative number")
        if level and level not in COURSE_LEVELS:
            raise ValidationError(f"Invalid level. Must be one of: {', '.join(COURSE_LEVELS)}")

        if slug:
            result = validate_slug(slug)
            if not result.valid:
                raise ValidationError(result.errors[0], details=result.errors)
        else:
            try:
                slug = generate_slug(title, max_length=60)
            except ValueError as e:
                raise ValidationError(f"Cannot derive a slug from the title: {e}")

        slug = generate_unique_slug(slug, lambda candidate: self.catalog_repo.slug_exists("course", candidate))
        course_id = self.catalog_repo.create_course(
            title=title,
            slug=slug,
            price=float(price),
            description=description or "",
            level=level,
            instructor_name=instructor_name,
            image_url=image_url,
            is_published=is_published
        )
        logger.info("Course created", extra={"course_id": course_id, "slug": slug})
        return serialize_course(self.catalog_repo.get_course(course_id))
