"""Review service - course ratings from enrolled students."""
import logging
import sqlite3
from typing import Any, Optional

from ...errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from ...infrastructure.repositories import CatalogRepository, OrderRepository, ReviewRepository

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000


def serialize_review(review: dict) -> dict:
    """camelCase API shape of a review row."""
    data = {
        "id": review["id"],
        "userId": review["user_id"],
        "courseId": review["course_id"],
        "rating": review["rating"],
        "comment": review["comment"],
        "isApproved": bool(review["is_approved"]),
        "createdAt": review["created_at"],
    }
    if "user_name" in review:
        data["userName"] = review["user_name"]
    return data


class ReviewService:
    """Service for course reviews."""

    def __init__(
        self,
        review_repository: ReviewRepository,
        order_repository: OrderRepository,
        catalog_repository: CatalogRepository
    ):
        self.review_repo = review_repository
        self.order_repo = order_repository
        self.catalog_repo = catalog_repository

    def submit_review(
        self,
        user_id: int,
        course_id: Any,
        rating: Any,
        comment: Optional[str] = None
    ) -> dict:
        """Create a review awaiting moderation.

        Raises:
            ValidationError: Bad course id, rating or comment
            NotFoundError: Unknown course
            AuthorizationError: User has not purchased the course
            ConflictError: User already reviewed the course
        """
        if not isinstance(course_id, int) or isinstance(course_id, bool) or course_id < 1:
            raise ValidationError("Valid course ID is required")
        if not isinstance(rating, int) or isinstance(rating, bool) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer between 1 and 5")
        if comment is not None:
            if not isinstance(comment, str):
                raise ValidationError("Comment must be a string")
            comment = comment.strip() or None
            if comment and len(comment) > MAX_COMMENT_LENGTH:
                raise ValidationError(f"Comment must be at most {MAX_COMMENT_LENGTH} characters")

        if not self.catalog_repo.get_course(course_id):
            raise NotFoundError("Course")

        if not self.order_repo.is_enrolled(user_id, course_id):
            raise AuthorizationError("You must purchase this course before reviewing it")

        if self.review_repo.exists(user_id, course_id):
            raise ConflictError("You have already reviewed this course")

        try:
            review = self.review_repo.create(user_id, course_id, rating, comment)
        except sqlite3.IntegrityError:
            raise ConflictError("You have already reviewed this course")

        logger.info("Review submitted", extra={"review_id": review["id"], "course_id": course_id})
        return serialize_review(review)

    def get_course_reviews(self, course_id: int, limit: int = 50, offset: int = 0) -> dict:
        if not self.catalog_repo.get_course(course_id):
            raise NotFoundError("Course")
        reviews = self.review_repo.list_approved(course_id, limit, offset)
        summary = self.review_repo.rating_summary(course_id)
        return {
            "reviews": [serialize_review(review) for review in reviews],
            "averageRating": summary["average"],
            "totalReviews": summary["count"],
        }

    def approve_review(self, review_id: int) -> dict:
        if not self.review_repo.approve(review_id):
            raise NotFoundError("Review")
        logger.info("Review approved", extra={"review_id": review_id})
        return serialize_review(self.review_repo.get_by_id(review_id))
