from typing import Optional

from fastapi import Request

from core.config import Settings, settings as default_settings
from core.duplicate_guard import ensure_first_submission
from core.exceptions import DeleteFailed, InvalidInput, NotFound, VersionConflict
from core.logging_config import get_logger
from core.rating import aggregate_ratings
from core.review_query import query_reviews
from core.review_store import ReviewStore
from schemas.review import PaginatedReviews, ProductRating, Review, ReviewFilters, ReviewInput

logger = get_logger(__name__)


class ReviewService:
    """Entry point for review reads and writes, independent of the backend"""

    def __init__(self, store: ReviewStore, settings: Settings = default_settings):
        self.store = store
        self.min_rating = settings.REVIEW_MIN_RATING
        self.max_rating = settings.REVIEW_MAX_RATING
        self.max_comment_length = settings.REVIEW_MAX_COMMENT_LENGTH
        self.max_author_name_length = settings.REVIEW_MAX_AUTHOR_NAME_LENGTH

    @property
    def backend_name(self) -> str:
        return self.store.name

    def get_rating(self, product_id: str) -> ProductRating:
        logger.info(f"Fetching product rating - product: {product_id}")
        reviews = self.store.fetch_all(product_id)
        return aggregate_ratings(product_id, reviews)

    def list_reviews(
        self,
        product_id: str,
        page: int = 1,
        limit: int = 10,
        filters: Optional[ReviewFilters] = None,
    ) -> PaginatedReviews:
        logger.info(f"Fetching product reviews - product: {product_id}, page: {page}, limit: {limit}, filters: {filters}")
        reviews = [review.to_public() for review in self.store.fetch_all(product_id)]
        return query_reviews(reviews, filters, page=page, limit=limit)

    def _validate(self, review_input: ReviewInput):
        if not self.min_rating <= review_input.rating <= self.max_rating:
            raise InvalidInput(f"Rating must be between {self.min_rating} and {self.max_rating}")

        if review_input.comment and len(review_input.comment) > self.max_comment_length:
            raise InvalidInput(f"Comment must not exceed {self.max_comment_length} characters")

        if review_input.author_name and len(review_input.author_name) > self.max_author_name_length:
            raise InvalidInput(f"Author name must not exceed {self.max_author_name_length} characters")

    def create_review(self, review_input: ReviewInput, submitter_id: str) -> Review:
        logger.info(f"Creating review - product: {review_input.product_id}, submitter: {submitter_id}")
        self._validate(review_input)

        existing = self.store.fetch_all(review_input.product_id)
        ensure_first_submission(existing, submitter_id)

        stored = self.store.insert(
            review_input.product_id,
            review_input.rating,
            review_input.comment,
            review_input.author_name,
            submitter_id,
        )
        logger.info(f"Review created successfully - review: {stored.id}, submitter: {submitter_id}")
        return stored.to_public()

    def delete_review(self, review_id: str, version: Optional[int] = None) -> None:
        logger.info(f"Deleting review - review: {review_id}, version: {version}")
        try:
            self.store.remove(review_id, version)
        except (NotFound, VersionConflict) as e:
            logger.warning(f"Review {review_id} could not be deleted: {e.message}")
            raise DeleteFailed(f"Failed to delete review: {e.message}", reason=e) from e
        logger.info(f"Review deleted successfully - review: {review_id}")

    def health_check(self) -> bool:
        try:
            return bool(self.store.ping())
        except Exception as e:
            logger.error(f"Review backend health check failed: {str(e)}")
            return False


def get_review_service(request: Request) -> ReviewService:
    """Dependency returning the service owned by the running application"""
    return request.app.state.review_service
