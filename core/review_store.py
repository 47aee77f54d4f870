import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from core.config import Settings
from core.exceptions import BackendUnavailable, NotFound
from core.logging_config import get_logger
from schemas.review import Review

logger = get_logger(__name__)


class StoredReview(BaseModel):
    """A review as persisted by a backend, internal fields included"""

    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    rating: int
    comment: Optional[str] = None
    author_name: Optional[str] = None
    created_at: datetime
    is_verified_purchase: bool = False
    submitter_id: Optional[str] = None
    version: int = 1

    def to_public(self) -> Review:
        return Review.model_validate(self.model_dump(exclude={"submitter_id", "version"}))


class ReviewStore(ABC):
    """Storage contract shared by the in-process and commercetools backends"""

    name = "abstract"

    @abstractmethod
    def fetch_all(self, product_id: str) -> List[StoredReview]:
        """All reviews of a product; empty for an unknown product"""

    @abstractmethod
    def insert(
        self,
        product_id: str,
        rating: int,
        comment: Optional[str],
        author_name: Optional[str],
        submitter_id: str,
    ) -> StoredReview:
        """Persist a new, unverified review"""

    @abstractmethod
    def remove(self, review_id: str, version: Optional[int] = None) -> None:
        """Delete a review; raises NotFound when no product holds it"""

    @abstractmethod
    def ping(self) -> bool:
        """Reachability signal; never raises"""


class InMemoryReviewStore(ReviewStore):
    """Process-local store keyed on the literal product reference.

    A single lock guards both mutation and snapshotting, so a reader never
    sees a half-updated product list. Version tokens are accepted on remove
    but not checked.
    """

    name = "memory"

    def __init__(self, seed_demo_data: bool = False):
        self._reviews: Dict[str, List[StoredReview]] = {}
        self._lock = threading.RLock()
        if seed_demo_data:
            self._seed()

    def _seed(self):
        demo = [
            StoredReview(
                id=str(uuid.uuid4()),
                product_id="test-product-1",
                rating=5,
                comment="Excellent product! Highly recommended.",
                author_name="John D.",
                created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
                is_verified_purchase=True,
            ),
            StoredReview(
                id=str(uuid.uuid4()),
                product_id="test-product-1",
                rating=4,
                comment="Good quality, fast delivery.",
                author_name="Sarah M.",
                created_at=datetime(2024, 1, 20, tzinfo=timezone.utc),
                is_verified_purchase=True,
            ),
        ]
        with self._lock:
            self._reviews["test-product-1"] = demo
        logger.info(f"Seeded in-memory review store with {len(demo)} demo reviews")

    def fetch_all(self, product_id: str) -> List[StoredReview]:
        with self._lock:
            return list(self._reviews.get(product_id, []))

    def insert(self, product_id, rating, comment, author_name, submitter_id) -> StoredReview:
        review = StoredReview(
            id=str(uuid.uuid4()),
            product_id=product_id,
            rating=rating,
            comment=comment,
            author_name=author_name,
            created_at=datetime.now(timezone.utc),
            is_verified_purchase=False,
            submitter_id=submitter_id,
            version=1,
        )
        with self._lock:
            self._reviews.setdefault(product_id, []).append(review)
        return review

    def remove(self, review_id: str, version: Optional[int] = None) -> None:
        with self._lock:
            for reviews in self._reviews.values():
                for index, review in enumerate(reviews):
                    if review.id == review_id:
                        del reviews[index]
                        return
        raise NotFound("Review not found")

    def ping(self) -> bool:
        return self._reviews is not None


def build_review_store(settings: Settings) -> ReviewStore:
    """Pick the backend for this process.

    The commercetools adapter is used only when credentials are configured
    outside the test profile. If it cannot initialize, the process stays on
    the in-process store for its whole lifetime.
    """
    if settings.use_in_memory_store:
        reason = "test profile" if settings.ENVIRONMENT == "test" else "commercetools credentials not configured"
        logger.info(f"Using in-memory review store ({reason})")
        return InMemoryReviewStore(seed_demo_data=settings.SEED_DEMO_REVIEWS)

    from core.commercetools_client import CommerceToolsClient
    from core.commercetools_store import CommerceToolsReviewStore

    store = CommerceToolsReviewStore(CommerceToolsClient(settings))
    try:
        store.initialize()
    except BackendUnavailable as e:
        logger.error(
            "commercetools initialization failed, falling back to in-memory review store",
            extra={"reason": e.message},
        )
        return InMemoryReviewStore(seed_demo_data=settings.SEED_DEMO_REVIEWS)

    logger.info("Using commercetools review store", extra={"project_key": settings.CTP_PROJECT_KEY})
    return store
