from typing import Any, Dict, List, Optional

from core.commercetools_client import CommerceToolsClient, CommerceToolsError
from core.exceptions import BackendUnavailable, DuplicateSubmission, NotFound, VersionConflict
from core.logging_config import get_logger
from core.product_reference import ProductReference, path_segment, quote_predicate_value, reviews_where
from core.review_store import ReviewStore, StoredReview

logger = get_logger(__name__)

PAGE_SIZE = 500
UNIQUENESS_SEPARATOR = ":"


def uniqueness_value(product_id: str, submitter_id: str) -> str:
    """One review per submitter per product, enforced by commercetools itself"""
    return f"{product_id}{UNIQUENESS_SEPARATOR}{submitter_id}"


def submitter_from_uniqueness(value: Optional[str]) -> Optional[str]:
    # Product ids and keys never contain the separator, submitter ids may
    if not value or UNIQUENESS_SEPARATOR not in value:
        return None
    return value.partition(UNIQUENESS_SEPARATOR)[2]


def to_stored_review(product_id: str, payload: Dict[str, Any]) -> StoredReview:
    custom_fields = (payload.get("custom") or {}).get("fields") or {}
    return StoredReview(
        id=payload["id"],
        product_id=product_id,
        rating=payload["rating"],
        comment=payload.get("text"),
        author_name=payload.get("authorName"),
        created_at=payload["createdAt"],
        is_verified_purchase=bool(custom_fields.get("isVerifiedPurchase", False)),
        submitter_id=submitter_from_uniqueness(payload.get("uniquenessValue")),
        version=payload["version"],
    )


class CommerceToolsReviewStore(ReviewStore):
    """Review store backed by the commercetools Reviews API.

    Reviews come back labelled with the product reference the caller used,
    whether that was the platform id or the product key.
    """

    name = "commercetools"

    def __init__(self, client: CommerceToolsClient):
        self.client = client
        self.project_key = client.project_key

    def initialize(self) -> None:
        """Obtain a token and reach the project; BackendUnavailable otherwise"""
        self.client.access_token()
        try:
            self.client.get(f"/{self.project_key}")
        except CommerceToolsError as e:
            raise BackendUnavailable("commercetools project is not reachable") from e

    def _resolve_product_id(self, reference: ProductReference) -> Optional[str]:
        if reference.is_platform_id:
            return reference.value
        try:
            product = self.client.get(reference.product_path(self.project_key))
        except CommerceToolsError as e:
            if e.status_code == 404:
                return None
            raise BackendUnavailable() from e
        return product["id"]

    def fetch_all(self, product_id: str) -> List[StoredReview]:
        """All rated reviews of a product in creation order.

        Pages with an id cursor instead of an offset, since commercetools
        rejects offsets above 10,000.
        """
        reference = ProductReference.parse(product_id)
        platform_id = self._resolve_product_id(reference)
        if platform_id is None:
            logger.info(f"Product key not found in commercetools: {product_id}")
            return []

        reviews = []
        last_id = None
        while True:
            where = reviews_where(platform_id)
            if last_id is not None:
                where = f"{where} and id > {quote_predicate_value(last_id)}"
            try:
                page = self.client.get(
                    f"/{self.project_key}/reviews",
                    params={
                        "where": where,
                        "sort": "id asc",
                        "limit": PAGE_SIZE,
                        "withTotal": "false",
                    },
                )
            except CommerceToolsError as e:
                raise BackendUnavailable() from e

            results = page.get("results", [])
            reviews.extend(
                to_stored_review(product_id, item) for item in results if item.get("rating") is not None
            )
            if len(results) < PAGE_SIZE:
                break
            last_id = results[-1]["id"]

        reviews.sort(key=lambda review: review.created_at)
        return reviews

    def insert(self, product_id, rating, comment, author_name, submitter_id) -> StoredReview:
        reference = ProductReference.parse(product_id)
        draft = {
            "target": reference.review_target(),
            "rating": rating,
            "uniquenessValue": uniqueness_value(product_id, submitter_id),
        }
        if comment is not None:
            draft["text"] = comment
        if author_name is not None:
            draft["authorName"] = author_name

        try:
            created = self.client.post(f"/{self.project_key}/reviews", json=draft)
        except CommerceToolsError as e:
            if "DuplicateField" in e.error_codes:
                raise DuplicateSubmission("You have already reviewed this product") from e
            raise BackendUnavailable() from e

        logger.info(f"commercetools review created: {created['id']}")
        return to_stored_review(product_id, created)

    def remove(self, review_id: str, version: Optional[int] = None) -> None:
        path = f"/{self.project_key}/reviews/{path_segment(review_id)}"
        try:
            if version is None:
                version = self.client.get(path)["version"]
            self.client.delete(path, params={"version": version})
        except CommerceToolsError as e:
            if e.status_code == 404:
                raise NotFound("Review not found") from e
            if e.status_code == 409:
                raise VersionConflict() from e
            raise BackendUnavailable() from e

    def ping(self) -> bool:
        try:
            self.client.get(f"/{self.project_key}")
            return True
        except Exception as e:
            logger.error(f"commercetools health check failed: {str(e)}")
            return False
