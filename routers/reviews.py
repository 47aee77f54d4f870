from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status
from fastapi.responses import JSONResponse

from core.auth import get_optional_principal, role_required, submitter_identity
from core.config import settings
from core.exceptions import ReviewServiceError
from core.handlers import create_response
from core.logging_config import get_logger, log_review_event
from core.rate_limit import api_rate_limiter, user_rate_limiter, write_rate_limiter
from core.reviews import ReviewService, get_review_service
from schemas.review import (
    HealthResponse,
    ProductRatingResponse,
    ProductReviewsResponse,
    ReviewCreate,
    ReviewFilters,
    ReviewSingleResponse,
    SortBy,
    SortOrder,
)

reviews_logger = get_logger("routers.reviews")

# Mounted under /products
router = APIRouter()
# Mounted under /reviews
admin_router = APIRouter()

ProductId = Annotated[str, Path(min_length=1, max_length=100, description="Product id or key")]


@router.get(
    "/{product_id}/rating",
    response_model=ProductRatingResponse,
    dependencies=[Depends(api_rate_limiter)],
)
def get_product_rating(
    product_id: ProductId,
    service: ReviewService = Depends(get_review_service),
):
    """Rating summary for a product: average, total and distribution"""
    product_id = product_id.strip()
    rating = service.get_rating(product_id)
    return ProductRatingResponse(
        success=True,
        message="Product rating retrieved successfully",
        data=rating,
    )


@router.get(
    "/{product_id}/reviews",
    response_model=ProductReviewsResponse,
    dependencies=[Depends(api_rate_limiter)],
)
def get_product_reviews(
    product_id: ProductId,
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(10, ge=1, le=100, description="Items per page"),
    rating: Optional[int] = Query(
        None, ge=settings.REVIEW_MIN_RATING, le=settings.REVIEW_MAX_RATING, description="Only this rating"),
    verified: Optional[bool] = Query(None, description="Only verified / unverified purchases"),
    sort_by: Optional[SortBy] = Query(None, alias="sortBy"),
    sort_order: Optional[SortOrder] = Query(None, alias="sortOrder"),
    service: ReviewService = Depends(get_review_service),
):
    """Paginated reviews for a product with filtering and sorting"""
    product_id = product_id.strip()
    filters = ReviewFilters(rating=rating, verified=verified, sort_by=sort_by, sort_order=sort_order)
    reviews = service.list_reviews(product_id, page=page, limit=limit, filters=filters)
    return ProductReviewsResponse(
        success=True,
        message="Product reviews retrieved successfully",
        data=reviews,
    )


@router.post(
    "/{product_id}/reviews",
    response_model=ReviewSingleResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(write_rate_limiter), Depends(user_rate_limiter)],
)
def create_review(
    request: Request,
    payload: ReviewCreate,
    product_id: ProductId,
    principal=Depends(get_optional_principal),
    service: ReviewService = Depends(get_review_service),
):
    """Submit a review; anonymous submissions are keyed on the client address"""
    if principal is None and not settings.ALLOW_ANONYMOUS_REVIEWS:
        return create_response(
            success=False,
            message="No authorization header provided",
            code=status.HTTP_401_UNAUTHORIZED,
        )

    product_id = product_id.strip()
    submitter_id = submitter_identity(request, principal)
    client_host = request.client.host if request.client else "unknown"

    try:
        review = service.create_review(payload.to_input(product_id), submitter_id)
    except ReviewServiceError as e:
        log_review_event(
            "review_create", success=False, product_id=product_id,
            submitter_id=submitter_id, error_code=e.code, client_host=client_host,
        )
        raise

    log_review_event(
        "review_create", review_id=review.id, product_id=product_id, submitter_id=submitter_id,
        rating=review.rating, client_host=client_host, anonymous=principal is None,
    )
    return ReviewSingleResponse(
        success=True,
        message="Review created successfully",
        data=review,
    )


@admin_router.get("/health", response_model=HealthResponse)
def review_health_check(service: ReviewService = Depends(get_review_service)):
    """Reviews system health; 503 when the backend cannot be reached"""
    healthy = service.health_check()
    body = HealthResponse(
        success=healthy,
        message="Reviews system is healthy" if healthy else "Review backend connection failed",
        backend=service.backend_name,
        timestamp=datetime.now(timezone.utc),
    )
    if not healthy:
        reviews_logger.error(f"Review backend '{service.backend_name}' is unhealthy")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(mode="json"),
        )
    return body


@admin_router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: str = Path(..., min_length=1, max_length=100),
    version: Optional[int] = Query(None, ge=1, description="Concurrency-control version token"),
    user=Depends(role_required(["admin"])),
    service: ReviewService = Depends(get_review_service),
):
    """Delete a review (admin only)"""
    service.delete_review(review_id, version)
    log_review_event("review_delete", review_id=review_id, user_id=user["id"])
    return None
