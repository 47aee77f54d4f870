from typing import Optional, Sequence

from schemas.review import PaginatedReviews, Review, ReviewFilters, SortBy, SortOrder


def filter_reviews(reviews: Sequence[Review], filters: ReviewFilters):
    matched = list(reviews)
    if filters.rating is not None:
        matched = [r for r in matched if r.rating == filters.rating]
    if filters.verified is not None:
        matched = [r for r in matched if r.is_verified_purchase == filters.verified]
    return matched


def sort_reviews(reviews: Sequence[Review], filters: ReviewFilters):
    """Order by rating or creation date, newest / highest first unless asc.

    ``sorted`` is stable in both directions, so ties keep the order the
    backend returned them in (insertion order).
    """
    descending = filters.sort_order != SortOrder.ASC
    if filters.sort_by == SortBy.RATING:
        return sorted(reviews, key=lambda r: r.rating, reverse=descending)
    return sorted(reviews, key=lambda r: r.created_at, reverse=descending)


def query_reviews(
    reviews: Sequence[Review],
    filters: Optional[ReviewFilters] = None,
    page: int = 1,
    limit: int = 10,
) -> PaginatedReviews:
    """Filter, sort and slice one page; page and limit are already range-checked"""
    filters = filters or ReviewFilters()
    matched = sort_reviews(filter_reviews(reviews, filters), filters)

    offset = (page - 1) * limit
    page_items = matched[offset:offset + limit]
    total = len(matched)

    return PaginatedReviews(
        reviews=page_items,
        total=total,
        page=page,
        limit=limit,
        has_more=offset + len(page_items) < total,
    )
