import re
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from core.config import settings

HTML_TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_html(value: Optional[str]) -> Optional[str]:
    """Trim and drop anything that looks like an HTML tag; nothing left means None"""
    if value is None:
        return None
    cleaned = HTML_TAG_PATTERN.sub("", value.strip()).strip()
    return cleaned or None


class CamelModel(BaseModel):
    """Snake-case in Python, camelCase on the wire"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SortBy(str, Enum):
    DATE = "date"
    RATING = "rating"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Review(CamelModel):
    id: str
    product_id: str
    rating: int
    comment: Optional[str] = None
    author_name: Optional[str] = None
    created_at: datetime
    is_verified_purchase: bool = False


class ReviewInput(CamelModel):
    """Write payload as handed to the review service"""

    product_id: str
    rating: int
    comment: Optional[str] = None
    author_name: Optional[str] = None


class ReviewCreate(CamelModel):
    rating: int = Field(
        ...,
        ge=settings.REVIEW_MIN_RATING,
        le=settings.REVIEW_MAX_RATING,
        description=f"Rating from {settings.REVIEW_MIN_RATING} to {settings.REVIEW_MAX_RATING} stars",
    )
    comment: Optional[str] = None
    author_name: Optional[str] = None

    @field_validator("comment")
    @classmethod
    def clean_comment(cls, v):
        v = strip_html(v)
        if v is not None and len(v) > settings.REVIEW_MAX_COMMENT_LENGTH:
            raise ValueError(f"Comment must not exceed {settings.REVIEW_MAX_COMMENT_LENGTH} characters")
        return v

    @field_validator("author_name")
    @classmethod
    def clean_author_name(cls, v):
        v = strip_html(v)
        if v is not None and len(v) > settings.REVIEW_MAX_AUTHOR_NAME_LENGTH:
            raise ValueError(f"Author name must not exceed {settings.REVIEW_MAX_AUTHOR_NAME_LENGTH} characters")
        return v

    def to_input(self, product_id: str) -> ReviewInput:
        return ReviewInput(
            product_id=product_id,
            rating=self.rating,
            comment=self.comment,
            author_name=self.author_name,
        )


class ReviewFilters(CamelModel):
    rating: Optional[int] = None
    verified: Optional[bool] = None
    sort_by: Optional[SortBy] = None
    sort_order: Optional[SortOrder] = None


class ProductRating(CamelModel):
    product_id: str
    average_rating: float
    total_reviews: int
    rating_distribution: Dict[int, int]  # {1: count, 2: count, ...}


class PaginatedReviews(CamelModel):
    reviews: List[Review]
    total: int
    page: int
    limit: int
    has_more: bool


class ReviewSingleResponse(BaseModel):
    success: bool
    message: str
    data: Review


class ProductReviewsResponse(BaseModel):
    success: bool
    message: str
    data: PaginatedReviews


class ProductRatingResponse(BaseModel):
    success: bool
    message: str
    data: ProductRating


class HealthResponse(BaseModel):
    success: bool
    message: str
    backend: str
    timestamp: datetime
