from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

from schemas.review import ProductRating

RATING_VALUES = range(1, 6)
ONE_DECIMAL = Decimal("0.1")


def average_rating(ratings) -> float:
    """Mean rounded half-up to one decimal; 0 for no ratings"""
    if not ratings:
        return 0
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return float(mean.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))


def aggregate_ratings(product_id: str, reviews: Iterable, rating_values=RATING_VALUES) -> ProductRating:
    """Average, count and per-star distribution of a review set.

    Ratings outside ``rating_values`` are left out of every figure so the
    distribution always sums to ``total_reviews``.
    """
    distribution = {value: 0 for value in rating_values}
    ratings = []
    for review in reviews:
        if review.rating in distribution:
            distribution[review.rating] += 1
            ratings.append(review.rating)

    return ProductRating(
        product_id=product_id,
        average_rating=average_rating(ratings),
        total_reviews=len(ratings),
        rating_distribution=distribution,
    )
