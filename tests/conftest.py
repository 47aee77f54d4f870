import os
from datetime import datetime, timedelta, timezone

import pytest

os.environ["ENVIRONMENT"] = "test"
os.environ["SEED_DEMO_REVIEWS"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["REDIS_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"


@pytest.fixture()
def store():
    from core.review_store import InMemoryReviewStore

    return InMemoryReviewStore()


@pytest.fixture()
def service(store):
    from core.config import settings
    from core.reviews import ReviewService

    return ReviewService(store, settings)


@pytest.fixture()
def client(store):
    from fastapi.testclient import TestClient
    from main import create_app

    with TestClient(create_app(store=store)) as test_client:
        yield test_client


@pytest.fixture(autouse=True)
def reset_rate_limits():
    from core.rate_limit import fallback_counter

    fallback_counter.reset()
    yield
    fallback_counter.reset()


def _token(user_id, role):
    from core.auth import create_access_token

    return create_access_token({"sub": user_id, "role": role})


@pytest.fixture()
def customer_headers():
    return {"Authorization": f"Bearer {_token('customer-001', 'customer')}"}


@pytest.fixture()
def admin_headers():
    return {"Authorization": f"Bearer {_token('admin-001', 'admin')}"}


@pytest.fixture()
def make_review():
    """Build public reviews with increasing creation times"""
    from schemas.review import Review

    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    counter = {"n": 0}

    def _make(rating=5, verified=False, created_at=None, **overrides):
        counter["n"] += 1
        n = counter["n"]
        return Review(
            id=overrides.pop("id", f"review-{n}"),
            product_id=overrides.pop("product_id", "prod-001"),
            rating=rating,
            comment=overrides.pop("comment", f"Comment {n}"),
            author_name=overrides.pop("author_name", None),
            created_at=created_at or base + timedelta(hours=n),
            is_verified_purchase=verified,
        )

    return _make
