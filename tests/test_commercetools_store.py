"""Tests for the commercetools review store with a mocked client."""

from unittest.mock import MagicMock

import pytest

from core.commercetools_client import CommerceToolsError
from core.commercetools_store import (
    PAGE_SIZE,
    CommerceToolsReviewStore,
    submitter_from_uniqueness,
    uniqueness_value,
)
from core.exceptions import BackendUnavailable, DuplicateSubmission, NotFound, VersionConflict

PRODUCT_ID = "3f2b8c1e-9d4a-4e2b-8f1a-7c6d5e4b3a21"


def ct_review(review_id="rev-1", rating=5, submitter="user-1", product=PRODUCT_ID, verified=None, **extra):
    payload = {
        "id": review_id,
        "version": 2,
        "rating": rating,
        "text": "Solid build",
        "authorName": "Ann",
        "uniquenessValue": uniqueness_value(product, submitter) if submitter else None,
        "target": {"typeId": "product", "id": PRODUCT_ID},
        "createdAt": "2024-03-01T10:00:00.000Z",
        "lastModifiedAt": "2024-03-01T10:00:00.000Z",
    }
    if verified is not None:
        payload["custom"] = {"type": {"typeId": "type", "id": "t1"}, "fields": {"isVerifiedPurchase": verified}}
    payload.update(extra)
    return payload


@pytest.fixture()
def client():
    client = MagicMock()
    client.project_key = "proj"
    return client


@pytest.fixture()
def ct_store(client):
    return CommerceToolsReviewStore(client)


class TestUniquenessValue:
    def test_round_trip_keeps_colons_in_submitter(self):
        value = uniqueness_value("summer-shirt", "anonymous-::1")

        assert value == "summer-shirt:anonymous-::1"
        assert submitter_from_uniqueness(value) == "anonymous-::1"

    def test_missing_value(self):
        assert submitter_from_uniqueness(None) is None
        assert submitter_from_uniqueness("no-separator") is None


class TestFetchAll:
    def test_platform_id_queries_reviews_directly(self, ct_store, client):
        client.get.return_value = {"results": [ct_review(verified=True)], "total": 1, "offset": 0, "count": 1}

        reviews = ct_store.fetch_all(PRODUCT_ID)

        client.get.assert_called_once()
        path = client.get.call_args[0][0]
        params = client.get.call_args[1]["params"]
        assert path == "/proj/reviews"
        assert params["where"] == f'target(id="{PRODUCT_ID}")'
        assert params["sort"] == "id asc"
        assert "offset" not in params

        assert len(reviews) == 1
        review = reviews[0]
        assert review.id == "rev-1"
        assert review.product_id == PRODUCT_ID
        assert review.rating == 5
        assert review.comment == "Solid build"
        assert review.author_name == "Ann"
        assert review.is_verified_purchase is True
        assert review.submitter_id == "user-1"
        assert review.version == 2
        assert review.created_at.year == 2024

    def test_key_is_resolved_to_product_id(self, ct_store, client):
        client.get.side_effect = [
            {"id": PRODUCT_ID, "key": "summer-shirt"},
            {"results": [ct_review(product="summer-shirt")], "total": 1},
        ]

        reviews = ct_store.fetch_all("summer-shirt")

        first_call, second_call = client.get.call_args_list
        assert first_call[0][0] == "/proj/products/key=summer-shirt"
        assert second_call[1]["params"]["where"] == f'target(id="{PRODUCT_ID}")'
        assert reviews[0].product_id == "summer-shirt"
        assert reviews[0].submitter_id == "user-1"

    def test_key_is_encoded_in_the_lookup_path(self, ct_store, client):
        client.get.side_effect = [
            {"id": PRODUCT_ID, "key": "x?where=1"},
            {"results": []},
        ]

        ct_store.fetch_all("x?where=1")

        assert client.get.call_args_list[0][0][0] == "/proj/products/key=x%3Fwhere%3D1"

    @pytest.mark.parametrize(
        "key,encoded",
        [("summer shirt", "summer%20shirt"), ("a#b", "a%23b"), ("100%", "100%25"), ("a/b", "a%2Fb")],
    )
    def test_reserved_characters_in_keys(self, ct_store, client, key, encoded):
        client.get.side_effect = CommerceToolsError(404)

        assert ct_store.fetch_all(key) == []
        assert client.get.call_args[0][0] == f"/proj/products/key={encoded}"

    def test_unknown_key_has_no_reviews(self, ct_store, client):
        client.get.side_effect = CommerceToolsError(404, {"errors": [{"code": "ResourceNotFound"}]})

        assert ct_store.fetch_all("no-such-product") == []

    def test_large_result_sets_are_paged_by_id_cursor(self, ct_store, client):
        everything = [ct_review(review_id=f"r{i:05d}", submitter=f"u{i}") for i in range(10700)]
        client.get.side_effect = [
            {"results": everything[start:start + PAGE_SIZE]} for start in range(0, len(everything), PAGE_SIZE)
        ]

        reviews = ct_store.fetch_all(PRODUCT_ID)

        assert len(reviews) == 10700
        calls = client.get.call_args_list
        assert len(calls) == 22
        assert all("offset" not in c[1]["params"] for c in calls)
        assert all(c[1]["params"]["sort"] == "id asc" for c in calls)
        assert calls[0][1]["params"]["where"] == f'target(id="{PRODUCT_ID}")'
        assert calls[1][1]["params"]["where"] == f'target(id="{PRODUCT_ID}") and id > "r00499"'
        assert calls[21][1]["params"]["where"].endswith('id > "r10499"')

    def test_full_last_page_ends_with_an_empty_request(self, ct_store, client):
        first = [ct_review(review_id=f"r{i:03d}", submitter=f"u{i}") for i in range(PAGE_SIZE)]
        client.get.side_effect = [{"results": first}, {"results": []}]

        assert len(ct_store.fetch_all(PRODUCT_ID)) == PAGE_SIZE
        assert client.get.call_count == 2

    def test_reviews_come_back_in_creation_order(self, ct_store, client):
        client.get.return_value = {
            "results": [
                ct_review(review_id="a", createdAt="2024-03-02T10:00:00.000Z"),
                ct_review(review_id="b", createdAt="2024-03-01T10:00:00.000Z"),
                ct_review(review_id="c", createdAt="2024-03-03T10:00:00.000Z"),
            ]
        }

        assert [r.id for r in ct_store.fetch_all(PRODUCT_ID)] == ["b", "a", "c"]

    def test_reviews_without_rating_are_skipped(self, ct_store, client):
        client.get.return_value = {
            "results": [ct_review(review_id="r1"), ct_review(review_id="r2", rating=None)],
            "total": 2,
        }

        assert [r.id for r in ct_store.fetch_all(PRODUCT_ID)] == ["r1"]

    def test_verified_defaults_to_false(self, ct_store, client):
        client.get.return_value = {"results": [ct_review()], "total": 1}

        assert ct_store.fetch_all(PRODUCT_ID)[0].is_verified_purchase is False

    def test_backend_failure_propagates(self, ct_store, client):
        client.get.side_effect = BackendUnavailable()

        with pytest.raises(BackendUnavailable):
            ct_store.fetch_all(PRODUCT_ID)

    def test_rejected_query_is_backend_unavailable(self, ct_store, client):
        client.get.side_effect = CommerceToolsError(400, {"errors": [{"code": "InvalidInput"}]})

        with pytest.raises(BackendUnavailable):
            ct_store.fetch_all(PRODUCT_ID)


class TestInsert:
    def test_draft_for_key_reference(self, ct_store, client):
        client.post.return_value = ct_review(product="summer-shirt", submitter="user-9", rating=4)

        review = ct_store.insert("summer-shirt", 4, "Solid build", "Ann", "user-9")

        path = client.post.call_args[0][0]
        draft = client.post.call_args[1]["json"]
        assert path == "/proj/reviews"
        assert draft == {
            "target": {"typeId": "product", "key": "summer-shirt"},
            "rating": 4,
            "uniquenessValue": "summer-shirt:user-9",
            "text": "Solid build",
            "authorName": "Ann",
        }
        assert review.product_id == "summer-shirt"
        assert review.submitter_id == "user-9"
        assert review.is_verified_purchase is False

    def test_draft_for_platform_id_omits_empty_fields(self, ct_store, client):
        client.post.return_value = ct_review()

        ct_store.insert(PRODUCT_ID, 5, None, None, "user-1")

        draft = client.post.call_args[1]["json"]
        assert draft["target"] == {"typeId": "product", "id": PRODUCT_ID}
        assert "text" not in draft
        assert "authorName" not in draft

    def test_uniqueness_violation_is_duplicate_submission(self, ct_store, client):
        client.post.side_effect = CommerceToolsError(
            400, {"errors": [{"code": "DuplicateField", "field": "uniquenessValue"}]}
        )

        with pytest.raises(DuplicateSubmission):
            ct_store.insert(PRODUCT_ID, 5, None, None, "user-1")

    def test_other_rejections_are_backend_unavailable(self, ct_store, client):
        client.post.side_effect = CommerceToolsError(400, {"errors": [{"code": "InvalidJsonInput"}]})

        with pytest.raises(BackendUnavailable):
            ct_store.insert(PRODUCT_ID, 5, None, None, "user-1")


class TestRemove:
    def test_with_version_token(self, ct_store, client):
        ct_store.remove("rev-1", version=3)

        client.get.assert_not_called()
        client.delete.assert_called_once_with("/proj/reviews/rev-1", params={"version": 3})

    def test_review_id_is_encoded_in_the_path(self, ct_store, client):
        ct_store.remove("rev?1#x", version=3)

        client.delete.assert_called_once_with("/proj/reviews/rev%3F1%23x", params={"version": 3})

    def test_without_version_reads_current_version(self, ct_store, client):
        client.get.return_value = ct_review(version=7)

        ct_store.remove("rev-1")

        client.get.assert_called_once_with("/proj/reviews/rev-1")
        client.delete.assert_called_once_with("/proj/reviews/rev-1", params={"version": 7})

    def test_missing_review(self, ct_store, client):
        client.delete.side_effect = CommerceToolsError(404)

        with pytest.raises(NotFound):
            ct_store.remove("rev-1", version=1)

    def test_stale_version(self, ct_store, client):
        client.delete.side_effect = CommerceToolsError(409, {"errors": [{"code": "ConcurrentModification"}]})

        with pytest.raises(VersionConflict):
            ct_store.remove("rev-1", version=1)


class TestPingAndInitialize:
    def test_ping(self, ct_store, client):
        client.get.return_value = {"key": "proj"}

        assert ct_store.ping() is True
        client.get.assert_called_once_with("/proj")

    def test_ping_never_raises(self, ct_store, client):
        client.get.side_effect = BackendUnavailable()
        assert ct_store.ping() is False

        client.get.side_effect = RuntimeError("unexpected")
        assert ct_store.ping() is False

    def test_initialize_requires_reachable_project(self, ct_store, client):
        client.get.side_effect = CommerceToolsError(404)

        with pytest.raises(BackendUnavailable):
            ct_store.initialize()

        client.access_token.assert_called_once()
