from typing import Iterable

from core.exceptions import DuplicateSubmission


def ensure_first_submission(existing: Iterable, submitter_id: str) -> None:
    """Reject a second review of the same product by the same submitter.

    Check-then-insert is not atomic on the in-memory store: two concurrent
    requests from one submitter can both pass. The commercetools store backs
    this with a uniqueness value on the review itself.
    """
    for review in existing:
        if review.submitter_id == submitter_id:
            raise DuplicateSubmission("You have already reviewed this product")
