"""Error taxonomy of the review service.

Every error carries a stable ``code`` that clients can switch on and a
human-readable message. Messages never include backend identifiers or
stack detail; the original cause, when there is one, stays on ``__cause__``.
"""

from fastapi import status


class ReviewServiceError(Exception):
    """Base class for all review service failures"""

    code = "review_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Review service error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(ReviewServiceError):
    """Rating out of range, comment or author name too long"""

    code = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid review input"


class DuplicateSubmission(ReviewServiceError):
    code = "duplicate_submission"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You have already reviewed this product"


class NotFound(ReviewServiceError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Review not found"


class VersionConflict(ReviewServiceError):
    """The version token supplied for a delete is stale"""

    code = "version_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Review was modified concurrently"


class DeleteFailed(ReviewServiceError):
    code = "delete_failed"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Failed to delete review"

    def __init__(self, message: str = None, reason: ReviewServiceError = None):
        super().__init__(message)
        self.reason = reason
        if isinstance(reason, VersionConflict):
            self.status_code = status.HTTP_409_CONFLICT


class BackendUnavailable(ReviewServiceError):
    """The active review backend could not be reached or initialized"""

    code = "backend_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Review backend is unavailable"
