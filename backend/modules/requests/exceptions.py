"""
Requests module exceptions.
"""

from shared.exceptions import NotFoundError


class RequestNotFoundError(NotFoundError):
    """Raised when a tutoring request does not exist."""

    def __init__(self, request_id: str):
        super().__init__(
            f"Request not found: {request_id}",
            code="REQUEST_NOT_FOUND",
            details={"request_id": request_id},
        )
