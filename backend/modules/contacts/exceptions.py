"""
Contacts module exceptions.
"""

from shared.exceptions import AuthenticationError


class ViewerRequiredError(AuthenticationError):
    """Raised when an anonymous viewer tries to unlock contact details."""

    def __init__(self, request_id: str):
        super().__init__(
            "Sign in to unlock contact details",
            code="VIEWER_REQUIRED",
            details={"request_id": request_id},
        )
