"""
Requests module interface.

The contact gate depends on IRequestRepository, not on Supabase.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import TutoringRequest


@runtime_checkable
class IRequestRepository(Protocol):
    """Read access to tutoring requests."""

    def get_request(self, request_id: str) -> Optional[TutoringRequest]:
        """
        Look up a request with its subjects and requester contact fields.

        Returns:
            The request, or None if it does not exist.

        Raises:
            StoreUnavailableError: If the data store cannot be reached.
        """
        ...

    def increment_view_count(self, request_id: str) -> int:
        """
        Atomically add one to the request's view counter.

        Returns:
            The new view count.
        """
        ...
