"""
Contacts module interface.

The API routes depend on IContactGate, not on the concrete service.
"""

from typing import Protocol, Optional, runtime_checkable

from shared.models import AuthenticatedUser
from modules.pricing.models import ContactPrice
from .models import RequestView, UnlockResult


@runtime_checkable
class IContactGate(Protocol):
    """
    Decides who sees a requester's contact details.

    Anonymous viewers never do. Signed-in viewers do once they hold an
    unlock for the request, which they buy with coins.
    """

    async def view_request(
        self,
        request_id: str,
        viewer: Optional[AuthenticatedUser],
    ) -> RequestView:
        """
        Get a request as the viewer may see it.

        Raises:
            RequestNotFoundError: If the request does not exist
        """
        ...

    async def quote(self, request_id: str) -> ContactPrice:
        """
        Price unlocking a request, with the factor breakdown.

        Raises:
            RequestNotFoundError: If the request does not exist
        """
        ...

    async def unlock(
        self,
        request_id: str,
        viewer: Optional[AuthenticatedUser],
    ) -> UnlockResult:
        """
        Pay to unlock a request's contact details.

        Unlocking twice never charges twice.

        Raises:
            ViewerRequiredError: If the viewer is anonymous
            RequestNotFoundError: If the request does not exist
            InsufficientBalanceError: If the viewer cannot afford the unlock
        """
        ...

    async def record_view(self, request_id: str) -> int:
        """Count a view of the request and return the new total."""
        ...
