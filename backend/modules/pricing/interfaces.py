"""
Pricing module interface.

The contact gate depends on IPricingEngine so tests can pin prices.
"""

from datetime import datetime
from typing import Protocol, Optional, runtime_checkable

from modules.requests.models import TutoringRequest
from .models import ContactPrice


@runtime_checkable
class IPricingEngine(Protocol):
    """
    Interface for contact pricing.

    Implementations must be pure: no I/O, and the same request and `now`
    always produce the same price.
    """

    def price(
        self,
        request: TutoringRequest,
        now: Optional[datetime] = None,
    ) -> ContactPrice:
        """
        Price unlocking a request's contact details.

        Args:
            request: The request to price
            now: Reference time for the recency factor (defaults to UTC now)

        Returns:
            ContactPrice with the final cost and the applied factors
        """
        ...
