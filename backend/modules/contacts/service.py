"""
Contact gate implementation.

Combines the request lookup, the pricing engine and the billing module's
atomic debit-and-unlock. The unlock record is the only thing that grants
access; balances are never checked here and then debited later.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from shared.models import AuthenticatedUser
from modules.billing.interfaces import IBillingService
from modules.pricing.engine import get_popularity_level, get_urgency_info
from modules.pricing.interfaces import IPricingEngine
from modules.pricing.models import ContactPrice
from modules.requests.exceptions import RequestNotFoundError
from modules.requests.interfaces import IRequestRepository
from modules.requests.models import TutoringRequest

from .exceptions import ViewerRequiredError
from .interfaces import IContactGate
from .models import RequestView, UnlockResult, public_fields, redact

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContactGateService(IContactGate):
    """Contact gate over injected request, pricing and billing collaborators."""

    def __init__(
        self,
        requests: IRequestRepository,
        pricing: IPricingEngine,
        billing: IBillingService,
        clock: Callable[[], datetime] = _utc_now,
    ):
        """
        Initialize the contact gate.

        Args:
            requests: Request lookup
            pricing: Pricing engine for unlock costs
            billing: Billing service that sells unlocks
            clock: Source of "now" for pricing
        """
        self._requests = requests
        self._pricing = pricing
        self._billing = billing
        self._clock = clock

    async def view_request(
        self,
        request_id: str,
        viewer: Optional[AuthenticatedUser],
    ) -> RequestView:
        """Get a request with contact fields revealed only to unlocked viewers."""
        request = self._get_request(request_id)

        if viewer is None:
            return self._to_view(request, revealed=False)

        unlock = await self._billing.get_unlock(viewer.id, request.id)
        if unlock is not None:
            return self._to_view(request, revealed=True, unlocked_at=unlock.unlocked_at)

        price = self._pricing.price(request, self._clock())
        return self._to_view(request, revealed=False, unlock_cost=price.cost)

    async def quote(self, request_id: str) -> ContactPrice:
        """Price a request's unlock."""
        return self._pricing.price(self._get_request(request_id), self._clock())

    async def unlock(
        self,
        request_id: str,
        viewer: Optional[AuthenticatedUser],
    ) -> UnlockResult:
        """Debit the viewer and reveal the request's contact details."""
        if viewer is None:
            raise ViewerRequiredError(request_id)

        request = self._get_request(request_id)

        existing = await self._billing.get_unlock(viewer.id, request.id)
        if existing is not None:
            balance = await self._billing.get_balance(viewer.id)
            return UnlockResult(
                request_id=request.id,
                cost_paid=existing.cost_paid,
                balance_after=balance.balance,
                already_unlocked=True,
                unlocked_at=existing.unlocked_at,
                contact=request.contact,
            )

        cost = self._pricing.price(request, self._clock()).cost
        purchase = await self._billing.purchase_unlock(viewer.id, request.id, cost)

        if purchase.created:
            logger.info(
                f"User {viewer.id} unlocked request {request.id} for {cost} coins "
                f"(balance {purchase.balance_after})"
            )
        else:
            # Lost a race with a concurrent unlock by the same viewer
            logger.info(f"User {viewer.id} already unlocked request {request.id}")

        return UnlockResult(
            request_id=request.id,
            cost_paid=purchase.unlock.cost_paid,
            balance_after=purchase.balance_after,
            already_unlocked=not purchase.created,
            unlocked_at=purchase.unlock.unlocked_at,
            contact=request.contact,
        )

    async def record_view(self, request_id: str) -> int:
        """Increment the request's view counter."""
        return self._requests.increment_view_count(request_id)

    def _get_request(self, request_id: str) -> TutoringRequest:
        request = self._requests.get_request(request_id)
        if request is None:
            raise RequestNotFoundError(request_id)
        return request

    def _to_view(
        self,
        request: TutoringRequest,
        revealed: bool,
        unlock_cost: Optional[int] = None,
        unlocked_at: Optional[datetime] = None,
    ) -> RequestView:
        return RequestView(
            **public_fields(request),
            urgency_info=get_urgency_info(request.urgency),
            popularity=get_popularity_level(request.view_count),
            contact=request.contact if revealed else redact(request.contact),
            contact_info_available=revealed,
            unlock_cost=unlock_cost,
            unlocked_at=unlocked_at,
        )
