"""
Contacts module data models.

What a viewer gets back when looking at a tutoring request: the public
fields always, the requester's contact details only after an unlock.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from modules.pricing.models import PopularityLevel, UrgencyInfo
from modules.requests.models import ContactDetails, TutoringRequest, Urgency


REDACTED_PLACEHOLDER = "Contact details available after payment"


class RequestView(BaseModel):
    """A tutoring request as shown to one viewer."""

    id: str
    title: Optional[str] = None
    description: Optional[str] = None
    level: Optional[str] = None
    status: str
    urgency: Optional[Urgency] = None
    urgency_info: UrgencyInfo
    price_amount: Optional[Decimal] = None
    price_currency: Optional[str] = None
    subjects: list[str] = Field(default_factory=list)
    view_count: int = 0
    contacted_count: int = 0
    popularity: PopularityLevel
    created_at: Optional[datetime] = None

    contact: ContactDetails = Field(..., description="Contact fields, redacted unless unlocked")
    contact_info_available: bool = Field(
        ...,
        description="Whether the contact fields are real",
    )
    unlock_cost: Optional[int] = Field(
        None,
        description="Coins needed to unlock, when the viewer can buy an unlock",
    )
    unlocked_at: Optional[datetime] = None


class UnlockResult(BaseModel):
    """Outcome of an unlock attempt that did not fail."""

    request_id: str
    cost_paid: int = Field(..., description="Coins paid for the unlock (original price on repeats)")
    balance_after: int = Field(..., description="Viewer's balance after the attempt")
    already_unlocked: bool = Field(..., description="True if nothing was charged this time")
    unlocked_at: datetime
    contact: ContactDetails


def redact(contact: ContactDetails) -> ContactDetails:
    """Keep only the requester's name."""
    return ContactDetails(
        name=contact.name,
        email=REDACTED_PLACEHOLDER,
        phone=REDACTED_PLACEHOLDER,
        phone_verified=False,
    )


def public_fields(request: TutoringRequest) -> dict:
    """Fields every viewer may see."""
    return request.model_dump(exclude={"contact"})
