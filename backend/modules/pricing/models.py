"""
Pricing module data models.

These models describe the coin price of unlocking a request's contact
details and the display hints derived from the same inputs.
"""

from decimal import Decimal

from pydantic import BaseModel, Field


class PricingFactor(BaseModel):
    """A multiplier that applied to a contact price."""

    name: str = Field(..., description="Factor name (urgency, price_tier, ...)")
    multiplier: Decimal = Field(..., description="Multiplier applied to the running cost")
    reason: str = Field(..., description="Human-readable explanation")

    model_config = {"frozen": True}


class ContactPrice(BaseModel):
    """
    Coin cost to unlock one request, with the factors that produced it.

    Only factors whose multiplier is not 1.0 are listed.
    """

    request_id: str = Field(..., description="Priced request ID")
    base_cost: int = Field(..., description="Cost before multipliers")
    factors: list[PricingFactor] = Field(default_factory=list)
    raw_cost: Decimal = Field(..., description="Cost after multipliers, before rounding")
    cost: int = Field(..., ge=1, description="Final cost in coins")


class PopularityLevel(BaseModel):
    """How many tutors have looked at a request, as a label."""

    level: str = Field(..., description="Very High, High, Medium or Low")
    view_count: int = Field(..., description="View count the level was derived from")


class UrgencyInfo(BaseModel):
    """Display information for a request's urgency."""

    level: str = Field(..., description="Display label")
    description: str = Field(..., description="Short explanation for tutors")
