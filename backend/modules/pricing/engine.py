"""
Contact pricing engine.

Computes the coin cost for a tutor to unlock a student's contact details.
The model is multiplicative: a base cost of 5 coins is multiplied by one
factor per dimension (urgency, offered price, popularity, subject, recency),
rounded half-up and floored at 3 coins.

Within a dimension the brackets are checked highest-first and only the first
match applies. Missing or unusable inputs mean "no bonus", never an error.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from modules.requests.models import TutoringRequest, Urgency
from .models import ContactPrice, PopularityLevel, PricingFactor, UrgencyInfo

logger = logging.getLogger(__name__)


BASE_COST = 5
MINIMUM_COST = 3

URGENCY_MULTIPLIERS: dict[Urgency, Decimal] = {
    Urgency.URGENT: Decimal("2.0"),
    Urgency.WITHIN_A_WEEK: Decimal("1.5"),
    Urgency.FLEXIBLE: Decimal("1.0"),
}

# (threshold, multiplier), highest first; a value must be strictly greater
PRICE_TIERS: list[tuple[Decimal, Decimal]] = [
    (Decimal("100"), Decimal("1.8")),
    (Decimal("50"), Decimal("1.4")),
    (Decimal("25"), Decimal("1.2")),
]

POPULARITY_TIERS: list[tuple[int, Decimal]] = [
    (20, Decimal("2.5")),
    (10, Decimal("2.0")),
    (5, Decimal("1.5")),
]

# (max age in days, multiplier), youngest first; age must be strictly below
RECENCY_TIERS: list[tuple[int, Decimal]] = [
    (1, Decimal("1.6")),
    (3, Decimal("1.3")),
]

PREMIUM_SUBJECTS = frozenset(
    {"mathematics", "physics", "chemistry", "computer science", "programming"}
)
SUBJECT_PREMIUM = Decimal("1.3")

SECONDS_PER_DAY = 24 * 60 * 60


def _urgency_factor(request: TutoringRequest) -> Optional[PricingFactor]:
    urgency = request.urgency or Urgency.FLEXIBLE
    multiplier = URGENCY_MULTIPLIERS.get(urgency, Decimal("1.0"))
    if multiplier == 1:
        return None
    return PricingFactor(
        name="urgency",
        multiplier=multiplier,
        reason=f"Student needs help {urgency.value.replace('_', ' ')}",
    )


def _price_factor(request: TutoringRequest) -> Optional[PricingFactor]:
    amount = request.price_amount
    if amount is None or not amount.is_finite():
        return None
    for threshold, multiplier in PRICE_TIERS:
        if amount > threshold:
            return PricingFactor(
                name="price_tier",
                multiplier=multiplier,
                reason=f"Offered price above {threshold}",
            )
    return None


def _popularity_factor(request: TutoringRequest) -> Optional[PricingFactor]:
    views = request.view_count or 0
    for threshold, multiplier in POPULARITY_TIERS:
        if views > threshold:
            return PricingFactor(
                name="popularity",
                multiplier=multiplier,
                reason=f"Viewed by more than {threshold} tutors",
            )
    return None


def _subject_factor(request: TutoringRequest) -> Optional[PricingFactor]:
    premium = [s for s in request.subjects if s.strip().lower() in PREMIUM_SUBJECTS]
    if not premium:
        return None
    return PricingFactor(
        name="subject_premium",
        multiplier=SUBJECT_PREMIUM,
        reason=f"In-demand subject: {premium[0]}",
    )


def _recency_factor(request: TutoringRequest, now: datetime) -> Optional[PricingFactor]:
    if request.created_at is None:
        return None
    age_days = (now - request.created_at).total_seconds() / SECONDS_PER_DAY
    for max_days, multiplier in RECENCY_TIERS:
        if age_days < max_days:
            return PricingFactor(
                name="recency",
                multiplier=multiplier,
                reason=f"Posted less than {max_days} day{'s' if max_days > 1 else ''} ago",
            )
    return None


class ContactPricingEngine:
    """
    Pricing engine for contact unlocks.

    Stateless; one instance can be shared by every request handler.
    """

    def __init__(self, base_cost: int = BASE_COST, minimum_cost: int = MINIMUM_COST):
        self._base_cost = base_cost
        self._minimum_cost = minimum_cost

    def price(
        self,
        request: TutoringRequest,
        now: Optional[datetime] = None,
    ) -> ContactPrice:
        """Price a request, returning the cost and the factors that applied."""
        now = _as_utc(now or datetime.now(timezone.utc))

        factors = [
            f
            for f in (
                _urgency_factor(request),
                _price_factor(request),
                _popularity_factor(request),
                _subject_factor(request),
                _recency_factor(request, now),
            )
            if f is not None
        ]

        raw_cost = Decimal(self._base_cost)
        for factor in factors:
            raw_cost *= factor.multiplier

        if raw_cost.is_finite():
            rounded = int(raw_cost.to_integral_value(rounding=ROUND_HALF_UP))
        else:
            logger.warning(f"Non-finite contact cost for request {request.id}, using minimum")
            rounded = self._minimum_cost

        return ContactPrice(
            request_id=request.id,
            base_cost=self._base_cost,
            factors=factors,
            raw_cost=raw_cost,
            cost=max(self._minimum_cost, rounded),
        )

    def calculate_cost(
        self,
        request: TutoringRequest,
        now: Optional[datetime] = None,
    ) -> int:
        """Get only the coin cost for a request."""
        return self.price(request, now).cost


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


_default_engine = ContactPricingEngine()


def calculate_contact_cost(
    request: TutoringRequest,
    now: Optional[datetime] = None,
) -> int:
    """
    Compute the coin cost to unlock a request's contact details.

    Args:
        request: The request to price
        now: Reference time for the recency factor (defaults to UTC now)

    Returns:
        Cost in coins, never below the minimum of 3
    """
    return _default_engine.calculate_cost(request, now)


def get_popularity_level(view_count: Optional[int]) -> PopularityLevel:
    """Label a request's popularity from its view count."""
    views = view_count or 0
    if views > 20:
        level = "Very High"
    elif views > 10:
        level = "High"
    elif views > 5:
        level = "Medium"
    else:
        level = "Low"
    return PopularityLevel(level=level, view_count=views)


_URGENCY_INFO = {
    Urgency.URGENT: UrgencyInfo(
        level="Urgent",
        description="Student needs help immediately",
    ),
    Urgency.WITHIN_A_WEEK: UrgencyInfo(
        level="Within a week",
        description="Student needs help within 7 days",
    ),
    Urgency.FLEXIBLE: UrgencyInfo(
        level="Flexible",
        description="Student has flexible timeline",
    ),
}

_UNKNOWN_URGENCY = UrgencyInfo(level="Unknown", description="Timeline not specified")


def get_urgency_info(urgency: Optional[object]) -> UrgencyInfo:
    """
    Describe an urgency value for display.

    Missing urgency counts as flexible; unrecognized values are reported
    as unknown.
    """
    if urgency is None or urgency == "":
        return _URGENCY_INFO[Urgency.FLEXIBLE]
    parsed = Urgency.parse(urgency)
    if parsed is None:
        return _UNKNOWN_URGENCY
    return _URGENCY_INFO[parsed]
