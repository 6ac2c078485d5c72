"""
Pricing module.

Computes the coin cost for unlocking a tutoring request's contact details.

Public API:
- IPricingEngine: Interface for contact pricing
- ContactPricingEngine: Default multiplicative pricing engine
- calculate_contact_cost: Cost in coins for a request
- get_popularity_level, get_urgency_info: Display helpers
"""

from .interfaces import IPricingEngine
from .engine import (
    ContactPricingEngine,
    calculate_contact_cost,
    get_popularity_level,
    get_urgency_info,
)
from .models import ContactPrice, PricingFactor, PopularityLevel, UrgencyInfo

__all__ = [
    # Interface
    "IPricingEngine",
    # Engine
    "ContactPricingEngine",
    "calculate_contact_cost",
    "get_popularity_level",
    "get_urgency_info",
    # Models
    "ContactPrice",
    "PricingFactor",
    "PopularityLevel",
    "UrgencyInfo",
]
