"""
Tutoring request data models.

Requests are owned by the request-management side of the marketplace.
This backend only reads them: for pricing, for the contact gate, and to
bump their view counter.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class Urgency(str, Enum):
    """How soon the student needs a tutor."""

    URGENT = "urgent"
    WITHIN_A_WEEK = "within_a_week"
    FLEXIBLE = "flexible"

    @classmethod
    def parse(cls, value: Any) -> Optional["Urgency"]:
        """
        Parse a stored urgency value.

        Rows written by the web client use "within a week"; the API uses
        "within_a_week". Both spellings are accepted, case-insensitively.
        Returns None for missing or unrecognized values.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        normalized = "_".join(value.strip().lower().replace("-", " ").split())
        try:
            return cls(normalized)
        except ValueError:
            return None


class ContactDetails(BaseModel):
    """Requester contact fields protected by the contact gate."""

    name: str = Field(default="Student", description="Requester display name")
    email: Optional[str] = Field(None, description="Requester email")
    phone: Optional[str] = Field(None, description="Requester phone number")
    phone_verified: bool = Field(default=False, description="Whether phone is verified")


class TutoringRequest(BaseModel):
    """
    A posted tutoring need.

    Pricing inputs are lenient: anything the pricing engine cannot use is
    stored as "no bonus" instead of failing validation.
    """

    id: str = Field(..., description="Request ID")
    title: Optional[str] = Field(None, description="Short title")
    description: Optional[str] = Field(None, description="Requirement description")
    level: Optional[str] = Field(None, description="Study level")
    status: str = Field(default="open", description="Request status")

    urgency: Optional[Urgency] = Field(None, description="How soon help is needed")
    price_amount: Optional[Decimal] = Field(None, description="Offered price")
    price_currency: Optional[str] = Field(None, description="Currency of the offered price")
    subjects: list[str] = Field(default_factory=list, description="Subject names")
    view_count: int = Field(default=0, ge=0, description="Times tutors viewed the request")
    contacted_count: int = Field(default=0, ge=0, description="Tutors who unlocked contact")
    created_at: Optional[datetime] = Field(None, description="When the request was posted")

    contact: ContactDetails = Field(default_factory=ContactDetails)

    @field_validator("urgency", mode="before")
    @classmethod
    def _parse_urgency(cls, value: Any) -> Optional[Urgency]:
        return Urgency.parse(value)

    @field_validator("price_amount", mode="before")
    @classmethod
    def _parse_price(cls, value: Any) -> Optional[Decimal]:
        if value is None or isinstance(value, bool):
            return None
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return None
        return amount if amount.is_finite() else None

    @field_validator("subjects", mode="before")
    @classmethod
    def _flatten_subjects(cls, value: Any) -> list[str]:
        # Rows come back as plain names, {"name": ...} or the join shape
        # {"subject": {"name": ...}}.
        if not value:
            return []
        names = []
        for item in value:
            if isinstance(item, dict):
                item = item.get("subject", item)
                item = item.get("name") if isinstance(item, dict) else item
            if isinstance(item, str) and item.strip():
                names.append(item.strip())
        return names

    @field_validator("view_count", "contacted_count", mode="before")
    @classmethod
    def _default_counter(cls, value: Any) -> int:
        return value or 0

    @field_validator("created_at", mode="before")
    @classmethod
    def _parse_created_at(cls, value: Any) -> Optional[datetime]:
        if value is None or value == "":
            return None
        if isinstance(value, datetime):
            parsed = value
        else:
            try:
                parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            except ValueError:
                return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
