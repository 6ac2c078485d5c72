"""
Billing module data models.

These models define the data structures used by the billing module
and exposed to other modules through the interface.

Coins are whole numbers. Money amounts coming from payment providers are
kept in minor units (paise, cents) exactly as the provider reports them.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    """Types of coin transactions."""

    PURCHASE = "purchase"      # Coins bought through a payment provider
    UNLOCK = "unlock"          # Coins spent unlocking a request's contact
    REFUND = "refund"          # Coins returned to the user
    ADJUSTMENT = "adjustment"  # Manual adjustment by admin


class PaymentProvider(str, Enum):
    """Payment providers that can confirm coin purchases."""

    STRIPE = "stripe"
    RAZORPAY = "razorpay"


class PaymentStatus(str, Enum):
    """Status of a payment as reported by the provider."""

    SUCCEEDED = "succeeded"
    PROCESSING = "processing"
    FAILED = "failed"


class CoinBalance(BaseModel):
    """A user's current coin balance."""

    user_id: str = Field(..., description="User ID")
    balance: int = Field(..., ge=0, description="Current coin balance")


class CoinTransaction(BaseModel):
    """
    A coin transaction record.

    Tracks every change to a user's coin balance.
    """

    id: str = Field(..., description="Transaction ID")
    user_id: str = Field(..., description="User ID")
    amount: int = Field(
        ...,
        description="Coins moved (positive for credit, negative for debit)",
    )
    type: TransactionType = Field(..., description="Transaction type")
    reason: str = Field(default="", description="Human-readable reason")
    reference_id: Optional[str] = Field(
        None,
        description="Reference ID (payment event ID, request ID)",
    )
    balance_after: int = Field(..., description="Balance after the transaction")
    created_at: datetime = Field(..., description="Transaction timestamp")


class PaymentEvent(BaseModel):
    """
    A payment confirmation delivered by a payment provider.

    Providers deliver at least once, so the same provider_event_id can
    arrive several times and in any order.
    """

    provider_event_id: str = Field(..., description="Provider's unique ID for the payment")
    provider: PaymentProvider = Field(default=PaymentProvider.STRIPE)
    user_email: Optional[str] = Field(None, description="Email of the buyer")
    coins: int = Field(default=0, description="Coins purchased")
    amount: Optional[int] = Field(None, description="Amount paid in minor units")
    currency: Optional[str] = Field(None, description="ISO currency code")
    status: PaymentStatus = Field(default=PaymentStatus.SUCCEEDED)
    payment_intent_id: Optional[str] = Field(None, description="Provider payment intent ID")
    created_at: Optional[datetime] = Field(None, description="When the payment was created")
    metadata: dict[str, Any] = Field(default_factory=dict)


def parse_coins(value: Any) -> int:
    """Coin count from provider metadata, which stores it as a string. 0 if unusable."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


class PaymentApplication(BaseModel):
    """Result of applying a succeeded payment to the ledger."""

    user_id: str = Field(..., description="Credited user")
    coins: int = Field(..., description="Coins credited")
    balance_after: int = Field(..., description="Balance after the credit")


class SettlementOutcome(str, Enum):
    """What the settlement flow did with a payment event."""

    CREDITED = "credited"
    DUPLICATE = "duplicate"
    RECORDED = "recorded"              # Non-final status stored, nothing credited
    IGNORED = "ignored"                # Unusable event (no coins, no email)
    USER_NOT_FOUND = "user_not_found"
    REJECTED = "rejected"              # Ledger refused the event permanently


class SettlementResult(BaseModel):
    """Result of settling one payment event."""

    provider_event_id: str
    outcome: SettlementOutcome
    user_id: Optional[str] = None
    coins_credited: int = 0
    balance_after: Optional[int] = None


class ContactUnlock(BaseModel):
    """
    Proof that a user paid to see a request's contact details.

    Created once per (user, request) pair; never mutated or deleted.
    """

    user_id: str = Field(..., description="Tutor who paid")
    request_id: str = Field(..., description="Unlocked request")
    cost_paid: int = Field(..., ge=0, description="Coins paid")
    unlocked_at: datetime = Field(..., description="When the unlock happened")


class UnlockPurchase(BaseModel):
    """Result of an atomic debit-and-unlock."""

    unlock: ContactUnlock
    created: bool = Field(..., description="False if the user had already unlocked")
    balance_after: int = Field(..., description="Balance after the purchase")


class CoinPack(BaseModel):
    """
    A purchasable coin pack.

    Prices are in major units of the pack currency.
    """

    id: str = Field(..., description="Pack ID")
    coins: int = Field(..., gt=0, description="Coins in the pack")
    price: Decimal = Field(..., gt=0, description="Purchase price")
    currency: str = Field(default="inr", description="ISO currency code")
    popular: bool = Field(default=False, description="Whether to highlight this pack")

    @property
    def price_per_coin(self) -> Decimal:
        return self.price / self.coins

    @property
    def unit_amount(self) -> int:
        """Price in minor units, as payment providers expect it."""
        return int(self.price * 100)


def _pack(coins: int, price: str, popular: bool = False) -> CoinPack:
    return CoinPack(id=f"coins_{coins}", coins=coins, price=Decimal(price), popular=popular)


DEFAULT_COIN_PACKS = [
    _pack(50, "80"),
    _pack(80, "100"),
    _pack(100, "140", popular=True),
    _pack(150, "200"),
    _pack(200, "260"),
    _pack(500, "580", popular=True),
    _pack(1000, "1050"),
    _pack(2000, "2030", popular=True),
]


class CoinPackOffer(BaseModel):
    """A coin pack with its saving relative to the smallest pack."""

    pack: CoinPack
    price_per_coin: Decimal
    savings_percent: int = Field(..., description="Saving versus the base pack, in percent")


class CheckoutSession(BaseModel):
    """
    Stripe checkout session info.

    Returned when initiating a coin purchase.
    """

    session_id: str = Field(..., description="Stripe checkout session ID")
    url: str = Field(..., description="Checkout URL to redirect user to")


class PurchaseRequest(BaseModel):
    """Request to purchase coins."""

    pack_id: str = Field(..., description="Coin pack ID to purchase")


class VerifyPaymentRequest(BaseModel):
    """Request to verify a finished checkout session."""

    session_id: str = Field(..., min_length=1, description="Stripe checkout session ID")


class RazorpayOrder(BaseModel):
    """
    A Razorpay order for a coin pack.

    The client opens Razorpay Checkout with these values.
    """

    order_id: str = Field(..., description="Razorpay order ID")
    amount: int = Field(..., description="Amount in minor units (paise)")
    currency: str = Field(..., description="ISO currency code")
    key: str = Field(..., description="Publishable Razorpay key ID for Checkout")


class RazorpayVerifyRequest(BaseModel):
    """Values Razorpay Checkout hands back after a successful payment."""

    razorpay_order_id: str = Field(..., min_length=1)
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_signature: str = Field(..., min_length=1)


class TransactionListResponse(BaseModel):
    """API response for transaction history."""

    transactions: list[CoinTransaction] = Field(..., description="Transaction list")
    limit: int = Field(..., description="Page size used")
    offset: int = Field(..., description="Offset used")
    has_more: bool = Field(..., description="Whether more transactions may exist")
