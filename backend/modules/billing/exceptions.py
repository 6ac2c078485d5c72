"""
Billing module exceptions.

These exceptions are raised by the billing module and can be caught
by API error handlers to return appropriate HTTP responses.
"""

from typing import Optional

from shared.exceptions import TutorLinkError, NotFoundError, ValidationError


class BillingError(TutorLinkError):
    """Base exception for billing-related errors."""

    pass


class InsufficientBalanceError(BillingError):
    """
    Raised when a user doesn't have enough coins for an operation.

    The UI should handle this gracefully by prompting the user to
    purchase more coins. No state is changed when it is raised.
    """

    def __init__(
        self,
        required: int,
        available: int,
        user_id: Optional[str] = None,
    ):
        message = f"Insufficient coins. Required: {required}, available: {available}"
        super().__init__(
            message,
            code="INSUFFICIENT_BALANCE",
            details={
                "required": required,
                "available": available,
                "shortfall": max(required - available, 0),
            },
        )
        if user_id:
            self.details["user_id"] = user_id


class InvalidAmountError(ValidationError):
    """Raised when a coin amount is invalid."""

    def __init__(self, amount: int, reason: str):
        super().__init__(
            f"Invalid amount: {amount}. {reason}",
            code="INVALID_AMOUNT",
            details={"amount": amount, "reason": reason},
        )


class PaymentFailedError(BillingError):
    """Raised when a payment provider (Stripe, Razorpay) rejects a call."""

    def __init__(self, message: str, provider_error: Optional[str] = None):
        super().__init__(
            message,
            code="PAYMENT_FAILED",
            details={"provider_error": provider_error} if provider_error else {},
        )


class WebhookVerificationError(BillingError):
    """Raised when a Stripe or Razorpay webhook fails verification."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            "Webhook signature verification failed",
            code="WEBHOOK_VERIFICATION_FAILED",
            details={"reason": reason} if reason else {},
        )


class PaymentVerificationError(BillingError):
    """Raised when a Razorpay checkout signature does not match its order."""

    def __init__(self, order_id: str):
        super().__init__(
            "Payment signature verification failed",
            code="PAYMENT_VERIFICATION_FAILED",
            details={"order_id": order_id},
        )


class DuplicateEventError(BillingError):
    """
    Raised by the ledger when a payment event was already applied.

    Expected under at-least-once delivery; the settlement flow turns it
    into a successful no-op.
    """

    def __init__(self, provider_event_id: str):
        super().__init__(
            f"Payment event already processed: {provider_event_id}",
            code="DUPLICATE_EVENT",
            details={"provider_event_id": provider_event_id},
        )


class UserResolutionError(BillingError):
    """Raised when a payment event's email matches no account."""

    def __init__(self, email: Optional[str], provider_event_id: str):
        super().__init__(
            f"No user found for payment event {provider_event_id}",
            code="USER_NOT_FOUND",
            details={"email": email, "provider_event_id": provider_event_id},
        )


class CoinPackNotFoundError(NotFoundError):
    """Raised when a coin pack ID is unknown."""

    def __init__(self, pack_id: str):
        super().__init__(
            f"Coin pack not found: {pack_id}",
            code="COIN_PACK_NOT_FOUND",
            details={"pack_id": pack_id},
        )
