"""
Billing module.

Handles coin balances, Stripe and Razorpay purchases, payment settlement and the
atomic debit behind contact unlocks.

Public API:
- IBillingService: Interface for balance operations
- ISettlementService: Interface for settling payment events
- ICoinLedger: Storage interface for balances, payments and unlocks
- CoinBalance, CoinTransaction, PaymentEvent, ContactUnlock: Models
- Billing exceptions: InsufficientBalanceError, etc.
"""

from .interfaces import IBillingService, ICoinLedger, ISettlementService
from .models import (
    CoinBalance,
    CoinTransaction,
    TransactionType,
    PaymentEvent,
    PaymentProvider,
    PaymentStatus,
    SettlementOutcome,
    SettlementResult,
    ContactUnlock,
    UnlockPurchase,
    CoinPack,
    CheckoutSession,
    RazorpayOrder,
    DEFAULT_COIN_PACKS,
)
from .exceptions import (
    BillingError,
    InsufficientBalanceError,
    InvalidAmountError,
    PaymentFailedError,
    PaymentVerificationError,
    WebhookVerificationError,
    DuplicateEventError,
    UserResolutionError,
    CoinPackNotFoundError,
)

__all__ = [
    # Interfaces
    "IBillingService",
    "ICoinLedger",
    "ISettlementService",
    # Models
    "CoinBalance",
    "CoinTransaction",
    "TransactionType",
    "PaymentEvent",
    "PaymentProvider",
    "PaymentStatus",
    "SettlementOutcome",
    "SettlementResult",
    "ContactUnlock",
    "UnlockPurchase",
    "CoinPack",
    "CheckoutSession",
    "RazorpayOrder",
    "DEFAULT_COIN_PACKS",
    # Exceptions
    "BillingError",
    "InsufficientBalanceError",
    "InvalidAmountError",
    "PaymentFailedError",
    "PaymentVerificationError",
    "WebhookVerificationError",
    "DuplicateEventError",
    "UserResolutionError",
    "CoinPackNotFoundError",
]
