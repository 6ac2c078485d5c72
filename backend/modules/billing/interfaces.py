"""
Billing module interfaces.

Other modules should depend on IBillingService, not the concrete implementation.
This lets the contact gate spend coins without knowing about Stripe or Supabase.

ICoinLedger is the storage boundary. Every method that changes a balance is
a single atomic unit in the store: balances are moved with increments and
conditional decrements, never by writing back a value read earlier.
"""

from typing import Protocol, Optional, runtime_checkable

from .models import (
    CoinBalance,
    CoinPack,
    CoinPackOffer,
    CoinTransaction,
    ContactUnlock,
    PaymentApplication,
    PaymentEvent,
    SettlementResult,
    TransactionType,
    UnlockPurchase,
)


@runtime_checkable
class ICoinLedger(Protocol):
    """Storage for coin balances, processed payments and contact unlocks."""

    def get_balance(self, user_id: str) -> int:
        """Current balance, 0 for users that never held coins."""
        ...

    def credit(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        """Atomically add coins to a balance."""
        ...

    def debit_if_sufficient(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        """
        Atomically remove coins if the balance covers them.

        Raises:
            InsufficientBalanceError: If the balance is too low. Nothing changes.
        """
        ...

    def was_processed(self, provider_event_id: str) -> bool:
        """Whether a payment event has already been applied."""
        ...

    def apply_payment(self, event: PaymentEvent) -> PaymentApplication:
        """
        Credit a succeeded payment and mark its event ID processed, together.

        Raises:
            DuplicateEventError: If the event ID was already processed.
            UserResolutionError: If no user has the event's email.
        """
        ...

    def record_payment(self, event: PaymentEvent) -> None:
        """
        Store a payment that is not (yet) creditable, e.g. still processing.

        Never downgrades a payment that already succeeded.
        """
        ...

    def mark_payment_failed(self, provider_event_id: str, reason: str) -> bool:
        """
        Mark a recorded payment as failed.

        Returns:
            False if the payment is unknown or already succeeded.
        """
        ...

    def get_unlock(self, user_id: str, request_id: str) -> Optional[ContactUnlock]:
        """The user's unlock for a request, if any."""
        ...

    def purchase_unlock(self, user_id: str, request_id: str, cost: int) -> UnlockPurchase:
        """
        Debit `cost` coins and create the unlock record as one unit.

        If the unlock already exists nothing is charged and the existing
        record is returned with created=False.

        Raises:
            InsufficientBalanceError: If the balance is too low. Nothing changes.
        """
        ...

    def list_transactions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CoinTransaction]:
        """Transactions for a user, most recent first."""
        ...


@runtime_checkable
class IBillingService(Protocol):
    """
    Interface for coin balance operations.

    This protocol defines the contract that the billing module exposes
    to other modules. The contacts module uses it to sell unlocks.
    """

    async def get_balance(self, user_id: str) -> CoinBalance:
        """
        Get a user's current coin balance.

        Args:
            user_id: Supabase user ID (UUID)

        Returns:
            CoinBalance with the current balance
        """
        ...

    async def add_coins(
        self,
        user_id: str,
        amount: int,
        reason: str,
        transaction_type: TransactionType = TransactionType.ADJUSTMENT,
        reference_id: Optional[str] = None,
    ) -> CoinTransaction:
        """
        Add coins to a user's balance.

        Raises:
            InvalidAmountError: If amount is not positive
        """
        ...

    async def deduct_coins(
        self,
        user_id: str,
        amount: int,
        reason: str,
        reference_id: Optional[str] = None,
    ) -> CoinTransaction:
        """
        Deduct coins from a user's balance.

        Raises:
            InsufficientBalanceError: If the user doesn't have enough coins
            InvalidAmountError: If amount is not positive
        """
        ...

    async def get_unlock(self, user_id: str, request_id: str) -> Optional[ContactUnlock]:
        """Get the user's unlock record for a request, if any."""
        ...

    async def purchase_unlock(
        self,
        user_id: str,
        request_id: str,
        cost: int,
    ) -> UnlockPurchase:
        """
        Pay `cost` coins to unlock a request's contact details.

        Raises:
            InsufficientBalanceError: If the user doesn't have enough coins
            InvalidAmountError: If cost is negative
        """
        ...

    async def get_transaction_history(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CoinTransaction]:
        """
        Get a user's coin transaction history.

        Returns:
            List of transactions, most recent first
        """
        ...

    def list_coin_packs(self) -> list[CoinPackOffer]:
        """Coin packs on sale, smallest first, with their savings."""
        ...

    def get_coin_pack(self, pack_id: str) -> CoinPack:
        """
        Look up a coin pack.

        Raises:
            CoinPackNotFoundError: If the pack ID is unknown
        """
        ...


@runtime_checkable
class ISettlementService(Protocol):
    """Interface for settling payment confirmations."""

    async def settle(self, event: PaymentEvent) -> SettlementResult:
        """
        Apply a payment event at most once.

        Safe to call any number of times for the same event.

        Raises:
            StoreUnavailableError: If the ledger cannot be reached
        """
        ...

    async def mark_failed(self, provider_event_id: str, reason: str) -> bool:
        """Record that a pending payment failed."""
        ...
