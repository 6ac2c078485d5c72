"""
In-memory coin ledger.

Keeps balances, processed payment IDs, payment records and unlocks in
process memory behind one lock, so each compound operation is atomic the
same way a database transaction would be. For testing and development;
use SupabaseCoinLedger in production.
"""

import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from .exceptions import (
    DuplicateEventError,
    InsufficientBalanceError,
    UserResolutionError,
)
from .models import (
    CoinTransaction,
    ContactUnlock,
    PaymentApplication,
    PaymentEvent,
    PaymentStatus,
    TransactionType,
    UnlockPurchase,
)


class InMemoryCoinLedger:
    """ICoinLedger backed by dictionaries."""

    def __init__(self, users: Optional[dict[str, str]] = None):
        """
        Initialize the ledger.

        Args:
            users: Optional mapping of user ID to email, used to resolve
                   payment events to accounts.
        """
        self._lock = threading.RLock()
        self._emails: dict[str, str] = {}
        self._balances: dict[str, int] = {}
        self._transactions: dict[str, list[CoinTransaction]] = {}
        self._processed_events: set[str] = set()
        self._payments: dict[str, PaymentEvent] = {}
        self._unlocks: dict[tuple[str, str], ContactUnlock] = {}
        for user_id, email in (users or {}).items():
            self.add_user(user_id, email)

    def add_user(self, user_id: str, email: str, balance: int = 0) -> None:
        """Register an account (and optionally an opening balance)."""
        with self._lock:
            self._emails[email.strip().lower()] = user_id
            self._balances.setdefault(user_id, 0)
            self._balances[user_id] += balance

    def resolve_user_id(self, email: Optional[str]) -> Optional[str]:
        if not email:
            return None
        return self._emails.get(email.strip().lower())

    def payment_status(self, provider_event_id: str) -> Optional[PaymentStatus]:
        """Status of a recorded payment, for inspection in tests."""
        payment = self._payments.get(provider_event_id)
        return payment.status if payment else None

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def get_balance(self, user_id: str) -> int:
        return self._balances.get(user_id, 0)

    def credit(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        with self._lock:
            return self._move(user_id, amount, transaction_type, reference_id, reason)

    def debit_if_sufficient(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        with self._lock:
            available = self.get_balance(user_id)
            if available < amount:
                raise InsufficientBalanceError(amount, available, user_id)
            return self._move(user_id, -amount, transaction_type, reference_id, reason)

    def list_transactions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CoinTransaction]:
        transactions = self._transactions.get(user_id, [])
        return transactions[offset : offset + limit]

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def was_processed(self, provider_event_id: str) -> bool:
        return provider_event_id in self._processed_events

    def apply_payment(self, event: PaymentEvent) -> PaymentApplication:
        with self._lock:
            if event.provider_event_id in self._processed_events:
                raise DuplicateEventError(event.provider_event_id)

            user_id = self.resolve_user_id(event.user_email)
            if user_id is None:
                raise UserResolutionError(event.user_email, event.provider_event_id)

            transaction = self._move(
                user_id,
                event.coins,
                TransactionType.PURCHASE,
                event.provider_event_id,
                f"Purchased {event.coins} coins",
            )
            self._processed_events.add(event.provider_event_id)
            self._payments[event.provider_event_id] = event.model_copy(
                update={"status": PaymentStatus.SUCCEEDED}
            )
            return PaymentApplication(
                user_id=user_id,
                coins=event.coins,
                balance_after=transaction.balance_after,
            )

    def record_payment(self, event: PaymentEvent) -> None:
        with self._lock:
            existing = self._payments.get(event.provider_event_id)
            if existing is not None and existing.status == PaymentStatus.SUCCEEDED:
                return
            self._payments[event.provider_event_id] = event

    def mark_payment_failed(self, provider_event_id: str, reason: str) -> bool:
        with self._lock:
            existing = self._payments.get(provider_event_id)
            if existing is None or existing.status == PaymentStatus.SUCCEEDED:
                return False
            metadata = {**existing.metadata, "failure_reason": reason}
            self._payments[provider_event_id] = existing.model_copy(
                update={"status": PaymentStatus.FAILED, "metadata": metadata}
            )
            return True

    # -------------------------------------------------------------------------
    # Contact unlocks
    # -------------------------------------------------------------------------

    def get_unlock(self, user_id: str, request_id: str) -> Optional[ContactUnlock]:
        return self._unlocks.get((user_id, request_id))

    def purchase_unlock(self, user_id: str, request_id: str, cost: int) -> UnlockPurchase:
        with self._lock:
            existing = self._unlocks.get((user_id, request_id))
            if existing is not None:
                return UnlockPurchase(
                    unlock=existing,
                    created=False,
                    balance_after=self.get_balance(user_id),
                )

            transaction = self.debit_if_sufficient(
                user_id,
                cost,
                TransactionType.UNLOCK,
                request_id,
                f"Unlocked contact for request {request_id}",
            )
            unlock = ContactUnlock(
                user_id=user_id,
                request_id=request_id,
                cost_paid=cost,
                unlocked_at=transaction.created_at,
            )
            self._unlocks[(user_id, request_id)] = unlock
            return UnlockPurchase(
                unlock=unlock,
                created=True,
                balance_after=transaction.balance_after,
            )

    # -------------------------------------------------------------------------
    # Private helpers (caller holds the lock)
    # -------------------------------------------------------------------------

    def _move(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str],
        reason: str,
    ) -> CoinTransaction:
        new_balance = self._balances.get(user_id, 0) + amount
        self._balances[user_id] = new_balance

        transaction = CoinTransaction(
            id=str(uuid.uuid4()),
            user_id=user_id,
            amount=amount,
            type=transaction_type,
            reason=reason,
            reference_id=reference_id,
            balance_after=new_balance,
            created_at=datetime.now(timezone.utc),
        )
        self._transactions.setdefault(user_id, []).insert(0, transaction)
        return transaction
