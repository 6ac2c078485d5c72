"""
Supabase coin ledger.

Each compound operation is one PL/pgSQL function (see
migrations/001_coin_ledger.sql), so it runs in a single transaction:

- settle_payment_event: resolve email, claim the event ID, credit, log
- purchase_contact_unlock: claim the (user, request) pair, conditional debit
- credit_coins / debit_coins_if_sufficient: plain balance moves

Functions report expected outcomes (duplicate, insufficient balance, ...)
in their result rows instead of raising, so PostgREST errors only ever
mean the store itself failed.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from shared.repository import BaseRepository
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
    TransactionType,
    UnlockPurchase,
)


class SupabaseCoinLedger(BaseRepository[CoinTransaction]):
    """ICoinLedger backed by Supabase tables and RPC functions."""

    # -------------------------------------------------------------------------
    # Balances
    # -------------------------------------------------------------------------

    def get_balance(self, user_id: str) -> int:
        result = self._execute(
            self._db.table("users").select("coin_balance").eq("id", user_id),
            "get_balance",
        )
        if not result.data:
            return 0
        return int(result.data[0].get("coin_balance") or 0)

    def credit(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        row = self._single(
            self._execute(
                self._db.rpc(
                    "credit_coins",
                    {
                        "p_user_id": user_id,
                        "p_amount": amount,
                        "p_type": transaction_type.value,
                        "p_reference_id": reference_id,
                        "p_reason": reason,
                    },
                ),
                "credit_coins",
            )
        )
        return self._map_to_transaction(row)

    def debit_if_sufficient(
        self,
        user_id: str,
        amount: int,
        transaction_type: TransactionType,
        reference_id: Optional[str] = None,
        reason: str = "",
    ) -> CoinTransaction:
        row = self._single(
            self._execute(
                self._db.rpc(
                    "debit_coins_if_sufficient",
                    {
                        "p_user_id": user_id,
                        "p_amount": amount,
                        "p_type": transaction_type.value,
                        "p_reference_id": reference_id,
                        "p_reason": reason,
                    },
                ),
                "debit_coins_if_sufficient",
            )
        )
        if not row.get("ok"):
            raise InsufficientBalanceError(amount, int(row.get("balance_after") or 0), user_id)
        return self._map_to_transaction(row)

    def list_transactions(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CoinTransaction]:
        result = self._execute(
            self._db.table("coin_transactions")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .range(offset, offset + limit - 1),
            "list_transactions",
        )
        return [self._map_to_transaction(row) for row in result.data]

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def was_processed(self, provider_event_id: str) -> bool:
        result = self._execute(
            self._db.table("processed_payment_events")
            .select("provider_event_id")
            .eq("provider_event_id", provider_event_id),
            "was_processed",
        )
        return bool(result.data)

    def apply_payment(self, event: PaymentEvent) -> PaymentApplication:
        row = self._single(
            self._execute(
                self._db.rpc("settle_payment_event", self._payment_params(event)),
                "settle_payment_event",
            )
        )

        outcome = row.get("outcome")
        if outcome == "duplicate":
            raise DuplicateEventError(event.provider_event_id)
        if outcome == "user_not_found":
            raise UserResolutionError(event.user_email, event.provider_event_id)

        return PaymentApplication(
            user_id=str(row["user_id"]),
            coins=event.coins,
            balance_after=int(row["balance_after"]),
        )

    def record_payment(self, event: PaymentEvent) -> None:
        self._execute(
            self._db.rpc("record_payment_status", self._payment_params(event)),
            "record_payment_status",
        )

    def mark_payment_failed(self, provider_event_id: str, reason: str) -> bool:
        result = self._execute(
            self._db.rpc(
                "mark_payment_failed",
                {"p_provider_event_id": provider_event_id, "p_reason": reason},
            ),
            "mark_payment_failed",
        )
        return bool(result.data)

    # -------------------------------------------------------------------------
    # Contact unlocks
    # -------------------------------------------------------------------------

    def get_unlock(self, user_id: str, request_id: str) -> Optional[ContactUnlock]:
        result = self._execute(
            self._db.table("contact_unlocks")
            .select("*")
            .eq("user_id", user_id)
            .eq("request_id", request_id),
            "get_unlock",
        )
        if not result.data:
            return None
        return self._map_to_unlock(result.data[0])

    def purchase_unlock(self, user_id: str, request_id: str, cost: int) -> UnlockPurchase:
        row = self._single(
            self._execute(
                self._db.rpc(
                    "purchase_contact_unlock",
                    {"p_user_id": user_id, "p_request_id": request_id, "p_cost": cost},
                ),
                "purchase_contact_unlock",
            )
        )

        outcome = row.get("outcome")
        if outcome == "insufficient_balance":
            raise InsufficientBalanceError(cost, int(row.get("balance_after") or 0), user_id)

        return UnlockPurchase(
            unlock=self._map_to_unlock(
                {
                    "user_id": user_id,
                    "request_id": request_id,
                    "cost_paid": row["cost_paid"],
                    "unlocked_at": row["unlocked_at"],
                }
            ),
            created=outcome == "unlocked",
            balance_after=int(row["balance_after"]),
        )

    # -------------------------------------------------------------------------
    # Private mapping methods
    # -------------------------------------------------------------------------

    def _single(self, result: Any) -> dict[str, Any]:
        """Unwrap a set-returning RPC result into its one row."""
        data = result.data
        if isinstance(data, list):
            return data[0] if data else {}
        return data or {}

    def _payment_params(self, event: PaymentEvent) -> dict[str, Any]:
        created_at = event.created_at or datetime.now(timezone.utc)
        return {
            "p_provider_event_id": event.provider_event_id,
            "p_provider": event.provider.value,
            "p_user_email": event.user_email,
            "p_coins": event.coins,
            "p_amount": event.amount,
            "p_currency": event.currency,
            "p_status": event.status.value,
            "p_payment_intent_id": event.payment_intent_id,
            "p_created_at": created_at.isoformat(),
            "p_metadata": event.metadata,
        }

    def _map_to_transaction(self, data: dict[str, Any]) -> CoinTransaction:
        """Map database row to CoinTransaction model."""
        return CoinTransaction(
            id=str(data["id"]),
            user_id=str(data["user_id"]),
            amount=int(data["amount"]),
            type=TransactionType(data["type"]),
            reason=data.get("reason") or "",
            reference_id=data.get("reference_id"),
            balance_after=int(data["balance_after"]),
            created_at=data["created_at"],
        )

    def _map_to_unlock(self, data: dict[str, Any]) -> ContactUnlock:
        """Map database row to ContactUnlock model."""
        return ContactUnlock(
            user_id=str(data["user_id"]),
            request_id=str(data["request_id"]),
            cost_paid=int(data["cost_paid"]),
            unlocked_at=data["unlocked_at"],
        )
