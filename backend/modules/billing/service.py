"""
Billing service implementation.

Thin async layer over an ICoinLedger: validates amounts, exposes balances,
history and coin packs, and sells contact unlocks to the contacts module.
"""

from decimal import Decimal, ROUND_DOWN
from typing import Optional

from .interfaces import ICoinLedger, IBillingService
from .models import (
    CoinBalance,
    CoinPack,
    CoinPackOffer,
    CoinTransaction,
    ContactUnlock,
    DEFAULT_COIN_PACKS,
    TransactionType,
    UnlockPurchase,
)
from .exceptions import CoinPackNotFoundError, InvalidAmountError


class BillingService(IBillingService):
    """
    Billing service over a coin ledger.

    The ledger decides atomicity; this class never combines a balance read
    with a later write.
    """

    def __init__(
        self,
        ledger: ICoinLedger,
        coin_packs: Optional[list[CoinPack]] = None,
    ):
        self._ledger = ledger
        self._packs = sorted(coin_packs or DEFAULT_COIN_PACKS, key=lambda p: p.coins)

    async def get_balance(self, user_id: str) -> CoinBalance:
        """Get user's coin balance."""
        return CoinBalance(user_id=user_id, balance=self._ledger.get_balance(user_id))

    async def add_coins(
        self,
        user_id: str,
        amount: int,
        reason: str,
        transaction_type: TransactionType = TransactionType.ADJUSTMENT,
        reference_id: Optional[str] = None,
    ) -> CoinTransaction:
        """Add coins to user's balance."""
        if amount <= 0:
            raise InvalidAmountError(amount, "Amount must be positive")

        return self._ledger.credit(user_id, amount, transaction_type, reference_id, reason)

    async def deduct_coins(
        self,
        user_id: str,
        amount: int,
        reason: str,
        reference_id: Optional[str] = None,
    ) -> CoinTransaction:
        """Deduct coins from user's balance."""
        if amount <= 0:
            raise InvalidAmountError(amount, "Amount must be positive")

        return self._ledger.debit_if_sufficient(
            user_id,
            amount,
            TransactionType.ADJUSTMENT,
            reference_id,
            reason,
        )

    async def get_unlock(self, user_id: str, request_id: str) -> Optional[ContactUnlock]:
        """Get the user's unlock for a request."""
        return self._ledger.get_unlock(user_id, request_id)

    async def purchase_unlock(
        self,
        user_id: str,
        request_id: str,
        cost: int,
    ) -> UnlockPurchase:
        """Debit and unlock in one ledger operation."""
        if cost < 0:
            raise InvalidAmountError(cost, "Cost must not be negative")

        return self._ledger.purchase_unlock(user_id, request_id, cost)

    async def get_transaction_history(
        self,
        user_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[CoinTransaction]:
        """Get user's transaction history."""
        return self._ledger.list_transactions(user_id, limit, offset)

    def list_coin_packs(self) -> list[CoinPackOffer]:
        """List coin packs with savings relative to the smallest pack."""
        if not self._packs:
            return []

        base_price_per_coin = self._packs[0].price_per_coin
        offers = []
        for pack in self._packs:
            per_coin = pack.price_per_coin
            savings = (1 - per_coin / base_price_per_coin) * 100
            offers.append(
                CoinPackOffer(
                    pack=pack,
                    price_per_coin=per_coin.quantize(Decimal("0.01")),
                    savings_percent=max(0, int(savings.to_integral_value(rounding=ROUND_DOWN))),
                )
            )
        return offers

    def get_coin_pack(self, pack_id: str) -> CoinPack:
        """Look up a coin pack by ID."""
        for pack in self._packs:
            if pack.id == pack_id:
                return pack
        raise CoinPackNotFoundError(pack_id)
