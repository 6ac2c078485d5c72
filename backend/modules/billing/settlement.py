"""
Payment settlement.

Turns payment confirmations into coin credits. Providers deliver webhooks
at least once and in no particular order, so the same event may arrive any
number of times; the ledger's processed-event record makes every delivery
after the first a no-op. There is no retry loop here: store failures
propagate and the provider's redelivery is the retry.
"""

import logging

from shared.exceptions import StoreRejectedError

from .interfaces import ICoinLedger, ISettlementService
from .models import (
    PaymentEvent,
    PaymentStatus,
    SettlementOutcome,
    SettlementResult,
)
from .exceptions import DuplicateEventError, UserResolutionError

logger = logging.getLogger(__name__)


class SettlementService(ISettlementService):
    """Idempotent coin credit for confirmed payments."""

    def __init__(self, ledger: ICoinLedger):
        self._ledger = ledger

    async def settle(self, event: PaymentEvent) -> SettlementResult:
        """
        Settle a payment event.

        Args:
            event: Payment confirmation from a provider

        Returns:
            SettlementResult describing what happened. Duplicates, unusable
            events, unknown users and events the ledger refuses are
            results, not errors.

        Raises:
            StoreUnavailableError: If the ledger cannot be reached
        """
        event_id = event.provider_event_id

        if event.coins <= 0:
            logger.warning(f"Payment event {event_id} has no coin amount, ignoring")
            return SettlementResult(provider_event_id=event_id, outcome=SettlementOutcome.IGNORED)

        if not event.user_email:
            logger.warning(f"Payment event {event_id} has no user email, ignoring")
            return SettlementResult(provider_event_id=event_id, outcome=SettlementOutcome.IGNORED)

        if event.status != PaymentStatus.SUCCEEDED:
            try:
                self._ledger.record_payment(event)
            except StoreRejectedError as e:
                return self._rejected(event_id, e)
            logger.info(f"Recorded {event.status.value} payment {event_id}, nothing credited")
            return SettlementResult(provider_event_id=event_id, outcome=SettlementOutcome.RECORDED)

        try:
            applied = self._ledger.apply_payment(event)
        except StoreRejectedError as e:
            return self._rejected(event_id, e)
        except DuplicateEventError:
            logger.info(f"Payment event {event_id} already settled, skipping")
            return SettlementResult(provider_event_id=event_id, outcome=SettlementOutcome.DUPLICATE)
        except UserResolutionError:
            logger.error(
                f"Dropping payment event {event_id}: no account for {event.user_email}"
            )
            return SettlementResult(
                provider_event_id=event_id,
                outcome=SettlementOutcome.USER_NOT_FOUND,
            )

        logger.info(
            f"Credited {applied.coins} coins to user {applied.user_id} "
            f"for payment {event_id} (balance {applied.balance_after})"
        )
        return SettlementResult(
            provider_event_id=event_id,
            outcome=SettlementOutcome.CREDITED,
            user_id=applied.user_id,
            coins_credited=applied.coins,
            balance_after=applied.balance_after,
        )

    def _rejected(self, event_id: str, error: StoreRejectedError) -> SettlementResult:
        # Redelivery would hit the same refusal, so acknowledge and drop
        logger.error(f"Dropping payment event {event_id}: {error.message}")
        return SettlementResult(provider_event_id=event_id, outcome=SettlementOutcome.REJECTED)

    async def mark_failed(self, provider_event_id: str, reason: str) -> bool:
        """Mark a pending payment as failed."""
        try:
            updated = self._ledger.mark_payment_failed(provider_event_id, reason)
        except StoreRejectedError as e:
            logger.error(f"Could not mark payment {provider_event_id} failed: {e.message}")
            return False
        if updated:
            logger.info(f"Payment {provider_event_id} marked failed: {reason}")
        else:
            logger.warning(f"No pending payment {provider_event_id} to mark failed")
        return updated
