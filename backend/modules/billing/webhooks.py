"""
Payment webhook dispatch.

Routes verified Stripe and Razorpay events to the settlement service.
Unknown event types are acknowledged so the provider stops redelivering them.
"""

import logging
from typing import Any

from .exceptions import WebhookVerificationError
from .interfaces import ISettlementService
from .models import SettlementResult
from .razorpay_gateway import RazorpayGateway, payment_event_from_order
from .stripe_gateway import StripeGateway, payment_event_from_session

logger = logging.getLogger(__name__)


class StripeWebhookHandler:
    """Verifies and dispatches Stripe webhook deliveries."""

    def __init__(self, gateway: StripeGateway, settlement: ISettlementService):
        self._gateway = gateway
        self._settlement = settlement

    async def handle(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Handle one webhook delivery.

        Returns:
            Acknowledgement body for Stripe

        Raises:
            WebhookVerificationError: If the delivery is not authentic or
                a checkout event carries no session id
            StoreUnavailableError: If settlement could not reach the ledger
        """
        event = self._gateway.construct_event(payload, signature)
        event_type = event["type"]
        obj = (event.get("data") or {}).get("object") or {}

        if event_type in (
            "checkout.session.completed",
            "checkout.session.async_payment_succeeded",
            "checkout.session.async_payment_failed",
        ) and not obj.get("id"):
            # The session ID is the deduplication key
            raise WebhookVerificationError(f"{event_type} event has no session id")

        if event_type in (
            "checkout.session.completed",
            "checkout.session.async_payment_succeeded",
        ):
            result = await self._settlement.settle(payment_event_from_session(obj))
            return self._ack(event_type, result)

        if event_type == "checkout.session.async_payment_failed":
            await self._settlement.mark_failed(str(obj["id"]), "async_payment_failed")
            return {"received": True, "event_type": event_type}

        if event_type == "payment_intent.succeeded":
            # Coins are credited from the checkout session, which carries the buyer.
            coins = (obj.get("metadata") or {}).get("coins")
            logger.info(f"Payment intent {obj.get('id')} succeeded for {coins} coins")
            return {"received": True, "event_type": event_type}

        logger.info(f"Unhandled webhook event type: {event_type}")
        return {"received": True, "event_type": event_type, "handled": False}

    def _ack(self, event_type: str, result: SettlementResult) -> dict[str, Any]:
        return {
            "received": True,
            "event_type": event_type,
            "outcome": result.outcome.value,
        }


class RazorpayWebhookHandler:
    """Verifies and dispatches Razorpay webhook deliveries."""

    def __init__(self, gateway: RazorpayGateway, settlement: ISettlementService):
        self._gateway = gateway
        self._settlement = settlement

    async def handle(self, payload: bytes, signature: str | None) -> dict[str, Any]:
        """
        Handle one webhook delivery.

        order.paid credits the order; payment.failed marks a recorded
        order failed. A later successful attempt on the same order still
        credits it.

        Raises:
            WebhookVerificationError: If the delivery is not authentic or
                lacks the order id
            StoreUnavailableError: If settlement could not reach the ledger
        """
        event = self._gateway.construct_event(payload, signature)
        event_type = event["event"]
        entities = event.get("payload") or {}
        order = (entities.get("order") or {}).get("entity") or {}
        payment = (entities.get("payment") or {}).get("entity") or {}

        if event_type == "order.paid":
            if not order.get("id"):
                raise WebhookVerificationError("order.paid event has no order id")
            result = await self._settlement.settle(payment_event_from_order(order, payment))
            return {"received": True, "event_type": event_type, "outcome": result.outcome.value}

        if event_type == "payment.failed":
            order_id = payment.get("order_id")
            if not order_id:
                raise WebhookVerificationError("payment.failed event has no order id")
            reason = payment.get("error_description") or "payment_failed"
            await self._settlement.mark_failed(str(order_id), reason)
            return {"received": True, "event_type": event_type}

        logger.info(f"Unhandled Razorpay webhook event type: {event_type}")
        return {"received": True, "event_type": event_type, "handled": False}
