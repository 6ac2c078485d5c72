"""
Stripe boundary for coin purchases.

Wraps the Stripe SDK calls the billing module needs: webhook signature
verification, checkout session creation and retrieval, and mapping a
checkout session onto a PaymentEvent. Stripe is treated as an opaque
service; nothing here reimplements its protocol.
"""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

import stripe

from .models import (
    CheckoutSession,
    CoinPack,
    PaymentEvent,
    PaymentProvider,
    PaymentStatus,
    parse_coins,
)
from .exceptions import PaymentFailedError, WebhookVerificationError

logger = logging.getLogger(__name__)


# Stripe checkout payment_status -> our status
_SESSION_STATUS = {
    "paid": PaymentStatus.SUCCEEDED,
    "no_payment_required": PaymentStatus.SUCCEEDED,
    "unpaid": PaymentStatus.PROCESSING,
}


def _field(obj: Any, key: str, default: Any = None) -> Any:
    """Read a key from a dict or a StripeObject."""
    if obj is None:
        return default
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, key, default)


def payment_event_from_session(session: Any) -> PaymentEvent:
    """
    Map a Stripe checkout session to a PaymentEvent.

    The session ID is the deduplication key: checkout.session.completed
    and the verify endpoint both refer to the same session, so whichever
    arrives second is a duplicate.

    Args:
        session: Checkout session as a dict (webhook payload) or StripeObject

    Returns:
        PaymentEvent with coins and buyer email taken from the session metadata

    Raises:
        PaymentFailedError: If the session has no ID
    """
    session_id = _field(session, "id")
    if not session_id:
        raise PaymentFailedError("Checkout session has no id")

    metadata = _field(session, "metadata") or {}
    created = _field(session, "created")

    return PaymentEvent(
        provider_event_id=str(session_id),
        provider=PaymentProvider.STRIPE,
        user_email=_field(metadata, "userEmail") or _field(session, "customer_email"),
        coins=parse_coins(_field(metadata, "coins")),
        amount=_field(session, "amount_total"),
        currency=_field(session, "currency"),
        status=_SESSION_STATUS.get(_field(session, "payment_status"), PaymentStatus.PROCESSING),
        payment_intent_id=_field(session, "payment_intent"),
        created_at=datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
        metadata={
            "customer": _field(session, "customer"),
            "pack_id": _field(metadata, "pack_id"),
        },
    )


class StripeGateway:
    """Stripe SDK wrapper configured from settings."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        frontend_url: str = "http://localhost:3001",
        allow_unsigned_webhooks: bool = False,
    ):
        """
        Initialize the gateway.

        Args:
            secret_key: Stripe secret API key
            webhook_secret: Signing secret of the webhook endpoint
            frontend_url: Base URL for checkout success/cancel redirects
            allow_unsigned_webhooks: Accept webhooks without a signing secret.
                                     Only for local development.
        """
        self._secret_key = secret_key
        self._webhook_secret = webhook_secret
        self._frontend_url = frontend_url.rstrip("/")
        self._allow_unsigned = allow_unsigned_webhooks

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify a webhook delivery and parse its event.

        Args:
            payload: Raw request body
            signature: Value of the Stripe-Signature header

        Returns:
            The event as a plain dict

        Raises:
            WebhookVerificationError: If the signature or payload is invalid
        """
        if self._webhook_secret:
            if not signature:
                raise WebhookVerificationError("missing Stripe-Signature header")
            try:
                body = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WebhookVerificationError(f"payload is not UTF-8: {e}")
            try:
                stripe.WebhookSignature.verify_header(
                    body,
                    signature,
                    self._webhook_secret,
                    stripe.Webhook.DEFAULT_TOLERANCE,
                )
            except stripe.SignatureVerificationError as e:
                logger.warning(f"Invalid webhook signature: {e}")
                raise WebhookVerificationError(str(e))
        elif not self._allow_unsigned:
            raise WebhookVerificationError("webhook secret not configured")

        try:
            event = json.loads(payload)
        except (UnicodeDecodeError, ValueError) as e:
            raise WebhookVerificationError(f"invalid payload: {e}")

        if not isinstance(event, dict) or "type" not in event:
            raise WebhookVerificationError("payload is not a Stripe event")
        return event

    def create_checkout_session(
        self,
        pack: CoinPack,
        user_email: str,
    ) -> CheckoutSession:
        """
        Start a hosted checkout for a coin pack.

        Raises:
            PaymentFailedError: If Stripe rejects the request
        """
        try:
            session = stripe.checkout.Session.create(
                api_key=self._secret_key,
                mode="payment",
                payment_method_types=["card"],
                customer_email=user_email,
                line_items=[
                    {
                        "price_data": {
                            "currency": pack.currency,
                            "product_data": {
                                "name": f"{pack.coins} Coins",
                                "description": f"Purchase {pack.coins} coins for your wallet",
                            },
                            "unit_amount": pack.unit_amount,
                        },
                        "quantity": 1,
                    }
                ],
                success_url=(
                    f"{self._frontend_url}/payment/status"
                    "?session_id={CHECKOUT_SESSION_ID}"
                ),
                cancel_url=f"{self._frontend_url}/profile?payment=cancelled",
                metadata={
                    "coins": str(pack.coins),
                    "userEmail": user_email,
                    "pack_id": pack.id,
                },
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to create checkout session: {e}")
            raise PaymentFailedError("Failed to create checkout session", str(e))

        return CheckoutSession(session_id=session.id, url=session.url)

    def retrieve_checkout_session(self, session_id: str) -> Any:
        """
        Fetch a checkout session from Stripe.

        Raises:
            PaymentFailedError: If Stripe rejects the request
        """
        try:
            return stripe.checkout.Session.retrieve(session_id, api_key=self._secret_key)
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve checkout session {session_id}: {e}")
            raise PaymentFailedError("Failed to verify payment", str(e))
