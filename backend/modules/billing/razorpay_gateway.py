"""
Razorpay boundary for coin purchases.

Razorpay Checkout runs in the browser against an order created here. The
order's notes carry the coin count and buyer email, the same contract as
the Stripe session metadata, and the order ID is the deduplication key so
the verify endpoint and the order.paid webhook settle the purchase once.
"""

import json
import logging
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Optional

import razorpay
from razorpay.errors import (
    BadRequestError,
    GatewayError,
    ServerError,
    SignatureVerificationError,
)

from .models import (
    CoinPack,
    PaymentEvent,
    PaymentProvider,
    PaymentStatus,
    RazorpayOrder,
    parse_coins,
)
from .exceptions import (
    PaymentFailedError,
    PaymentVerificationError,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

_API_ERRORS = (BadRequestError, GatewayError, ServerError)


def payment_event_from_order(
    order: Mapping[str, Any],
    payment: Optional[Mapping[str, Any]] = None,
) -> PaymentEvent:
    """
    Map a Razorpay order (and optionally its payment) to a PaymentEvent.

    Args:
        order: Order entity from the API or an order.paid webhook
        payment: Payment entity, used for the payment ID and as an email
                 fallback when the order notes lack one

    Raises:
        PaymentFailedError: If the order has no ID
    """
    order_id = order.get("id")
    if not order_id:
        raise PaymentFailedError("Razorpay order has no id")

    payment = payment or {}
    # Razorpay serializes empty notes as []
    notes = order.get("notes")
    notes = notes if isinstance(notes, Mapping) else {}
    created = order.get("created_at")
    currency = order.get("currency")

    return PaymentEvent(
        provider_event_id=str(order_id),
        provider=PaymentProvider.RAZORPAY,
        user_email=notes.get("userEmail") or payment.get("email"),
        coins=parse_coins(notes.get("coins")),
        amount=order.get("amount_paid") or order.get("amount"),
        currency=currency.lower() if currency else None,
        status=PaymentStatus.SUCCEEDED if order.get("status") == "paid" else PaymentStatus.PROCESSING,
        created_at=datetime.fromtimestamp(created, tz=timezone.utc) if created else None,
        metadata={
            "payment_id": payment.get("id"),
            "receipt": order.get("receipt"),
            "pack_id": notes.get("pack_id"),
        },
    )


class RazorpayGateway:
    """Razorpay SDK wrapper configured from settings."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        webhook_secret: str = "",
        allow_unsigned_webhooks: bool = False,
        client: Optional[razorpay.Client] = None,
    ):
        """
        Initialize the gateway.

        Args:
            key_id: Razorpay key ID (also handed to the browser Checkout)
            key_secret: Razorpay key secret, signs checkout responses
            webhook_secret: Secret configured on the webhook endpoint
            allow_unsigned_webhooks: Accept webhooks without a secret.
                                     Only for local development.
            client: Preconfigured SDK client
        """
        self._key_id = key_id
        self._key_secret = key_secret
        self._webhook_secret = webhook_secret
        self._allow_unsigned = allow_unsigned_webhooks
        self._client = client or razorpay.Client(auth=(key_id, key_secret))

    @property
    def configured(self) -> bool:
        return bool(self._key_id and self._key_secret)

    def create_order(self, pack: CoinPack, user_email: str) -> RazorpayOrder:
        """
        Create an order for a coin pack.

        Raises:
            PaymentFailedError: If Razorpay is not configured or rejects the order
        """
        if not self.configured:
            raise PaymentFailedError("Razorpay is not configured")

        try:
            order = self._client.order.create(
                data={
                    "amount": pack.unit_amount,
                    "currency": pack.currency.upper(),
                    "receipt": f"coin_checkout_{int(time.time() * 1000)}",
                    "payment_capture": 1,
                    "notes": {
                        "coins": str(pack.coins),
                        "userEmail": user_email,
                        "pack_id": pack.id,
                        "description": f"Purchase {pack.coins} coins",
                    },
                }
            )
        except _API_ERRORS as e:
            logger.error(f"Failed to create Razorpay order: {e}")
            raise PaymentFailedError("Failed to create Razorpay order", str(e))

        return RazorpayOrder(
            order_id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            key=self._key_id,
        )

    def fetch_order(self, order_id: str) -> dict[str, Any]:
        """
        Fetch an order from Razorpay.

        Raises:
            PaymentFailedError: If Razorpay rejects the request
        """
        try:
            return self._client.order.fetch(order_id)
        except _API_ERRORS as e:
            logger.error(f"Failed to fetch Razorpay order {order_id}: {e}")
            raise PaymentFailedError("Failed to verify payment", str(e))

    def verify_payment(self, order_id: str, payment_id: str, signature: str) -> None:
        """
        Check the signature Razorpay Checkout returned for a payment.

        Raises:
            PaymentVerificationError: If the signature does not match
        """
        try:
            self._client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_id,
                    "razorpay_payment_id": payment_id,
                    "razorpay_signature": signature,
                }
            )
        except SignatureVerificationError:
            logger.warning(f"Invalid payment signature for Razorpay order {order_id}")
            raise PaymentVerificationError(order_id)

    def construct_event(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        """
        Verify a webhook delivery and parse its event.

        Raises:
            WebhookVerificationError: If the signature or payload is invalid
        """
        if self._webhook_secret:
            if not signature:
                raise WebhookVerificationError("missing X-Razorpay-Signature header")
            try:
                body = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WebhookVerificationError(f"payload is not UTF-8: {e}")
            try:
                self._client.utility.verify_webhook_signature(
                    body, signature, self._webhook_secret
                )
            except SignatureVerificationError as e:
                logger.warning(f"Invalid Razorpay webhook signature: {e}")
                raise WebhookVerificationError(str(e))
        elif not self._allow_unsigned:
            raise WebhookVerificationError("webhook secret not configured")

        try:
            event = json.loads(payload)
        except (UnicodeDecodeError, ValueError) as e:
            raise WebhookVerificationError(f"invalid payload: {e}")

        if not isinstance(event, dict) or "event" not in event:
            raise WebhookVerificationError("payload is not a Razorpay event")
        return event
