"""Tests for payment webhook dispatch."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from modules.billing.exceptions import WebhookVerificationError
from modules.billing.ledger import InMemoryCoinLedger
from modules.billing.models import PaymentStatus, SettlementOutcome
from modules.billing.settlement import SettlementService
from modules.billing.razorpay_gateway import RazorpayGateway
from modules.billing.stripe_gateway import StripeGateway
from modules.billing.webhooks import RazorpayWebhookHandler, StripeWebhookHandler
from shared.exceptions import StoreRejectedError, StoreUnavailableError


def delivery(event_type: str, **session) -> bytes:
    obj = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "metadata": {"coins": "100", "userEmail": "a@x.com"},
    }
    obj.update(session)
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": obj}}).encode()


@pytest.fixture
def ledger():
    return InMemoryCoinLedger(users={"user-a": "a@x.com"})


@pytest.fixture
def handler(ledger):
    gateway = StripeGateway(secret_key="sk_test_123", allow_unsigned_webhooks=True)
    return StripeWebhookHandler(gateway, SettlementService(ledger))


class TestStripeWebhookHandler:
    @pytest.mark.asyncio
    async def test_checkout_completed_credits(self, handler, ledger):
        body = await handler.handle(delivery("checkout.session.completed"), None)

        assert body == {
            "received": True,
            "event_type": "checkout.session.completed",
            "outcome": "credited",
        }
        assert ledger.get_balance("user-a") == 100

    @pytest.mark.asyncio
    async def test_redelivery_is_acknowledged_without_credit(self, handler, ledger):
        await handler.handle(delivery("checkout.session.completed"), None)
        body = await handler.handle(delivery("checkout.session.completed"), None)

        assert body["outcome"] == SettlementOutcome.DUPLICATE.value
        assert ledger.get_balance("user-a") == 100

    @pytest.mark.asyncio
    async def test_async_payment_flow(self, handler, ledger):
        pending = await handler.handle(
            delivery("checkout.session.completed", payment_status="unpaid"), None
        )
        assert pending["outcome"] == "recorded"
        assert ledger.get_balance("user-a") == 0

        paid = await handler.handle(delivery("checkout.session.async_payment_succeeded"), None)
        assert paid["outcome"] == "credited"
        assert ledger.get_balance("user-a") == 100

    @pytest.mark.asyncio
    async def test_async_payment_failed(self, handler, ledger):
        await handler.handle(delivery("checkout.session.completed", payment_status="unpaid"), None)

        body = await handler.handle(delivery("checkout.session.async_payment_failed"), None)

        assert body == {"received": True, "event_type": "checkout.session.async_payment_failed"}
        assert ledger.payment_status("cs_test_1") == PaymentStatus.FAILED
        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_payment_intent_succeeded_is_logged_only(self, handler, ledger):
        body = await handler.handle(delivery("payment_intent.succeeded", id="pi_1"), None)

        assert body == {"received": True, "event_type": "payment_intent.succeeded"}
        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(self, handler):
        body = await handler.handle(delivery("customer.created"), None)
        assert body["handled"] is False

    @pytest.mark.asyncio
    async def test_verification_failure_propagates(self, ledger):
        gateway = StripeGateway(secret_key="sk_test_123", webhook_secret="whsec_x")
        handler = StripeWebhookHandler(gateway, SettlementService(ledger))

        with pytest.raises(WebhookVerificationError):
            await handler.handle(delivery("checkout.session.completed"), "t=1,v1=bad")

        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self):
        gateway = StripeGateway(secret_key="sk_test_123", allow_unsigned_webhooks=True)
        settlement = MagicMock()
        settlement.settle = AsyncMock(side_effect=StoreUnavailableError("settle_payment_event", "down"))
        handler = StripeWebhookHandler(gateway, settlement)

        with pytest.raises(StoreUnavailableError):
            await handler.handle(delivery("checkout.session.completed"), None)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event_type",
        ["checkout.session.completed", "checkout.session.async_payment_failed"],
    )
    async def test_null_data_rejected(self, handler, ledger, event_type):
        body = json.dumps({"id": "evt_1", "type": event_type, "data": None}).encode()

        with pytest.raises(WebhookVerificationError):
            await handler.handle(body, None)

        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_null_data_on_unhandled_type_acknowledged(self, handler):
        body = json.dumps({"id": "evt_1", "type": "customer.created", "data": None}).encode()

        result = await handler.handle(body, None)

        assert result["handled"] is False

    @pytest.mark.asyncio
    async def test_session_without_id_rejected(self, handler, ledger):
        with pytest.raises(WebhookVerificationError) as exc_info:
            await handler.handle(delivery("checkout.session.completed", id=None), None)

        assert "no session id" in exc_info.value.details["reason"]
        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_ledger_rejection_is_acknowledged(self):
        gateway = StripeGateway(secret_key="sk_test_123", allow_unsigned_webhooks=True)
        ledger = MagicMock()
        ledger.apply_payment.side_effect = StoreRejectedError(
            "settle_payment_event", "credit amount must be positive", "P0001"
        )
        handler = StripeWebhookHandler(gateway, SettlementService(ledger))

        body = await handler.handle(delivery("checkout.session.completed"), None)

        assert body["outcome"] == SettlementOutcome.REJECTED.value


def razorpay_delivery(event_type: str, order: dict | None = None, payment: dict | None = None) -> bytes:
    entities = {}
    if order is not None:
        entities["order"] = {"entity": order}
    if payment is not None:
        entities["payment"] = {"entity": payment}
    return json.dumps({"entity": "event", "event": event_type, "payload": entities}).encode()


def razorpay_order(**overrides) -> dict:
    order = {
        "id": "order_1",
        "amount": 14000,
        "amount_paid": 14000,
        "currency": "INR",
        "status": "paid",
        "notes": {"coins": "100", "userEmail": "a@x.com"},
    }
    order.update(overrides)
    return order


@pytest.fixture
def razorpay_handler(ledger):
    gateway = RazorpayGateway(
        "rzp_test_key", "rzp_test_secret", allow_unsigned_webhooks=True, client=MagicMock()
    )
    return RazorpayWebhookHandler(gateway, SettlementService(ledger))


class TestRazorpayWebhookHandler:
    @pytest.mark.asyncio
    async def test_order_paid_credits_once(self, razorpay_handler, ledger):
        body = razorpay_delivery("order.paid", razorpay_order(), {"id": "pay_1"})

        first = await razorpay_handler.handle(body, None)
        second = await razorpay_handler.handle(body, None)

        assert first == {"received": True, "event_type": "order.paid", "outcome": "credited"}
        assert second["outcome"] == "duplicate"
        assert ledger.get_balance("user-a") == 100

    @pytest.mark.asyncio
    async def test_order_paid_without_order_rejected(self, razorpay_handler, ledger):
        with pytest.raises(WebhookVerificationError):
            await razorpay_handler.handle(razorpay_delivery("order.paid", payment={"id": "pay_1"}), None)

        assert ledger.get_balance("user-a") == 0

    @pytest.mark.asyncio
    async def test_payment_failed_marks_recorded_order(self, razorpay_handler, ledger):
        await razorpay_handler.handle(
            razorpay_delivery("order.paid", razorpay_order(status="attempted")), None
        )

        body = await razorpay_handler.handle(
            razorpay_delivery(
                "payment.failed",
                payment={"id": "pay_1", "order_id": "order_1", "error_description": "card declined"},
            ),
            None,
        )

        assert body == {"received": True, "event_type": "payment.failed"}
        assert ledger.payment_status("order_1") == PaymentStatus.FAILED

    @pytest.mark.asyncio
    async def test_paid_after_failed_attempt_credits(self, razorpay_handler, ledger):
        await razorpay_handler.handle(
            razorpay_delivery("order.paid", razorpay_order(status="attempted")), None
        )
        await razorpay_handler.handle(
            razorpay_delivery("payment.failed", payment={"id": "pay_1", "order_id": "order_1"}),
            None,
        )

        body = await razorpay_handler.handle(
            razorpay_delivery("order.paid", razorpay_order(), {"id": "pay_2"}), None
        )

        assert body["outcome"] == "credited"
        assert ledger.get_balance("user-a") == 100
        assert ledger.payment_status("order_1") == PaymentStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_payment_failed_without_order_id_rejected(self, razorpay_handler):
        with pytest.raises(WebhookVerificationError):
            await razorpay_handler.handle(
                razorpay_delivery("payment.failed", payment={"id": "pay_1"}), None
            )

    @pytest.mark.asyncio
    async def test_unknown_event_acknowledged(self, razorpay_handler):
        body = await razorpay_handler.handle(razorpay_delivery("refund.created"), None)
        assert body["handled"] is False

    @pytest.mark.asyncio
    async def test_null_payload_acknowledged_for_unhandled_type(self, razorpay_handler):
        body = json.dumps({"entity": "event", "event": "refund.created", "payload": None}).encode()

        result = await razorpay_handler.handle(body, None)

        assert result["handled"] is False
