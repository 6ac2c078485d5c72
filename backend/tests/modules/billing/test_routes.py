"""Tests for billing API routes."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import razorpay
from fastapi.testclient import TestClient

from api import app
from api.dependencies import (
    get_billing_service,
    get_razorpay_gateway,
    get_razorpay_webhook_handler,
    get_settlement_service,
    get_stripe_gateway,
    get_stripe_webhook_handler,
)
from modules.billing.exceptions import PaymentFailedError, PaymentVerificationError
from modules.billing.ledger import InMemoryCoinLedger
from modules.billing.models import CheckoutSession, RazorpayOrder, TransactionType
from modules.billing.service import BillingService
from modules.billing.settlement import SettlementService
from modules.billing.razorpay_gateway import RazorpayGateway
from modules.billing.stripe_gateway import StripeGateway
from modules.billing.webhooks import RazorpayWebhookHandler, StripeWebhookHandler
from shared.exceptions import StoreRejectedError, StoreUnavailableError
from tests.conftest import TEST_JWT_SECRET, create_test_token


@pytest.fixture
def ledger():
    return InMemoryCoinLedger(users={"test-user-123": "test@example.com"})


@pytest.fixture
def gateway():
    gateway = MagicMock(spec=StripeGateway)
    return gateway


@pytest.fixture
def client(ledger, gateway):
    settlement = SettlementService(ledger)
    unsigned_gateway = StripeGateway(secret_key="sk_test", allow_unsigned_webhooks=True)

    app.dependency_overrides[get_billing_service] = lambda: BillingService(ledger)
    app.dependency_overrides[get_settlement_service] = lambda: settlement
    app.dependency_overrides[get_stripe_gateway] = lambda: gateway
    app.dependency_overrides[get_stripe_webhook_handler] = lambda: StripeWebhookHandler(
        unsigned_gateway, settlement
    )
    with patch("api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.supabase_jwt_secret = TEST_JWT_SECRET
        yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return {"Authorization": f"Bearer {create_test_token()}"}


def session(**overrides):
    data = {
        "id": "cs_test_1",
        "payment_status": "paid",
        "customer_email": "test@example.com",
        "metadata": {"coins": "100", "userEmail": "test@example.com", "pack_id": "coins_100"},
    }
    data.update(overrides)
    return data


class TestBalanceRoutes:
    def test_balance_requires_auth(self, client):
        assert client.get("/api/billing/balance").status_code == 401

    def test_get_balance(self, client, headers, ledger):
        ledger.credit("test-user-123", 30, TransactionType.ADJUSTMENT)

        response = client.get("/api/billing/balance", headers=headers)

        assert response.status_code == 200
        assert response.json() == {"user_id": "test-user-123", "balance": 30}

    def test_balance_store_unavailable(self, client, headers):
        service = MagicMock()
        service.get_balance = AsyncMock(side_effect=StoreUnavailableError("get_balance", "down"))
        app.dependency_overrides[get_billing_service] = lambda: service

        response = client.get("/api/billing/balance", headers=headers)

        assert response.status_code == 503
        assert response.json()["detail"]["error"] == "STORE_UNAVAILABLE"

    def test_list_transactions(self, client, headers, ledger):
        for amount in (5, 6, 7):
            ledger.credit("test-user-123", amount, TransactionType.ADJUSTMENT)

        response = client.get("/api/billing/transactions?limit=2", headers=headers)

        data = response.json()
        assert response.status_code == 200
        assert [t["amount"] for t in data["transactions"]] == [7, 6]
        assert data["has_more"] is True

    def test_list_transactions_rejects_bad_limit(self, client, headers):
        assert client.get("/api/billing/transactions?limit=0", headers=headers).status_code == 422

    def test_list_packs_is_public(self, client):
        response = client.get("/api/billing/packs")

        assert response.status_code == 200
        assert len(response.json()) == 8
        assert response.json()[2]["pack"]["id"] == "coins_100"


class TestCheckoutRoutes:
    def test_create_checkout(self, client, headers, gateway):
        gateway.create_checkout_session.return_value = CheckoutSession(
            session_id="cs_new", url="https://checkout.stripe.test/cs_new"
        )

        response = client.post("/api/billing/checkout", json={"pack_id": "coins_100"}, headers=headers)

        assert response.status_code == 201
        assert response.json()["session_id"] == "cs_new"
        pack, email = gateway.create_checkout_session.call_args[0]
        assert pack.coins == 100
        assert email == "test@example.com"

    def test_unknown_pack(self, client, headers):
        response = client.post("/api/billing/checkout", json={"pack_id": "coins_7"}, headers=headers)
        assert response.status_code == 404

    def test_stripe_failure(self, client, headers, gateway):
        gateway.create_checkout_session.side_effect = PaymentFailedError("Failed", "down")
        response = client.post("/api/billing/checkout", json={"pack_id": "coins_50"}, headers=headers)
        assert response.status_code == 502

    def test_verify_credits_once(self, client, headers, gateway, ledger):
        gateway.retrieve_checkout_session.return_value = session()

        first = client.post("/api/billing/verify", json={"session_id": "cs_test_1"}, headers=headers)
        second = client.post("/api/billing/verify", json={"session_id": "cs_test_1"}, headers=headers)

        assert first.json()["outcome"] == "credited"
        assert second.json()["outcome"] == "duplicate"
        assert ledger.get_balance("test-user-123") == 100

    def test_verify_someone_elses_session(self, client, headers, gateway, ledger):
        gateway.retrieve_checkout_session.return_value = session(
            metadata={"coins": "100", "userEmail": "other@example.com"}
        )

        response = client.post("/api/billing/verify", json={"session_id": "cs_test_1"}, headers=headers)

        assert response.status_code == 404
        assert ledger.get_balance("test-user-123") == 0


class TestStripeWebhookRoute:
    def payload(self, event_type="checkout.session.completed"):
        return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": session()}})

    def test_webhook_credits_and_dedups(self, client, ledger):
        first = client.post("/api/billing/webhooks/stripe", content=self.payload())
        second = client.post("/api/billing/webhooks/stripe", content=self.payload())

        assert first.status_code == 200
        assert first.json()["outcome"] == "credited"
        assert second.json()["outcome"] == "duplicate"
        assert ledger.get_balance("test-user-123") == 100

    def test_webhook_bad_signature(self, client, ledger):
        signed_gateway = StripeGateway(secret_key="sk_test", webhook_secret="whsec_x")
        app.dependency_overrides[get_stripe_webhook_handler] = lambda: StripeWebhookHandler(
            signed_gateway, SettlementService(ledger)
        )

        response = client.post(
            "/api/billing/webhooks/stripe",
            content=self.payload(),
            headers={"Stripe-Signature": "t=1,v1=deadbeef"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "WEBHOOK_VERIFICATION_FAILED"
        assert ledger.get_balance("test-user-123") == 0

    def test_webhook_store_unavailable_asks_for_retry(self, client):
        handler = MagicMock()
        handler.handle = AsyncMock(side_effect=StoreUnavailableError("settle_payment_event", "down"))
        app.dependency_overrides[get_stripe_webhook_handler] = lambda: handler

        response = client.post("/api/billing/webhooks/stripe", content=self.payload())

        assert response.status_code == 503

    def test_webhook_non_utf8_body_is_bad_request(self, client, ledger):
        signed_gateway = StripeGateway(secret_key="sk_test", webhook_secret="whsec_x")
        app.dependency_overrides[get_stripe_webhook_handler] = lambda: StripeWebhookHandler(
            signed_gateway, SettlementService(ledger)
        )

        response = client.post(
            "/api/billing/webhooks/stripe",
            content=b"\xff\xfe{}",
            headers={"Stripe-Signature": "t=1,v1=abc"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "WEBHOOK_VERIFICATION_FAILED"

    def test_webhook_ledger_rejection_is_acknowledged(self, client):
        ledger = MagicMock()
        ledger.apply_payment.side_effect = StoreRejectedError(
            "settle_payment_event", "user 42 not found", "P0001"
        )
        unsigned_gateway = StripeGateway(secret_key="sk_test", allow_unsigned_webhooks=True)
        app.dependency_overrides[get_stripe_webhook_handler] = lambda: StripeWebhookHandler(
            unsigned_gateway, SettlementService(ledger)
        )

        response = client.post("/api/billing/webhooks/stripe", content=self.payload())

        # 200 so Stripe stops redelivering an event that can never settle
        assert response.status_code == 200
        assert response.json()["outcome"] == "rejected"


def razorpay_order(**overrides):
    data = {
        "id": "order_1",
        "amount": 14000,
        "amount_paid": 14000,
        "currency": "INR",
        "status": "paid",
        "notes": {"coins": "100", "userEmail": "test@example.com", "pack_id": "coins_100"},
    }
    data.update(overrides)
    return data


class TestRazorpayRoutes:
    @pytest.fixture
    def razorpay_gateway(self, client, ledger):
        gateway = MagicMock(spec=RazorpayGateway)
        unsigned_gateway = RazorpayGateway(
            "rzp_test_key", "rzp_test_secret", allow_unsigned_webhooks=True, client=MagicMock()
        )
        app.dependency_overrides[get_razorpay_gateway] = lambda: gateway
        app.dependency_overrides[get_razorpay_webhook_handler] = lambda: RazorpayWebhookHandler(
            unsigned_gateway, SettlementService(ledger)
        )
        return gateway

    def verify_body(self, **overrides):
        body = {
            "razorpay_order_id": "order_1",
            "razorpay_payment_id": "pay_1",
            "razorpay_signature": "sig",
        }
        body.update(overrides)
        return body

    def test_create_order(self, client, headers, razorpay_gateway):
        razorpay_gateway.create_order.return_value = RazorpayOrder(
            order_id="order_1", amount=14000, currency="INR", key="rzp_test_key"
        )

        response = client.post(
            "/api/billing/razorpay/orders", json={"pack_id": "coins_100"}, headers=headers
        )

        assert response.status_code == 201
        assert response.json()["order_id"] == "order_1"
        pack, email = razorpay_gateway.create_order.call_args.args
        assert pack.id == "coins_100"
        assert email == "test@example.com"

    def test_create_order_requires_auth(self, client, razorpay_gateway):
        response = client.post("/api/billing/razorpay/orders", json={"pack_id": "coins_100"})
        assert response.status_code == 401

    def test_create_order_unknown_pack(self, client, headers, razorpay_gateway):
        response = client.post(
            "/api/billing/razorpay/orders", json={"pack_id": "coins_7"}, headers=headers
        )
        assert response.status_code == 404

    def test_create_order_provider_failure(self, client, headers, razorpay_gateway):
        razorpay_gateway.create_order.side_effect = PaymentFailedError("Razorpay is not configured")

        response = client.post(
            "/api/billing/razorpay/orders", json={"pack_id": "coins_100"}, headers=headers
        )

        assert response.status_code == 502

    def test_verify_credits_once(self, client, headers, razorpay_gateway, ledger):
        razorpay_gateway.fetch_order.return_value = razorpay_order()

        first = client.post("/api/billing/razorpay/verify", json=self.verify_body(), headers=headers)
        second = client.post("/api/billing/razorpay/verify", json=self.verify_body(), headers=headers)

        assert first.status_code == 200
        assert first.json()["outcome"] == "credited"
        assert second.json()["outcome"] == "duplicate"
        assert ledger.get_balance("test-user-123") == 100
        razorpay_gateway.verify_payment.assert_called_with("order_1", "pay_1", "sig")

    def test_verify_bad_signature(self, client, headers, razorpay_gateway, ledger):
        razorpay_gateway.verify_payment.side_effect = PaymentVerificationError("order_1")

        response = client.post("/api/billing/razorpay/verify", json=self.verify_body(), headers=headers)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "PAYMENT_VERIFICATION_FAILED"
        razorpay_gateway.fetch_order.assert_not_called()
        assert ledger.get_balance("test-user-123") == 0

    def test_verify_someone_elses_order(self, client, headers, razorpay_gateway, ledger):
        razorpay_gateway.fetch_order.return_value = razorpay_order(
            notes={"coins": "100", "userEmail": "other@example.com"}
        )

        response = client.post("/api/billing/razorpay/verify", json=self.verify_body(), headers=headers)

        assert response.status_code == 404
        assert ledger.get_balance("test-user-123") == 0

    def test_verify_then_webhook_credits_once(self, client, headers, razorpay_gateway, ledger):
        razorpay_gateway.fetch_order.return_value = razorpay_order()
        client.post("/api/billing/razorpay/verify", json=self.verify_body(), headers=headers)

        webhook = client.post(
            "/api/billing/webhooks/razorpay",
            content=json.dumps(
                {"event": "order.paid", "payload": {"order": {"entity": razorpay_order()}}}
            ),
        )

        assert webhook.status_code == 200
        assert webhook.json()["outcome"] == "duplicate"
        assert ledger.get_balance("test-user-123") == 100

    def test_webhook_bad_signature(self, client, ledger, razorpay_gateway):
        signed_gateway = RazorpayGateway(
            "rzp_test_key",
            "rzp_test_secret",
            webhook_secret="rzp_webhook_secret",
            client=razorpay.Client(auth=("rzp_test_key", "rzp_test_secret")),
        )
        app.dependency_overrides[get_razorpay_webhook_handler] = lambda: RazorpayWebhookHandler(
            signed_gateway, SettlementService(ledger)
        )

        response = client.post(
            "/api/billing/webhooks/razorpay",
            content=json.dumps({"event": "order.paid", "payload": {}}),
            headers={"X-Razorpay-Signature": "deadbeef"},
        )

        assert response.status_code == 400
        assert ledger.get_balance("test-user-123") == 0

    def test_webhook_store_unavailable_asks_for_retry(self, client, razorpay_gateway):
        handler = MagicMock()
        handler.handle = AsyncMock(side_effect=StoreUnavailableError("settle_payment_event", "down"))
        app.dependency_overrides[get_razorpay_webhook_handler] = lambda: handler

        response = client.post("/api/billing/webhooks/razorpay", content=b"{}")

        assert response.status_code == 503
