"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from api import app
from api.dependencies import get_billing_service
from modules.billing.ledger import InMemoryCoinLedger
from modules.billing.service import BillingService
from shared.config import Settings, get_settings
from shared.exceptions import StoreUnavailableError


@pytest.fixture
def client():
    app.dependency_overrides[get_billing_service] = lambda: BillingService(InMemoryCoinLedger())
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, stripe_secret_key="sk_test")
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    def test_health_check(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "0.1.0"}

    def test_readiness_check(self, client):
        response = client.get("/api/ready")
        assert response.status_code == 200
        assert response.json() == {
            "status": "ready",
            "ledger": "connected",
            "payments": "configured",
        }

    def test_readiness_reports_missing_stripe(self, client):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, stripe_secret_key="")
        assert client.get("/api/ready").json()["payments"] == "not_configured"

    def test_readiness_when_ledger_down(self, client):
        service = MagicMock()
        service.get_balance = AsyncMock(side_effect=StoreUnavailableError("get_balance", "down"))
        app.dependency_overrides[get_billing_service] = lambda: service

        response = client.get("/api/ready")

        assert response.status_code == 503
        assert response.json()["ledger"] == "unavailable"
