"""Tests for user endpoints."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from api import app
from api.dependencies import get_billing_service
from modules.billing.ledger import InMemoryCoinLedger
from modules.billing.service import BillingService
from shared.exceptions import StoreUnavailableError
from tests.conftest import TEST_JWT_SECRET


@pytest.fixture
def ledger(test_user_id, test_user_email):
    return InMemoryCoinLedger(users={test_user_id: test_user_email})


@pytest.fixture
def client(ledger):
    app.dependency_overrides[get_billing_service] = lambda: BillingService(ledger)
    with patch("api.middleware.auth.get_settings") as mock_settings:
        mock_settings.return_value.supabase_jwt_secret = TEST_JWT_SECRET
        yield TestClient(app)
    app.dependency_overrides.clear()


class TestCurrentUserProfile:
    def test_profile_includes_balance(self, client, ledger, auth_headers, test_user_id):
        ledger.add_user(test_user_id, "test@example.com", balance=40)

        response = client.get("/api/users/me", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {
            "id": test_user_id,
            "email": "test@example.com",
            "email_verified": True,
            "role": "user",
            "coin_balance": 40,
        }

    def test_profile_when_ledger_down(self, client, auth_headers):
        service = MagicMock()
        service.get_balance = AsyncMock(side_effect=StoreUnavailableError("get_balance", "down"))
        app.dependency_overrides[get_billing_service] = lambda: service

        assert client.get("/api/users/me", headers=auth_headers).status_code == 503
