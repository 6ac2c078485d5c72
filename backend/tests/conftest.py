"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
"""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal
from jose import jwt

from api.dependencies import reset_container
from modules.billing.ledger import InMemoryCoinLedger
from modules.billing.service import BillingService
from modules.requests.models import ContactDetails, TutoringRequest


# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

# Fixed clock for pricing tests
NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


def create_test_token(
    user_id: str = "test-user-123",
    email: str = "test@example.com",
    expired: bool = False,
    email_verified: bool = True,
) -> str:
    """
    Create a test JWT token for authentication.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        email_verified: Whether the email should be marked as verified

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload = {
        "sub": user_id,
        "email": email,
        "email_confirmed_at": now.isoformat() if email_verified else None,
        "aud": "authenticated",
        "role": "authenticated",
        "exp": int(exp.timestamp()),
        "iat": int(now.timestamp()),
    }
    return jwt.encode(payload, TEST_JWT_SECRET, algorithm="HS256")


def make_request(**overrides) -> TutoringRequest:
    """Build a tutoring request that earns no pricing bonus by default."""
    data = {
        "id": "req-1",
        "title": "Need help with fractions",
        "description": "Weekly sessions",
        "level": "Grade 6",
        "urgency": "flexible",
        "price_amount": Decimal("10"),
        "subjects": ["English"],
        "view_count": 0,
        "created_at": NOW - timedelta(days=10),
        "contact": ContactDetails(
            name="Asha",
            email="asha@example.com",
            phone="+91 98765 43210",
            phone_verified=True,
        ),
    }
    data.update(overrides)
    return TutoringRequest(**data)


@pytest.fixture(autouse=True)
def reset_services():
    """Reset the service container before and after each test."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return "test-user-123"


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return "test@example.com"


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def ledger(test_user_id: str, test_user_email: str) -> InMemoryCoinLedger:
    """In-memory ledger that knows the test user."""
    return InMemoryCoinLedger(users={test_user_id: test_user_email})


@pytest.fixture
def billing_service(ledger: InMemoryCoinLedger) -> BillingService:
    """Billing service over the in-memory ledger."""
    return BillingService(ledger)
