"""
Health check endpoints.

Provides endpoints for monitoring application health and readiness.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from shared.config import Settings, get_settings
from shared.exceptions import StoreUnavailableError
from ..dependencies import get_billing_service
from modules.billing.interfaces import IBillingService

logger = logging.getLogger(__name__)

router = APIRouter()

# Any UUID works; the readiness check only needs the store to answer.
READINESS_USER_ID = "00000000-0000-0000-0000-000000000000"


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    status: str
    ledger: str
    payments: str


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns 200 if the API is running.
    """
    return HealthResponse(status="healthy", version=settings.app_version)


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check(
    settings: Settings = Depends(get_settings),
    billing: IBillingService = Depends(get_billing_service),
):
    """
    Readiness check endpoint.

    Checks the coin ledger and reports whether Stripe is configured.
    Returns 503 while the ledger is unreachable.
    """
    payments = "configured" if settings.stripe_secret_key else "not_configured"

    try:
        await billing.get_balance(READINESS_USER_ID)
    except StoreUnavailableError as e:
        logger.warning(f"Readiness check failed: {e.message}")
        body = ReadinessResponse(status="unavailable", ledger="unavailable", payments=payments)
        return JSONResponse(status_code=503, content=body.model_dump())

    return ReadinessResponse(status="ready", ledger="connected", payments=payments)
