"""
User-related endpoints.

Provides the current user's profile and coin balance.
"""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr

from shared.exceptions import StoreRejectedError, StoreUnavailableError
from shared.models import AuthenticatedUser
from modules.billing.interfaces import IBillingService
from ..dependencies import get_billing_service
from ..middleware.auth import get_current_user

router = APIRouter()


class UserProfileResponse(BaseModel):
    """User profile response model."""

    id: str
    email: EmailStr
    email_verified: bool
    role: str
    coin_balance: int


@router.get("/me", response_model=UserProfileResponse)
async def get_current_user_profile(
    user: AuthenticatedUser = Depends(get_current_user),
    billing: IBillingService = Depends(get_billing_service),
) -> UserProfileResponse:
    """
    Get the current user's profile.

    Requires authentication.
    """
    try:
        balance = await billing.get_balance(user.id)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    return UserProfileResponse(
        id=user.id,
        email=user.email,
        email_verified=user.email_verified,
        role=user.role,
        coin_balance=balance.balance,
    )
