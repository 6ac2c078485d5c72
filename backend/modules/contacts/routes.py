"""
Tutoring request API endpoints.

Gated request view, price quote and contact unlock.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from api.middleware.auth import get_current_user, get_optional_user
from api.dependencies import get_contact_gate
from api.models.errors import ErrorResponse
from shared.exceptions import StoreRejectedError, StoreUnavailableError
from shared.models import AuthenticatedUser
from modules.billing.exceptions import InsufficientBalanceError
from modules.pricing.models import ContactPrice
from modules.requests.exceptions import RequestNotFoundError

from .interfaces import IContactGate
from .models import RequestView, UnlockResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{request_id}", response_model=RequestView)
async def get_request(
    request_id: str,
    user: Optional[AuthenticatedUser] = Depends(get_optional_user),
    gate: IContactGate = Depends(get_contact_gate),
) -> RequestView:
    """
    Get a tutoring request.

    Contact details are redacted unless the caller has unlocked them.
    Views by signed-in users are counted.
    """
    try:
        view = await gate.view_request(request_id, user)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    if user is not None:
        try:
            await gate.record_view(request_id)
        except (StoreUnavailableError, StoreRejectedError) as e:
            # The view itself succeeded; only the counter is behind
            logger.warning(f"Could not count view of request {request_id}: {e.message}")

    return view


@router.get("/{request_id}/price", response_model=ContactPrice)
async def get_request_price(
    request_id: str,
    gate: IContactGate = Depends(get_contact_gate),
) -> ContactPrice:
    """Get the coin cost to unlock a request, with its pricing factors."""
    try:
        return await gate.quote(request_id)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())


@router.post(
    "/{request_id}/unlock",
    response_model=UnlockResult,
    responses={
        402: {"model": ErrorResponse, "description": "Insufficient coin balance"},
        404: {"model": ErrorResponse, "description": "Request not found"},
        422: {"model": ErrorResponse, "description": "Rejected by the data store"},
    },
)
async def unlock_request(
    request_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    gate: IContactGate = Depends(get_contact_gate),
) -> UnlockResult:
    """
    Pay coins to unlock a request's contact details.

    Repeating the call returns the contact details without charging again.
    Returns 402 when the balance is too low.
    """
    try:
        return await gate.unlock(request_id, user)
    except RequestNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except InsufficientBalanceError as e:
        raise HTTPException(status_code=402, detail=e.to_dict())
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())
