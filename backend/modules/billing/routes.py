"""
Billing API endpoints.

Balance, history, coin packs, Stripe checkout, Razorpay orders, and the
Stripe and Razorpay webhooks.
"""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from api.middleware.auth import get_current_user
from api.dependencies import (
    get_billing_service,
    get_razorpay_gateway,
    get_razorpay_webhook_handler,
    get_settlement_service,
    get_stripe_gateway,
    get_stripe_webhook_handler,
)
from shared.exceptions import StoreRejectedError, StoreUnavailableError
from shared.models import AuthenticatedUser

from .interfaces import IBillingService, ISettlementService
from .models import (
    CheckoutSession,
    CoinBalance,
    CoinPackOffer,
    PurchaseRequest,
    RazorpayOrder,
    RazorpayVerifyRequest,
    SettlementResult,
    TransactionListResponse,
    VerifyPaymentRequest,
)
from .exceptions import (
    CoinPackNotFoundError,
    PaymentFailedError,
    PaymentVerificationError,
    WebhookVerificationError,
)
from .razorpay_gateway import RazorpayGateway, payment_event_from_order
from .stripe_gateway import StripeGateway, payment_event_from_session
from .webhooks import RazorpayWebhookHandler, StripeWebhookHandler

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/balance", response_model=CoinBalance)
async def get_balance(
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> CoinBalance:
    """Get the current user's coin balance."""
    try:
        return await service.get_balance(user.id)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    limit: int = Query(default=20, ge=1, le=100, description="Items per page"),
    offset: int = Query(default=0, ge=0, description="Items to skip"),
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
) -> TransactionListResponse:
    """
    List the current user's coin transactions.

    Most recent first.
    """
    try:
        transactions = await service.get_transaction_history(user.id, limit, offset)
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())

    return TransactionListResponse(
        transactions=transactions,
        limit=limit,
        offset=offset,
        has_more=len(transactions) == limit,
    )


@router.get("/packs", response_model=list[CoinPackOffer])
async def list_coin_packs(
    service: IBillingService = Depends(get_billing_service),
) -> list[CoinPackOffer]:
    """List purchasable coin packs."""
    return service.list_coin_packs()


@router.post("/checkout", response_model=CheckoutSession, status_code=201)
async def create_checkout(
    request: PurchaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> CheckoutSession:
    """
    Start a Stripe checkout for a coin pack.

    Coins are credited when Stripe confirms the payment.
    """
    try:
        pack = service.get_coin_pack(request.pack_id)
        return gateway.create_checkout_session(pack, user.email)
    except CoinPackNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except PaymentFailedError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())


@router.post("/verify", response_model=SettlementResult)
async def verify_payment(
    request: VerifyPaymentRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: StripeGateway = Depends(get_stripe_gateway),
    settlement: ISettlementService = Depends(get_settlement_service),
) -> SettlementResult:
    """
    Verify a finished checkout and settle it.

    Safe to call after the webhook already credited the session; the
    second settlement is reported as a duplicate.
    """
    try:
        session = gateway.retrieve_checkout_session(request.session_id)
        event = payment_event_from_session(session)
        if event.user_email and event.user_email.lower() != user.email.lower():
            raise HTTPException(status_code=404, detail="Checkout session not found")
        return await settlement.settle(event)
    except PaymentFailedError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())


@router.post("/webhooks/stripe")
async def stripe_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None),
    handler: StripeWebhookHandler = Depends(get_stripe_webhook_handler),
) -> dict:
    """
    Receive Stripe webhook deliveries.

    Returns 400 for unauthentic deliveries and 503 when the ledger is
    unavailable, so Stripe redelivers the event later. Events the ledger
    refuses outright are acknowledged with outcome "rejected".
    """
    payload = await request.body()
    try:
        return await handler.handle(payload, stripe_signature)
    except WebhookVerificationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except StoreUnavailableError as e:
        logger.error(f"Webhook settlement failed, Stripe will retry: {e.message}")
        raise HTTPException(status_code=503, detail=e.to_dict())


@router.post("/razorpay/orders", response_model=RazorpayOrder, status_code=201)
async def create_razorpay_order(
    request: PurchaseRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    service: IBillingService = Depends(get_billing_service),
    gateway: RazorpayGateway = Depends(get_razorpay_gateway),
) -> RazorpayOrder:
    """
    Create a Razorpay order for a coin pack.

    The client opens Razorpay Checkout with the returned order ID and key.
    """
    try:
        pack = service.get_coin_pack(request.pack_id)
        return gateway.create_order(pack, user.email)
    except CoinPackNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.to_dict())
    except PaymentFailedError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())


@router.post("/razorpay/verify", response_model=SettlementResult)
async def verify_razorpay_payment(
    request: RazorpayVerifyRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    gateway: RazorpayGateway = Depends(get_razorpay_gateway),
    settlement: ISettlementService = Depends(get_settlement_service),
) -> SettlementResult:
    """
    Verify a Razorpay Checkout response and settle its order.

    Safe to call after the order.paid webhook already credited the order.
    """
    try:
        gateway.verify_payment(
            request.razorpay_order_id,
            request.razorpay_payment_id,
            request.razorpay_signature,
        )
        order = gateway.fetch_order(request.razorpay_order_id)
        event = payment_event_from_order(order, {"id": request.razorpay_payment_id})
        if event.user_email and event.user_email.lower() != user.email.lower():
            raise HTTPException(status_code=404, detail="Razorpay order not found")
        return await settlement.settle(event)
    except PaymentVerificationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except PaymentFailedError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())
    except StoreUnavailableError as e:
        raise HTTPException(status_code=503, detail=e.to_dict())
    except StoreRejectedError as e:
        raise HTTPException(status_code=422, detail=e.to_dict())


@router.post("/webhooks/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(default=None),
    handler: RazorpayWebhookHandler = Depends(get_razorpay_webhook_handler),
) -> dict:
    """
    Receive Razorpay webhook deliveries.

    Same contract as the Stripe webhook: 400 for unauthentic deliveries,
    503 when the ledger is unavailable so Razorpay retries.
    """
    payload = await request.body()
    try:
        return await handler.handle(payload, x_razorpay_signature)
    except WebhookVerificationError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except StoreUnavailableError as e:
        logger.error(f"Razorpay webhook settlement failed, will be retried: {e.message}")
        raise HTTPException(status_code=503, detail=e.to_dict())
