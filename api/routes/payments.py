"""
Payments API routes.

Checkout, gateway webhook and verification endpoints. Keep this thin:
gateway details live in infrastructure, settlement rules in the domain.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies import (
    get_checkout_service,
    get_current_user,
    get_payment_query_service,
    get_settlement_service,
)
from application.dtos.payments import InitializePaymentRequest
from application.services.checkout_service import CheckoutService
from application.services.payment_service import PaymentQueryService
from application.services.settlement_service import SettlementService
from application.services.token_service import AuthenticatedUser
from core.config import settings
from core.logging_config import get_logger
from core.response import paginated_response, success_response
from core.settings import payment_settings


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


def _signature_from(request: Request) -> Optional[str]:
    for header in payment_settings.webhook.signature_headers:
        value = request.headers.get(header)
        if value:
            return value
    return None


@router.post("/initialize", status_code=status.HTTP_201_CREATED, summary="Initialize payment")
async def initialize_payment(
    payload: InitializePaymentRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    result = await service.initialize_payment(
        buyer_id=current_user.id,
        buyer_email=current_user.email or f"user-{current_user.id}@users.noreply",
        req=payload,
    )
    return success_response(data=result, message="Payment initialized")


@router.post("/webhook", summary="Gateway webhook")
async def payment_webhook(
    request: Request,
    service: SettlementService = Depends(get_settlement_service),
):
    raw_body = await request.body()
    disposition = await service.handle_webhook(raw_body, _signature_from(request))
    # 200 acknowledges receipt; anything raised above becomes 4xx/5xx and the gateway retries
    return success_response(data={"status": disposition}, message="Webhook received")


@router.get("/verify/{reference}", summary="Verify payment")
async def verify_payment(
    reference: str,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: SettlementService = Depends(get_settlement_service),
):
    result = await service.verify(reference, current_user.id)
    return success_response(data=result, message="Payment verified")


@router.get("/my-payments", summary="Payments made by the current user")
async def my_payments(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: PaymentQueryService = Depends(get_payment_query_service),
):
    items, total = await service.list_buyer_payments(current_user.id, page, size)
    return paginated_response(items=items, total=total, page=page, size=size)


@router.get("/seller/payments", summary="Payments received by the current seller")
async def seller_payments(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: PaymentQueryService = Depends(get_payment_query_service),
):
    items, total = await service.list_seller_payments(current_user.id, page, size)
    return paginated_response(items=items, total=total, page=page, size=size)


@router.get("/{payment_id}", summary="Get payment")
async def get_payment(
    payment_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: PaymentQueryService = Depends(get_payment_query_service),
):
    payment = await service.get_payment(payment_id, current_user.id)
    return success_response(data=payment)
