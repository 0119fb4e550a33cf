"""
Orders API routes.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_current_user, get_order_service
from application.dtos.orders import CancelOrderRequest
from application.services.order_service import OrderApplicationService
from application.services.token_service import AuthenticatedUser
from core.config import settings
from core.response import paginated_response, success_response


router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("/my-purchases", summary="Orders placed by the current user")
async def my_purchases(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    items, total = await service.list_purchases(current_user.id, page, size)
    return paginated_response(items=items, total=total, page=page, size=size)


@router.get("/my-sales", summary="Orders received by the current seller")
async def my_sales(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    items, total = await service.list_sales(current_user.id, page, size)
    return paginated_response(items=items, total=total, page=page, size=size)


@router.get("/statistics", summary="Purchase and sale counts")
async def order_statistics(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    return success_response(data=await service.statistics(current_user.id))


@router.get("/{order_id}", summary="Get order")
async def get_order(
    order_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    return success_response(data=await service.get_order(order_id, current_user.id))


@router.put("/{order_id}/mark-delivered", summary="Confirm delivery")
async def mark_delivered(
    order_id: int,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.mark_delivered(order_id, current_user.id)
    return success_response(data=order, message="Order marked as delivered")


@router.put("/{order_id}/cancel", summary="Cancel order")
async def cancel_order(
    order_id: int,
    payload: CancelOrderRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.cancel_order(order_id, current_user.id, payload.reason)
    return success_response(data=order, message="Order cancelled")
