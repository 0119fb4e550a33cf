"""
订单 DTO
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from pydantic import Field, field_validator

from application.dtos.common import DTOBase
from domain.order.entity import Order


class CancelOrderRequest(DTOBase):
    """取消订单请求"""
    reason: str = Field(..., min_length=1, max_length=500)

    @field_validator("reason")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("reason must not be blank")
        return v.strip()


class OrderResponseDTO(DTOBase):
    id: int
    payment_id: int
    item_id: int
    buyer_id: int
    seller_id: int
    amount: int
    delivery_address: str
    status: str
    cancellation_reason: Optional[str] = None
    delivered_at: Optional[datetime] = None
    delivered_via: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, order: Order) -> "OrderResponseDTO":
        return cls(
            id=order.id,
            payment_id=order.payment_id,
            item_id=order.item_id,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            amount=order.amount,
            delivery_address=order.delivery_address,
            status=order.status.value,
            cancellation_reason=order.cancellation_reason,
            delivered_at=order.delivery.at if order.delivery else None,
            delivered_via=order.delivery.via.value if order.delivery else None,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderStatisticsDTO(DTOBase):
    total_purchases: int
    total_sales: int


class AutoCompleteSummary(DTOBase):
    scanned: int = 0
    completed: int = 0
    failed: int = 0
