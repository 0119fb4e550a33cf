"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from application.dtos.common import DTOBase
from application.dtos.orders import OrderResponseDTO
from domain.payment.commands import SettlementOutcome
from domain.payment.entity import Payment


# -- Gateway boundary ---------------------------------------------------------

class InitializeTransaction(BaseModel):
    email: str
    amount: int = Field(gt=0)  # minor units (kobo)
    subaccount: str
    callback_url: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class InitializedTransaction(BaseModel):
    authorization_url: str
    access_code: Optional[str] = None
    reference: str


class VerifiedTransaction(BaseModel):
    reference: str
    outcome: SettlementOutcome
    gateway_status: str
    amount: Optional[int] = None
    paid_at: Optional[datetime] = None


class WebhookEvent(BaseModel):
    event: str
    reference: Optional[str] = None
    status: Optional[str] = None
    data: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


# -- HTTP boundary -------------------------------------------------------------

class InitializePaymentRequest(DTOBase):
    """发起支付请求"""
    item_id: int = Field(..., gt=0)
    amount: int = Field(..., gt=0, description="金额（最小货币单位，如 kobo）")
    delivery_address: Optional[str] = Field(None, max_length=500)

    @field_validator("delivery_address")
    @classmethod
    def _strip_address(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class InitializePaymentResponse(DTOBase):
    payment_url: str
    reference: str
    amount: int


class PaymentResponseDTO(DTOBase):
    id: int
    reference: str
    item_id: int
    buyer_id: int
    seller_id: int
    amount: int
    status: str
    delivery_address: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, payment: Payment) -> "PaymentResponseDTO":
        return cls(
            id=payment.id,
            reference=payment.reference,
            item_id=payment.item_id,
            buyer_id=payment.buyer_id,
            seller_id=payment.seller_id,
            amount=payment.amount,
            status=payment.status.value,
            delivery_address=payment.delivery_address,
            failure_reason=payment.failure_reason,
            paid_at=payment.paid_at,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class VerifyPaymentResponse(DTOBase):
    payment: PaymentResponseDTO
    order: Optional[OrderResponseDTO] = None
    applied: bool = False
