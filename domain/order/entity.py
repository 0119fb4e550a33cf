"""
订单领域实体 - 订单聚合根
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from domain.common.exceptions import DomainValidationException, InvalidOrderStateException
from domain.common.timeutils import ensure_utc, utcnow

if TYPE_CHECKING:
    from domain.payment.entity import Payment


# 未填写收货地址时的默认值
DEFAULT_DELIVERY_ADDRESS = "Campus Location (Not Specified)"


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING_DELIVERY = "pending_delivery"  # 待收货
    DELIVERED = "delivered"                # 已完成
    CANCELLED = "cancelled"                # 已取消


class DeliveryConfirmation(str, Enum):
    """收货确认来源"""
    BUYER = "buyer"          # 买家确认
    SCHEDULER = "scheduler"  # 超时自动确认


@dataclass(frozen=True)
class Delivery:
    """已完成订单的收货记录（仅 DELIVERED 状态存在）"""
    at: datetime
    via: DeliveryConfirmation


@dataclass
class Order:
    """
    订单聚合根

    业务规则：
    1. 只能由成功的支付结算产生，一笔支付最多一个订单
    2. 只允许 PENDING_DELIVERY -> DELIVERED / CANCELLED
    3. delivery 当且仅当 DELIVERED 时存在
    4. cancellation_reason 仅在 CANCELLED 时存在
    """

    id: Optional[int]
    payment_id: int
    item_id: int
    buyer_id: int
    seller_id: int
    amount: int
    delivery_address: str
    status: OrderStatus = OrderStatus.PENDING_DELIVERY
    cancellation_reason: Optional[str] = None
    delivery: Optional[Delivery] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.status, OrderStatus):
            self.status = OrderStatus(self.status)
        if (self.status == OrderStatus.DELIVERED) != (self.delivery is not None):
            raise DomainValidationException(
                "Delivery details must be present exactly when the order is delivered",
                field="delivery",
            )
        if self.cancellation_reason and self.status != OrderStatus.CANCELLED:
            raise DomainValidationException(
                "Only cancelled orders carry a cancellation reason",
                field="cancellation_reason",
            )
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @classmethod
    def from_payment(cls, payment: "Payment") -> "Order":
        """根据成功的支付记录生成订单（冗余买卖双方与商品信息）"""
        now = utcnow()
        return cls(
            id=None,
            payment_id=payment.id,
            item_id=payment.item_id,
            buyer_id=payment.buyer_id,
            seller_id=payment.seller_id,
            amount=payment.amount,
            delivery_address=payment.delivery_address or DEFAULT_DELIVERY_ADDRESS,
            status=OrderStatus.PENDING_DELIVERY,
            created_at=now,
            updated_at=now,
        )

    def is_final_status(self) -> bool:
        return self.status != OrderStatus.PENDING_DELIVERY

    def involves(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def ensure_pending(self, action: str) -> None:
        if self.status != OrderStatus.PENDING_DELIVERY:
            raise InvalidOrderStateException(self.id, self.status.value, action)

    def mark_delivered(self, via: DeliveryConfirmation, at: Optional[datetime] = None) -> None:
        self.ensure_pending("deliver")
        self.delivery = Delivery(at=ensure_utc(at) or utcnow(), via=via)
        self.status = OrderStatus.DELIVERED
        self.updated_at = self.delivery.at

    def cancel(self, reason: str) -> None:
        self.ensure_pending("cancel")
        if not reason or not reason.strip():
            raise DomainValidationException("Cancellation reason is required", field="reason")
        self.status = OrderStatus.CANCELLED
        self.cancellation_reason = reason.strip()
        self.updated_at = utcnow()
