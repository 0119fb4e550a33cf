"""
支付领域实体 - 支付记录（Payment Record）
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.common.timeutils import ensure_utc, utcnow


class PaymentStatus(str, Enum):
    """支付状态枚举（PENDING 为唯一非终态）"""
    PENDING = "pending"      # 待支付
    SUCCESS = "success"      # 支付成功
    FAILED = "failed"        # 支付失败
    CANCELLED = "cancelled"  # 已取消


FINAL_STATUSES = frozenset(
    {PaymentStatus.SUCCESS, PaymentStatus.FAILED, PaymentStatus.CANCELLED}
)

# 结算成功但库存不足时记录的失败原因（需人工退款）
OUT_OF_STOCK_REASON = "out_of_stock"


@dataclass
class Payment:
    """
    支付记录 - 网关交易在本地的镜像

    业务规则：
    1. reference 全局唯一，由网关在初始化时分配
    2. 金额以最小货币单位（kobo）存储，必须大于0
    3. 仅允许 PENDING -> 终态；终态记录不可变
    4. paid_at 仅在 SUCCESS 时设置
    """

    id: Optional[int]
    reference: str
    item_id: int
    buyer_id: int
    seller_id: int
    amount: int
    status: PaymentStatus = PaymentStatus.PENDING
    access_code: Optional[str] = None
    authorization_url: Optional[str] = None
    delivery_address: Optional[str] = None
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(
                f"Payment amount must be positive: {self.amount}",
                field="amount",
            )
        if not self.reference:
            raise DomainValidationException("Payment reference is required", field="reference")
        if not isinstance(self.status, PaymentStatus):
            self.status = PaymentStatus(self.status)
        self.paid_at = ensure_utc(self.paid_at)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)
        if self.metadata is None:
            self.metadata = {}

    def is_final_status(self) -> bool:
        return self.status in FINAL_STATUSES

    def involves(self, user_id: int) -> bool:
        """用户是否为该笔支付的买家或卖家"""
        return user_id in (self.buyer_id, self.seller_id)

    def _ensure_pending(self, target: PaymentStatus) -> None:
        if self.status != PaymentStatus.PENDING:
            raise DomainValidationException(
                f"Cannot move payment from {self.status.value} to {target.value}",
                field="status",
            )

    def mark_succeeded(self, paid_at: Optional[datetime] = None) -> None:
        self._ensure_pending(PaymentStatus.SUCCESS)
        self.status = PaymentStatus.SUCCESS
        self.paid_at = ensure_utc(paid_at) or utcnow()
        self.updated_at = self.paid_at
        self.failure_reason = None

    def mark_failed(self, reason: Optional[str] = None) -> None:
        self._ensure_pending(PaymentStatus.FAILED)
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        self.updated_at = utcnow()
