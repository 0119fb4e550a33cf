"""
订单领域事件
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class OrderCreated:
    """结算成功后创建订单"""
    order_id: int
    payment_id: int
    buyer_id: int
    seller_id: int
    event_id: Optional[str] = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderDelivered:
    """订单完成（买家确认或自动确认）"""
    order_id: int
    via: str
    event_id: Optional[str] = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class OrderCancelled:
    """订单取消"""
    order_id: int
    cancelled_by: int
    reason: str
    event_id: Optional[str] = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
