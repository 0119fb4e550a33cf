"""
库存领域实体 - 商品（Item）
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException
from domain.common.timeutils import ensure_utc


class ItemStatus(str, Enum):
    """商品状态枚举"""
    ACTIVE = "active"  # 在售
    SOLD = "sold"      # 已售罄
    HIDDEN = "hidden"  # 卖家下架


@dataclass
class Item:
    """
    商品实体

    业务规则：
    1. quantity 不能为负数
    2. 库存只能通过 InventoryLedger 变更（数据库层条件更新）
    3. 结算售出导致 quantity 归零时，状态变为 SOLD
    """

    id: Optional[int]
    seller_id: int
    title: str
    price: int  # 最小货币单位（kobo）
    quantity: int
    status: ItemStatus = ItemStatus.ACTIVE
    seller_subaccount: Optional[str] = None  # 卖家分账子账户
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.quantity < 0:
            raise DomainValidationException(
                f"Item quantity cannot be negative: {self.quantity}",
                field="quantity",
            )
        if self.price < 0:
            raise DomainValidationException(
                f"Item price cannot be negative: {self.price}",
                field="price",
            )
        if not isinstance(self.status, ItemStatus):
            self.status = ItemStatus(self.status)
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    @property
    def in_stock(self) -> bool:
        return self.quantity > 0

    @property
    def seller_verified(self) -> bool:
        """卖家是否已完成收款账户验证"""
        return bool(self.seller_subaccount)
