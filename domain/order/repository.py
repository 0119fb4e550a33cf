"""
订单仓储接口
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from .entity import Delivery, Order, OrderStatus


class OrderRepository(ABC):
    """订单仓储抽象接口"""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """创建订单（payment_id 唯一）"""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        """根据ID获取订单；for_update 时加行锁"""
        pass

    @abstractmethod
    async def get_by_payment_id(self, payment_id: int) -> Optional[Order]:
        """根据支付ID获取订单"""
        pass

    @abstractmethod
    async def transition_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new_status: OrderStatus,
        *,
        delivery: Optional[Delivery] = None,
        cancellation_reason: Optional[str] = None,
    ) -> bool:
        """比较并交换订单状态，返回是否由本次调用完成转换"""
        pass

    @abstractmethod
    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 20) -> List[Order]:
        pass

    @abstractmethod
    async def count_by_buyer(self, buyer_id: int) -> int:
        pass

    @abstractmethod
    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 20) -> List[Order]:
        pass

    @abstractmethod
    async def count_by_seller(self, seller_id: int) -> int:
        pass

    @abstractmethod
    async def list_pending_created_before(self, cutoff: datetime, limit: int = 100) -> List[Order]:
        """获取创建时间早于 cutoff 的待收货订单（最早的优先）"""
        pass
