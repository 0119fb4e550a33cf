"""
支付仓储接口 - 定义支付数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List

from .entity import Payment, PaymentStatus


class PaymentRepository(ABC):
    """支付仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """根据ID获取支付"""
        pass

    @abstractmethod
    async def get_by_reference(self, reference: str, *, for_update: bool = False) -> Optional[Payment]:
        """根据网关 reference 获取支付；for_update 时加行锁"""
        pass

    @abstractmethod
    async def transition_status(
        self,
        payment_id: int,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        *,
        paid_at: Optional[datetime] = None,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """
        比较并交换状态（仅当当前状态为 expected 时更新）

        Returns:
            是否由本次调用完成了状态转换
        """
        pass

    @abstractmethod
    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 20) -> List[Payment]:
        """获取买家的支付列表（按创建时间倒序）"""
        pass

    @abstractmethod
    async def count_by_buyer(self, buyer_id: int) -> int:
        pass

    @abstractmethod
    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 20) -> List[Payment]:
        """获取卖家收到的支付列表（按创建时间倒序）"""
        pass

    @abstractmethod
    async def count_by_seller(self, seller_id: int) -> int:
        pass
