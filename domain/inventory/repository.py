"""
商品仓储接口
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Item


class ItemRepository(ABC):
    """商品仓储抽象接口"""

    @abstractmethod
    async def create(self, item: Item) -> Item:
        """创建商品"""
        pass

    @abstractmethod
    async def get_by_id(self, item_id: int) -> Optional[Item]:
        """根据ID获取商品（总是读取数据库最新值）"""
        pass

    @abstractmethod
    async def decrement_stock(self, item_id: int) -> bool:
        """
        条件扣减库存：quantity > 0 时减一，归零时置为 SOLD。

        Returns:
            是否命中（False 表示商品不存在或已无库存）
        """
        pass

    @abstractmethod
    async def restore_stock(self, item_id: int) -> bool:
        """
        恢复库存：quantity 加一，SOLD 恢复为 ACTIVE。

        Returns:
            是否命中（False 表示商品不存在）
        """
        pass
