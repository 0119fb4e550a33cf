"""
库存账本 - 唯一允许修改商品数量的领域服务
"""
from __future__ import annotations

from domain.common.exceptions import ItemNotFoundException, OutOfStockException

from .entity import Item
from .repository import ItemRepository


class InventoryLedger:
    """
    Inventory changes are single conditional UPDATE statements, so two
    instances settling against the same item cannot lose an update.
    Callers own the surrounding transaction.
    """

    def __init__(self, item_repository: ItemRepository):
        self.item_repository = item_repository

    async def decrement_on_sale(self, item_id: int) -> Item:
        if await self.item_repository.decrement_stock(item_id):
            item = await self.item_repository.get_by_id(item_id)
            if item is None:
                raise ItemNotFoundException(item_id)
            return item

        item = await self.item_repository.get_by_id(item_id)
        if item is None:
            raise ItemNotFoundException(item_id)
        raise OutOfStockException(item_id)

    async def restore_on_cancel(self, item_id: int) -> Item:
        if not await self.item_repository.restore_stock(item_id):
            raise ItemNotFoundException(item_id)
        item = await self.item_repository.get_by_id(item_id)
        if item is None:
            raise ItemNotFoundException(item_id)
        return item
