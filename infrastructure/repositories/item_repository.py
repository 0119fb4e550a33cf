"""
商品仓储实现 - 库存变更使用单条条件 UPDATE
"""
from typing import Optional
from datetime import datetime, timezone

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.inventory.entity import Item, ItemStatus
from domain.inventory.repository import ItemRepository
from infrastructure.models.item import ItemModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyItemRepository(ItemRepository):
    """商品仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: ItemModel) -> Item:
        return Item(
            id=model.id,
            seller_id=model.seller_id,
            title=model.title,
            price=model.price,
            quantity=model.quantity,
            status=ItemStatus(model.status),
            seller_subaccount=model.seller_subaccount,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Item) -> ItemModel:
        return ItemModel(
            id=entity.id,
            seller_id=entity.seller_id,
            title=entity.title,
            price=entity.price,
            quantity=entity.quantity,
            status=entity.status.value,
            seller_subaccount=entity.seller_subaccount,
            created_at=entity.created_at or datetime.now(timezone.utc),
            updated_at=entity.updated_at or datetime.now(timezone.utc),
        )

    async def create(self, item: Item) -> Item:
        db_item = self._to_model(item)
        self.session.add(db_item)
        await self.session.flush()
        await self.session.refresh(db_item)
        logger.info("item_created", item_id=db_item.id, seller_id=db_item.seller_id)
        return self._to_entity(db_item)

    async def get_by_id(self, item_id: int) -> Optional[Item]:
        # 条件 UPDATE 不同步会话，读取时覆盖身份映射中的旧值
        result = await self.session.execute(
            select(ItemModel)
            .where(ItemModel.id == item_id)
            .execution_options(populate_existing=True)
        )
        db_item = result.scalar_one_or_none()
        return self._to_entity(db_item) if db_item else None

    async def decrement_stock(self, item_id: int) -> bool:
        # SET 子句中的列引用取更新前的值
        stmt = (
            update(ItemModel)
            .where(ItemModel.id == item_id, ItemModel.quantity > 0)
            .values(
                quantity=ItemModel.quantity - 1,
                status=case(
                    (ItemModel.quantity == 1, ItemStatus.SOLD.value),
                    else_=ItemModel.status,
                ),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        applied = result.rowcount == 1
        logger.info("inventory_decremented" if applied else "inventory_decrement_rejected", item_id=item_id)
        return applied

    async def restore_stock(self, item_id: int) -> bool:
        stmt = (
            update(ItemModel)
            .where(ItemModel.id == item_id)
            .values(
                quantity=ItemModel.quantity + 1,
                status=case(
                    (ItemModel.status == ItemStatus.SOLD.value, ItemStatus.ACTIVE.value),
                    else_=ItemModel.status,
                ),
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        applied = result.rowcount == 1
        if applied:
            logger.info("inventory_restored", item_id=item_id)
        return applied
