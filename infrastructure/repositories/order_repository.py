"""
订单仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.exceptions import OrderAlreadyExistsException
from domain.order.entity import Delivery, DeliveryConfirmation, Order, OrderStatus
from domain.order.repository import OrderRepository
from infrastructure.models.order import OrderModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    """订单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        delivery = None
        if model.delivered_at is not None and model.delivered_via is not None:
            delivery = Delivery(at=model.delivered_at, via=DeliveryConfirmation(model.delivered_via))
        return Order(
            id=model.id,
            payment_id=model.payment_id,
            item_id=model.item_id,
            buyer_id=model.buyer_id,
            seller_id=model.seller_id,
            amount=model.amount,
            delivery_address=model.delivery_address,
            status=OrderStatus(model.status),
            cancellation_reason=model.cancellation_reason,
            delivery=delivery,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Order) -> OrderModel:
        now = datetime.now(timezone.utc)
        return OrderModel(
            id=entity.id,
            payment_id=entity.payment_id,
            item_id=entity.item_id,
            buyer_id=entity.buyer_id,
            seller_id=entity.seller_id,
            amount=entity.amount,
            delivery_address=entity.delivery_address,
            status=entity.status.value,
            cancellation_reason=entity.cancellation_reason,
            delivered_at=entity.delivery.at if entity.delivery else None,
            delivered_via=entity.delivery.via.value if entity.delivery else None,
            created_at=entity.created_at or now,
            updated_at=entity.updated_at or now,
        )

    async def create(self, order: Order) -> Order:
        try:
            db_order = self._to_model(order)
            self.session.add(db_order)
            await self.session.flush()
            await self.session.refresh(db_order)
        except IntegrityError:
            logger.warning("order_create_conflict", payment_id=order.payment_id)
            raise OrderAlreadyExistsException(order.payment_id)
        logger.info("order_created", order_id=db_order.id, payment_id=db_order.payment_id)
        return self._to_entity(db_order)

    async def get_by_id(self, order_id: int, *, for_update: bool = False) -> Optional[Order]:
        query = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def get_by_payment_id(self, payment_id: int) -> Optional[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.payment_id == payment_id)
            .execution_options(populate_existing=True)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def transition_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new_status: OrderStatus,
        *,
        delivery: Optional[Delivery] = None,
        cancellation_reason: Optional[str] = None,
    ) -> bool:
        stmt = (
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status == expected.value)
            .values(
                status=new_status.value,
                delivered_at=delivery.at if delivery else None,
                delivered_via=delivery.via.value if delivery else None,
                cancellation_reason=cancellation_reason,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        applied = result.rowcount == 1
        logger.info(
            "order_status_transition",
            order_id=order_id,
            expected=expected.value,
            new_status=new_status.value,
            applied=applied,
        )
        return applied

    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 20) -> List[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.buyer_id == buyer_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self._to_entity(o) for o in result.scalars().all()]

    async def count_by_buyer(self, buyer_id: int) -> int:
        result = await self.session.execute(
            select(func.count(OrderModel.id)).where(OrderModel.buyer_id == buyer_id)
        )
        return result.scalar_one()

    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 20) -> List[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.seller_id == seller_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self._to_entity(o) for o in result.scalars().all()]

    async def count_by_seller(self, seller_id: int) -> int:
        result = await self.session.execute(
            select(func.count(OrderModel.id)).where(OrderModel.seller_id == seller_id)
        )
        return result.scalar_one()

    async def list_pending_created_before(self, cutoff: datetime, limit: int = 100) -> List[Order]:
        result = await self.session.execute(
            select(OrderModel)
            .where(
                OrderModel.status == OrderStatus.PENDING_DELIVERY.value,
                OrderModel.created_at < cutoff,
            )
            .order_by(OrderModel.created_at.asc(), OrderModel.id.asc())
            .limit(limit)
        )
        return [self._to_entity(o) for o in result.scalars().all()]
