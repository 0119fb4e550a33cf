"""
支付仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError

from domain.common.exceptions import DomainValidationException
from domain.payment.entity import Payment, PaymentStatus
from domain.payment.repository import PaymentRepository
from infrastructure.models.payment import PaymentModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyPaymentRepository(PaymentRepository):
    """支付仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PaymentModel) -> Payment:
        """将数据库模型转换为领域实体"""
        return Payment(
            id=model.id,
            reference=model.reference,
            item_id=model.item_id,
            buyer_id=model.buyer_id,
            seller_id=model.seller_id,
            amount=model.amount,
            status=PaymentStatus(model.status),
            access_code=model.access_code,
            authorization_url=model.authorization_url,
            delivery_address=model.delivery_address,
            failure_reason=model.failure_reason,
            paid_at=model.paid_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            metadata=model.extra_metadata or {},
        )

    def _to_model(self, entity: Payment) -> PaymentModel:
        """将领域实体转换为数据库模型"""
        now = datetime.now(timezone.utc)
        return PaymentModel(
            id=entity.id,
            reference=entity.reference,
            item_id=entity.item_id,
            buyer_id=entity.buyer_id,
            seller_id=entity.seller_id,
            amount=entity.amount,
            status=entity.status.value,
            access_code=entity.access_code,
            authorization_url=entity.authorization_url,
            delivery_address=entity.delivery_address,
            failure_reason=entity.failure_reason,
            paid_at=entity.paid_at,
            created_at=entity.created_at or now,
            updated_at=entity.updated_at or now,
            extra_metadata=entity.metadata,
        )

    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        try:
            db_payment = self._to_model(payment)
            self.session.add(db_payment)
            await self.session.flush()
            await self.session.refresh(db_payment)
        except IntegrityError:
            logger.warning("payment_create_conflict", reference=payment.reference)
            raise DomainValidationException(
                "Payment reference already recorded",
                field="reference",
                details={"reference": payment.reference},
            )
        logger.info(
            "payment_created",
            payment_id=db_payment.id,
            reference=db_payment.reference,
            item_id=db_payment.item_id,
        )
        return self._to_entity(db_payment)

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """根据ID获取支付"""
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.id == payment_id)
            .execution_options(populate_existing=True)
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def get_by_reference(self, reference: str, *, for_update: bool = False) -> Optional[Payment]:
        """根据 reference 获取支付（PostgreSQL 下 for_update 生成 SELECT ... FOR UPDATE）"""
        query = (
            select(PaymentModel)
            .where(PaymentModel.reference == reference)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def transition_status(
        self,
        payment_id: int,
        expected: PaymentStatus,
        new_status: PaymentStatus,
        *,
        paid_at: Optional[datetime] = None,
        failure_reason: Optional[str] = None,
    ) -> bool:
        """比较并交换状态"""
        stmt = (
            update(PaymentModel)
            .where(PaymentModel.id == payment_id, PaymentModel.status == expected.value)
            .values(
                status=new_status.value,
                paid_at=paid_at,
                failure_reason=failure_reason,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        applied = result.rowcount == 1
        logger.info(
            "payment_status_transition",
            payment_id=payment_id,
            expected=expected.value,
            new_status=new_status.value,
            applied=applied,
        )
        return applied

    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 20) -> List[Payment]:
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.buyer_id == buyer_id)
            .order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self._to_entity(p) for p in result.scalars().all()]

    async def count_by_buyer(self, buyer_id: int) -> int:
        result = await self.session.execute(
            select(func.count(PaymentModel.id)).where(PaymentModel.buyer_id == buyer_id)
        )
        return result.scalar_one()

    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 20) -> List[Payment]:
        result = await self.session.execute(
            select(PaymentModel)
            .where(PaymentModel.seller_id == seller_id)
            .order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self._to_entity(p) for p in result.scalars().all()]

    async def count_by_seller(self, seller_id: int) -> int:
        result = await self.session.execute(
            select(func.count(PaymentModel.id)).where(PaymentModel.seller_id == seller_id)
        )
        return result.scalar_one()
