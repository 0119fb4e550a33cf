"""
订单应用服务 - 编排订单生命周期与超时自动确认
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from application.dtos.orders import AutoCompleteSummary, OrderResponseDTO, OrderStatisticsDTO
from application.services.domain_events import publish_domain_events
from core.logging_config import get_logger
from domain.common.exceptions import AccessDeniedException, OrderNotFoundException
from domain.common.timeutils import ensure_utc, utcnow
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.inventory.service import InventoryLedger
from domain.order.service import OrderDomainService


logger = get_logger(__name__)


class OrderApplicationService:
    """订单应用服务"""

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    def _domain_service(self, uow: AbstractUnitOfWork) -> OrderDomainService:
        return OrderDomainService(uow.order_repository, InventoryLedger(uow.item_repository))

    async def mark_delivered(self, order_id: int, actor_id: int) -> OrderResponseDTO:
        """买家确认收货"""
        async with self._uow_factory() as uow:
            service = self._domain_service(uow)
            order = await service.confirm_delivery(order_id, actor_id)

        publish_domain_events(service.events)
        logger.info("order_delivered", order_id=order.id, buyer_id=actor_id)
        return OrderResponseDTO.from_entity(order)

    async def cancel_order(self, order_id: int, actor_id: int, reason: str) -> OrderResponseDTO:
        """买家或卖家取消订单，同一事务内恢复库存"""
        async with self._uow_factory() as uow:
            service = self._domain_service(uow)
            order = await service.cancel(order_id, actor_id, reason)

        publish_domain_events(service.events)
        logger.info("order_cancelled", order_id=order.id, actor_id=actor_id, item_id=order.item_id)
        return OrderResponseDTO.from_entity(order)

    async def get_order(self, order_id: int, actor_id: int) -> OrderResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            order = await uow.order_repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundException(order_id)
        if not order.involves(actor_id):
            raise AccessDeniedException("You are not a party to this order")
        return OrderResponseDTO.from_entity(order)

    async def list_purchases(self, buyer_id: int, page: int, size: int) -> Tuple[List[OrderResponseDTO], int]:
        skip = (page - 1) * size
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_by_buyer(buyer_id, skip=skip, limit=size)
            total = await uow.order_repository.count_by_buyer(buyer_id)
        return [OrderResponseDTO.from_entity(o) for o in orders], total

    async def list_sales(self, seller_id: int, page: int, size: int) -> Tuple[List[OrderResponseDTO], int]:
        skip = (page - 1) * size
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_by_seller(seller_id, skip=skip, limit=size)
            total = await uow.order_repository.count_by_seller(seller_id)
        return [OrderResponseDTO.from_entity(o) for o in orders], total

    async def statistics(self, user_id: int) -> OrderStatisticsDTO:
        async with self._uow_factory(readonly=True) as uow:
            purchases = await uow.order_repository.count_by_buyer(user_id)
            sales = await uow.order_repository.count_by_seller(user_id)
        return OrderStatisticsDTO(total_purchases=purchases, total_sales=sales)

    async def auto_complete_stale_orders(
        self,
        *,
        older_than: timedelta,
        batch_size: int = 500,
        now: Optional[datetime] = None,
    ) -> AutoCompleteSummary:
        """
        自动确认超时未收货的订单

        每个订单使用独立事务；单个订单失败只记录日志，留给下一次运行。
        """
        cutoff = (ensure_utc(now) or utcnow()) - older_than
        async with self._uow_factory(readonly=True) as uow:
            candidates = await uow.order_repository.list_pending_created_before(cutoff, limit=batch_size)

        summary = AutoCompleteSummary(scanned=len(candidates))
        logger.info("order_auto_complete_started", cutoff=cutoff.isoformat(), candidates=summary.scanned)

        for candidate in candidates:
            try:
                async with self._uow_factory() as uow:
                    service = self._domain_service(uow)
                    order = await service.auto_complete(candidate.id, cutoff)
            except Exception as exc:
                summary.failed += 1
                logger.error(
                    "order_auto_complete_failed",
                    order_id=candidate.id,
                    error=str(exc),
                    exc_info=True,
                )
                continue

            if order is not None:
                summary.completed += 1
                publish_domain_events(service.events)
                logger.info("order_auto_completed", order_id=order.id)

        logger.info(
            "order_auto_complete_finished",
            scanned=summary.scanned,
            completed=summary.completed,
            failed=summary.failed,
        )
        return summary
