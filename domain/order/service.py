"""
订单领域服务 - 订单生命周期状态机
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from domain.common.exceptions import (
    AccessDeniedException,
    InvalidOrderStateException,
    OrderNotFoundException,
)
from domain.inventory.service import InventoryLedger

from .entity import DeliveryConfirmation, Order, OrderStatus
from .events import OrderCancelled, OrderDelivered
from .repository import OrderRepository


class OrderDomainService:
    """
    订单领域服务

    职责：
    1. 校验订单状态（先于权限校验，终态订单对任何人都返回 InvalidOrderState）
    2. 校验操作者身份（买家确认收货；买家或卖家取消）
    3. 以比较并交换的方式落库状态转换，取消时同一事务内恢复库存
    4. 产生领域事件
    """

    def __init__(self, order_repository: OrderRepository, ledger: InventoryLedger):
        self.order_repository = order_repository
        self.ledger = ledger
        self.events: List = []

    async def _load(self, order_id: int) -> Order:
        order = await self.order_repository.get_by_id(order_id, for_update=True)
        if order is None:
            raise OrderNotFoundException(order_id)
        return order

    async def _persist_transition(self, order: Order, action: str) -> None:
        applied = await self.order_repository.transition_status(
            order.id,
            OrderStatus.PENDING_DELIVERY,
            order.status,
            delivery=order.delivery,
            cancellation_reason=order.cancellation_reason,
        )
        if not applied:
            current = await self.order_repository.get_by_id(order.id)
            status = current.status.value if current else "missing"
            raise InvalidOrderStateException(order.id, status, action)

    async def confirm_delivery(self, order_id: int, actor_id: int) -> Order:
        order = await self._load(order_id)
        order.ensure_pending("deliver")
        if actor_id != order.buyer_id:
            raise AccessDeniedException("Only the buyer can confirm delivery")

        order.mark_delivered(DeliveryConfirmation.BUYER)
        await self._persist_transition(order, "deliver")

        self.events.append(OrderDelivered(order_id=order.id, via=DeliveryConfirmation.BUYER.value))
        return order

    async def cancel(self, order_id: int, actor_id: int, reason: str) -> Order:
        order = await self._load(order_id)
        order.ensure_pending("cancel")
        if not order.involves(actor_id):
            raise AccessDeniedException("Only the buyer or seller can cancel this order")

        order.cancel(reason)
        await self._persist_transition(order, "cancel")
        await self.ledger.restore_on_cancel(order.item_id)

        self.events.append(
            OrderCancelled(order_id=order.id, cancelled_by=actor_id, reason=order.cancellation_reason)
        )
        return order

    async def auto_complete(self, order_id: int, cutoff: datetime) -> Optional[Order]:
        """
        超时自动确认收货

        Returns:
            完成的订单；订单已是终态或尚未超时则返回 None
        """
        order = await self._load(order_id)
        if order.is_final_status() or order.created_at is None or order.created_at >= cutoff:
            return None

        order.mark_delivered(DeliveryConfirmation.SCHEDULER)
        applied = await self.order_repository.transition_status(
            order.id,
            OrderStatus.PENDING_DELIVERY,
            OrderStatus.DELIVERED,
            delivery=order.delivery,
        )
        if not applied:
            return None

        self.events.append(OrderDelivered(order_id=order.id, via=DeliveryConfirmation.SCHEDULER.value))
        return order
