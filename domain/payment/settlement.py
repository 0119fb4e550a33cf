"""
结算协调器 - 把网关结果幂等地应用到支付、库存与订单

同一 reference 可能被 webhook 与手动查询并发、重复触发；
所有串行化都依赖数据库（行锁 + 条件更新 + 唯一索引），不依赖进程内状态。
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from domain.common.exceptions import (
    OrderAlreadyExistsException,
    OutOfStockException,
    UnknownReferenceException,
)
from domain.common.timeutils import utcnow
from domain.inventory.service import InventoryLedger
from domain.order.entity import Order
from domain.order.events import OrderCreated
from domain.order.repository import OrderRepository

from .commands import ResolveCommand, SettlementOutcome
from .entity import OUT_OF_STOCK_REASON, Payment, PaymentStatus
from .events import PaymentFailed, PaymentRequiresRefund, PaymentSucceeded
from .repository import PaymentRepository


GATEWAY_FAILED_REASON = "gateway_reported_failure"


@dataclass
class SettlementResult:
    payment: Payment
    order: Optional[Order]
    applied: bool  # 仅完成状态转换的那一次调用为 True
    refund_required: bool = False


class SettlementCoordinator:
    """
    Applies one gateway outcome to a payment inside the caller's transaction.

    The caller commits; when ``refund_required`` is set the caller must
    surface :class:`OutOfStockException` after the commit so the FAILED
    payment is persisted.
    """

    def __init__(
        self,
        payment_repository: PaymentRepository,
        order_repository: OrderRepository,
        ledger: InventoryLedger,
    ):
        self.payment_repository = payment_repository
        self.order_repository = order_repository
        self.ledger = ledger
        self.events: List = []

    async def resolve(self, command: ResolveCommand) -> SettlementResult:
        payment = await self.payment_repository.get_by_reference(command.reference, for_update=True)
        if payment is None:
            raise UnknownReferenceException(command.reference)

        if payment.is_final_status():
            return await self._existing(payment)

        if command.outcome == SettlementOutcome.SUCCESS:
            return await self._settle_success(payment)
        if command.outcome == SettlementOutcome.FAILED:
            return await self._settle_failure(payment)
        return SettlementResult(payment=payment, order=None, applied=False)

    async def _existing(self, payment: Payment) -> SettlementResult:
        order = None
        if payment.status == PaymentStatus.SUCCESS and payment.id is not None:
            order = await self.order_repository.get_by_payment_id(payment.id)
        return SettlementResult(payment=payment, order=order, applied=False)

    async def _lost_race(self, payment: Payment) -> SettlementResult:
        current = await self.payment_repository.get_by_id(payment.id)
        return await self._existing(current or payment)

    async def _settle_success(self, payment: Payment) -> SettlementResult:
        paid_at = utcnow()
        won = await self.payment_repository.transition_status(
            payment.id, PaymentStatus.PENDING, PaymentStatus.SUCCESS, paid_at=paid_at
        )
        if not won:
            return await self._lost_race(payment)

        try:
            await self.ledger.decrement_on_sale(payment.item_id)
        except OutOfStockException:
            # Captured by the gateway but nothing left to ship: record FAILED for manual refund.
            payment.mark_failed(OUT_OF_STOCK_REASON)
            await self.payment_repository.transition_status(
                payment.id,
                PaymentStatus.SUCCESS,
                PaymentStatus.FAILED,
                failure_reason=OUT_OF_STOCK_REASON,
            )
            self.events.append(
                PaymentRequiresRefund(
                    reference=payment.reference,
                    payment_id=payment.id,
                    item_id=payment.item_id,
                    amount=payment.amount,
                )
            )
            return SettlementResult(payment=payment, order=None, applied=True, refund_required=True)

        payment.mark_succeeded(paid_at)

        if await self.order_repository.get_by_payment_id(payment.id) is not None:
            raise OrderAlreadyExistsException(payment.id)
        order = await self.order_repository.create(Order.from_payment(payment))

        self.events.append(
            PaymentSucceeded(reference=payment.reference, payment_id=payment.id, amount=payment.amount)
        )
        self.events.append(
            OrderCreated(
                order_id=order.id,
                payment_id=payment.id,
                buyer_id=order.buyer_id,
                seller_id=order.seller_id,
            )
        )
        return SettlementResult(payment=payment, order=order, applied=True)

    async def _settle_failure(self, payment: Payment) -> SettlementResult:
        won = await self.payment_repository.transition_status(
            payment.id,
            PaymentStatus.PENDING,
            PaymentStatus.FAILED,
            failure_reason=GATEWAY_FAILED_REASON,
        )
        if not won:
            return await self._lost_race(payment)

        payment.mark_failed(GATEWAY_FAILED_REASON)
        self.events.append(
            PaymentFailed(reference=payment.reference, payment_id=payment.id, reason=GATEWAY_FAILED_REASON)
        )
        return SettlementResult(payment=payment, order=None, applied=True)
