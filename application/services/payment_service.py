"""
Payment read-side use-cases (history for buyers and sellers).
"""
from __future__ import annotations

from typing import Callable, List, Tuple

from application.dtos.payments import PaymentResponseDTO
from domain.common.exceptions import AccessDeniedException, PaymentNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork


class PaymentQueryService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def get_payment(self, payment_id: int, actor_id: int) -> PaymentResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            payment = await uow.payment_repository.get_by_id(payment_id)
        if payment is None:
            raise PaymentNotFoundException(payment_id)
        if not payment.involves(actor_id):
            raise AccessDeniedException("You are not a party to this payment")
        return PaymentResponseDTO.from_entity(payment)

    async def list_buyer_payments(self, buyer_id: int, page: int, size: int) -> Tuple[List[PaymentResponseDTO], int]:
        skip = (page - 1) * size
        async with self._uow_factory(readonly=True) as uow:
            payments = await uow.payment_repository.list_by_buyer(buyer_id, skip=skip, limit=size)
            total = await uow.payment_repository.count_by_buyer(buyer_id)
        return [PaymentResponseDTO.from_entity(p) for p in payments], total

    async def list_seller_payments(self, seller_id: int, page: int, size: int) -> Tuple[List[PaymentResponseDTO], int]:
        skip = (page - 1) * size
        async with self._uow_factory(readonly=True) as uow:
            payments = await uow.payment_repository.list_by_seller(seller_id, skip=skip, limit=size)
            total = await uow.payment_repository.count_by_seller(seller_id)
        return [PaymentResponseDTO.from_entity(p) for p in payments], total
