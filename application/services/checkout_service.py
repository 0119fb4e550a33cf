"""
Checkout use-case: turn a buyer's intent into a PENDING payment record.

The gateway call happens before any write; a gateway failure leaves
nothing persisted and the buyer may retry.
"""
from __future__ import annotations

from typing import Callable

from application.dtos.payments import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    InitializeTransaction,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import (
    ItemNotFoundException,
    OutOfStockException,
    SellerNotVerifiedException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.inventory.entity import ItemStatus
from domain.order.entity import DEFAULT_DELIVERY_ADDRESS
from domain.payment.entity import Payment, PaymentStatus


logger = get_logger(__name__)


class CheckoutService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork], gateway: PaymentGateway) -> None:
        self._uow_factory = uow_factory
        self.gateway = gateway

    async def initialize_payment(
        self,
        buyer_id: int,
        buyer_email: str,
        req: InitializePaymentRequest,
    ) -> InitializePaymentResponse:
        async with self._uow_factory(readonly=True) as uow:
            item = await uow.item_repository.get_by_id(req.item_id)

        if item is None:
            raise ItemNotFoundException(req.item_id)
        if item.status == ItemStatus.HIDDEN or not item.in_stock:
            raise OutOfStockException(item.id)
        if not item.seller_verified:
            raise SellerNotVerifiedException(item.seller_id)

        delivery_address = req.delivery_address or DEFAULT_DELIVERY_ADDRESS
        logger.info(
            "payment_initialize_request",
            item_id=item.id,
            buyer_id=buyer_id,
            seller_id=item.seller_id,
            amount=req.amount,
        )
        initialized = await self.gateway.initialize(
            InitializeTransaction(
                email=buyer_email,
                amount=req.amount,
                subaccount=item.seller_subaccount,
                metadata={
                    "item_id": item.id,
                    "seller_id": item.seller_id,
                    "buyer_id": buyer_id,
                    "item_title": item.title,
                    "delivery_address": delivery_address,
                },
            )
        )

        async with self._uow_factory() as uow:
            payment = await uow.payment_repository.create(
                Payment(
                    id=None,
                    reference=initialized.reference,
                    item_id=item.id,
                    buyer_id=buyer_id,
                    seller_id=item.seller_id,
                    amount=req.amount,
                    status=PaymentStatus.PENDING,
                    access_code=initialized.access_code,
                    authorization_url=initialized.authorization_url,
                    delivery_address=delivery_address,
                    metadata={"item_title": item.title, "provider": self.gateway.provider},
                )
            )

        logger.info("payment_initialized", payment_id=payment.id, reference=payment.reference)
        return InitializePaymentResponse(
            payment_url=initialized.authorization_url,
            reference=payment.reference,
            amount=payment.amount,
        )
