"""
Application service orchestrating payment settlement.

Both the signed webhook and the buyer's manual verification build a
ResolveCommand and run it through ``execute``; each execution is one
database transaction. Gateway calls never happen while that transaction
is open.
"""
from __future__ import annotations

import json
from typing import Callable, Optional

from application.dtos.orders import OrderResponseDTO
from application.dtos.payments import (
    PaymentResponseDTO,
    VerifyPaymentResponse,
    WebhookEvent,
)
from application.ports.payment_gateway import PaymentGateway
from application.services.domain_events import publish_domain_events
from core.logging_config import get_logger
from domain.common.exceptions import (
    AccessDeniedException,
    DomainValidationException,
    OutOfStockException,
    SignatureInvalidException,
    UnknownReferenceException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.inventory.service import InventoryLedger
from domain.payment.commands import ResolveCommand, ResolveSource, SettlementOutcome
from domain.payment.settlement import SettlementCoordinator, SettlementResult

logger = get_logger(__name__)


# Webhook event type -> settlement outcome
WEBHOOK_EVENTS = {
    "charge.success": SettlementOutcome.SUCCESS,
    "charge.failed": SettlementOutcome.FAILED,
}


def _to_verify_response(result: SettlementResult) -> VerifyPaymentResponse:
    return VerifyPaymentResponse(
        payment=PaymentResponseDTO.from_entity(result.payment),
        order=OrderResponseDTO.from_entity(result.order) if result.order else None,
        applied=result.applied,
    )


class SettlementService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        gateway: Optional[PaymentGateway] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self.gateway = gateway

    async def execute(self, command: ResolveCommand) -> SettlementResult:
        """
        Resolve a payment reference exactly once.

        Raises:
            UnknownReferenceException: no payment carries the reference.
            OutOfStockException: the gateway captured money but stock ran out;
                the payment has already been committed as FAILED.
        """
        async with self._uow_factory() as uow:
            coordinator = SettlementCoordinator(
                uow.payment_repository,
                uow.order_repository,
                InventoryLedger(uow.item_repository),
            )
            result = await coordinator.resolve(command)

        publish_domain_events(coordinator.events)
        logger.info(
            "payment_settlement_resolved",
            reference=command.reference,
            source=command.source.value,
            outcome=command.outcome.value,
            status=result.payment.status.value,
            applied=result.applied,
            order_id=result.order.id if result.order else None,
        )

        if result.refund_required:
            logger.error(
                "payment_settlement_out_of_stock",
                reference=command.reference,
                payment_id=result.payment.id,
                item_id=result.payment.item_id,
                amount=result.payment.amount,
                action="manual_refund_required",
            )
            raise OutOfStockException(result.payment.item_id, reference=command.reference)
        return result

    async def handle_webhook(self, body: bytes, signature: Optional[str]) -> str:
        """
        Process a gateway webhook delivery.

        Returns a short disposition string for logging and the HTTP ack.
        Errors other than the ones handled here propagate so the gateway
        receives a 5xx and retries.
        """
        if self.gateway is None or not self.gateway.verify_signature(body, signature):
            logger.warning("payment_webhook_signature_invalid", has_signature=bool(signature))
            raise SignatureInvalidException(getattr(self.gateway, "provider", "unknown"))

        try:
            event = WebhookEvent.model_validate(self._parse_body(body))
        except ValueError as exc:
            raise DomainValidationException("Malformed webhook payload", field="body") from exc

        outcome = WEBHOOK_EVENTS.get(event.event)
        if outcome is None or not event.reference:
            logger.info("payment_webhook_ignored", event_type=event.event, reference=event.reference)
            return "ignored"

        command = ResolveCommand(reference=event.reference, outcome=outcome, source=ResolveSource.WEBHOOK)
        try:
            result = await self.execute(command)
        except UnknownReferenceException:
            logger.warning("payment_webhook_unknown_reference", reference=event.reference, event_type=event.event)
            return "unknown_reference"
        except OutOfStockException:
            # Already logged with refund details; acknowledge so the gateway stops retrying.
            return "refund_required"
        return "settled" if result.applied else "noop"

    @staticmethod
    def _parse_body(body: bytes) -> dict:
        payload = json.loads(body.decode("utf-8"))
        if not isinstance(payload, dict):
            raise ValueError("webhook body must be a JSON object")
        data = payload.get("data") or {}
        if not isinstance(data, dict):
            raise ValueError("webhook data must be a JSON object")
        return {
            "event": payload.get("event") or "",
            "reference": data.get("reference"),
            "status": data.get("status"),
            "data": data,
        }

    async def verify(self, reference: str, actor_id: int) -> VerifyPaymentResponse:
        """Buyer/seller-triggered verification (fallback when a webhook is late)."""
        async with self._uow_factory(readonly=True) as uow:
            payment = await uow.payment_repository.get_by_reference(reference)
            order = None
            if payment is not None and payment.id is not None:
                order = await uow.order_repository.get_by_payment_id(payment.id)

        if payment is None:
            raise UnknownReferenceException(reference)
        if not payment.involves(actor_id):
            raise AccessDeniedException("You are not a party to this payment")

        if payment.is_final_status():
            return _to_verify_response(SettlementResult(payment=payment, order=order, applied=False))

        if self.gateway is None:
            raise RuntimeError("SettlementService.verify requires a payment gateway")
        verified = await self.gateway.verify(reference)
        result = await self.execute(
            ResolveCommand(reference=reference, outcome=verified.outcome, source=ResolveSource.MANUAL_VERIFY)
        )
        return _to_verify_response(result)
