import asyncio

import pytest

from application.services.settlement_service import SettlementService
from domain.common.exceptions import OutOfStockException, UnknownReferenceException
from domain.inventory.entity import ItemStatus
from domain.order.entity import DEFAULT_DELIVERY_ADDRESS, OrderStatus
from domain.payment.commands import ResolveCommand, ResolveSource, SettlementOutcome
from domain.payment.entity import OUT_OF_STOCK_REASON, PaymentStatus
from domain.payment.settlement import GATEWAY_FAILED_REASON


def _command(reference, outcome=SettlementOutcome.SUCCESS, source=ResolveSource.WEBHOOK):
    return ResolveCommand(reference=reference, outcome=outcome, source=source)


@pytest.mark.asyncio
async def test_success_creates_order_and_takes_stock(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    payment = await make_payment(item, "ref-ok")

    result = await SettlementService(uow_factory).execute(_command("ref-ok"))

    assert result.applied is True
    assert result.payment.status == PaymentStatus.SUCCESS
    assert result.payment.paid_at is not None
    assert result.order is not None
    assert result.order.payment_id == payment.id
    assert result.order.status == OrderStatus.PENDING_DELIVERY
    assert result.order.delivery_address == "Hall 3, Room 12"

    stored_item = await fetch.item(item.id)
    assert stored_item.quantity == 0
    assert stored_item.status == ItemStatus.SOLD
    stored_payment = await fetch.payment("ref-ok")
    assert stored_payment.status == PaymentStatus.SUCCESS


@pytest.mark.asyncio
async def test_repeated_success_is_a_noop(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=3)
    await make_payment(item, "ref-dup")
    service = SettlementService(uow_factory)

    first = await service.execute(_command("ref-dup"))
    second = await service.execute(_command("ref-dup", source=ResolveSource.MANUAL_VERIFY))

    assert first.applied is True
    assert second.applied is False
    assert second.order is not None and second.order.id == first.order.id
    assert (await fetch.item(item.id)).quantity == 2
    assert len(await fetch.orders_for_buyer()) == 1


@pytest.mark.asyncio
async def test_concurrent_resolutions_settle_once(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-race")
    service = SettlementService(uow_factory)

    results = await asyncio.gather(
        service.execute(_command("ref-race", source=ResolveSource.WEBHOOK)),
        service.execute(_command("ref-race", source=ResolveSource.MANUAL_VERIFY)),
    )

    assert sorted(r.applied for r in results) == [False, True]
    assert all(r.payment.status == PaymentStatus.SUCCESS for r in results)
    assert results[0].order.id == results[1].order.id
    stored_item = await fetch.item(item.id)
    assert stored_item.quantity == 0
    assert stored_item.status == ItemStatus.SOLD
    assert len(await fetch.orders_for_buyer()) == 1


@pytest.mark.asyncio
async def test_out_of_stock_marks_payment_failed_for_refund(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=0, status=ItemStatus.SOLD)
    payment = await make_payment(item, "ref-empty")

    with pytest.raises(OutOfStockException) as exc_info:
        await SettlementService(uow_factory).execute(_command("ref-empty"))

    assert exc_info.value.reference == "ref-empty"
    stored = await fetch.payment("ref-empty")
    assert stored.status == PaymentStatus.FAILED
    assert stored.failure_reason == OUT_OF_STOCK_REASON
    assert stored.paid_at is None
    assert await fetch.order_for_payment(payment.id) is None
    assert (await fetch.item(item.id)).quantity == 0


@pytest.mark.asyncio
async def test_out_of_stock_payment_stays_failed_on_retry(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=0, status=ItemStatus.SOLD)
    await make_payment(item, "ref-empty-2")
    service = SettlementService(uow_factory)

    with pytest.raises(OutOfStockException):
        await service.execute(_command("ref-empty-2"))
    again = await service.execute(_command("ref-empty-2"))

    assert again.applied is False
    assert again.payment.status == PaymentStatus.FAILED
    assert again.order is None


@pytest.mark.asyncio
async def test_last_unit_goes_to_first_settlement(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-first", buyer_id=21)
    await make_payment(item, "ref-second", buyer_id=22)
    service = SettlementService(uow_factory)

    first = await service.execute(_command("ref-first"))
    with pytest.raises(OutOfStockException):
        await service.execute(_command("ref-second"))

    assert first.order is not None
    assert (await fetch.payment("ref-second")).status == PaymentStatus.FAILED
    assert (await fetch.item(item.id)).quantity == 0


@pytest.mark.asyncio
async def test_failed_outcome_leaves_stock_untouched(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=2)
    payment = await make_payment(item, "ref-declined")

    result = await SettlementService(uow_factory).execute(_command("ref-declined", SettlementOutcome.FAILED))

    assert result.applied is True
    assert result.order is None
    stored = await fetch.payment("ref-declined")
    assert stored.status == PaymentStatus.FAILED
    assert stored.failure_reason == GATEWAY_FAILED_REASON
    assert await fetch.order_for_payment(payment.id) is None
    assert (await fetch.item(item.id)).quantity == 2


@pytest.mark.asyncio
async def test_success_after_failure_does_not_resurrect_payment(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=2)
    await make_payment(item, "ref-late")
    service = SettlementService(uow_factory)

    await service.execute(_command("ref-late", SettlementOutcome.FAILED))
    result = await service.execute(_command("ref-late", SettlementOutcome.SUCCESS))

    assert result.applied is False
    assert result.payment.status == PaymentStatus.FAILED
    assert (await fetch.item(item.id)).quantity == 2


@pytest.mark.asyncio
async def test_pending_outcome_changes_nothing(uow_factory, make_item, make_payment, fetch):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-wait")

    result = await SettlementService(uow_factory).execute(_command("ref-wait", SettlementOutcome.PENDING))

    assert result.applied is False
    assert (await fetch.payment("ref-wait")).status == PaymentStatus.PENDING
    assert (await fetch.item(item.id)).quantity == 1


@pytest.mark.asyncio
async def test_unknown_reference_is_rejected(uow_factory):
    with pytest.raises(UnknownReferenceException):
        await SettlementService(uow_factory).execute(_command("ref-missing"))


@pytest.mark.asyncio
async def test_missing_delivery_address_uses_default(uow_factory, make_item, make_payment):
    item = await make_item(quantity=1)
    await make_payment(item, "ref-noaddr", delivery_address=None)

    result = await SettlementService(uow_factory).execute(_command("ref-noaddr"))

    assert result.order.delivery_address == DEFAULT_DELIVERY_ADDRESS
