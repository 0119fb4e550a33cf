from datetime import timedelta

import pytest

from application.services.order_service import OrderApplicationService
from domain.common.timeutils import utcnow
from domain.order.entity import DeliveryConfirmation, OrderStatus
from domain.order.service import OrderDomainService


BUYER_ID = 20

WINDOW = timedelta(hours=48)


@pytest.mark.asyncio
async def test_only_orders_past_the_window_are_completed(uow_factory, make_item, make_order, fetch):
    now = utcnow()
    item = await make_item(quantity=5)
    stale = await make_order(item, "ref-stale", created_at=now - timedelta(hours=49))
    fresh = await make_order(item, "ref-fresh", created_at=now - timedelta(hours=47))

    summary = await OrderApplicationService(uow_factory).auto_complete_stale_orders(older_than=WINDOW, now=now)

    assert summary.scanned == 1
    assert summary.completed == 1
    assert summary.failed == 0
    completed = await fetch.order(stale.id)
    assert completed.status == OrderStatus.DELIVERED
    assert completed.delivery.via == DeliveryConfirmation.SCHEDULER
    assert (await fetch.order(fresh.id)).status == OrderStatus.PENDING_DELIVERY


@pytest.mark.asyncio
async def test_terminal_orders_are_left_alone(uow_factory, make_item, make_order, fetch):
    now = utcnow()
    item = await make_item(quantity=5)
    cancelled = await make_order(item, "ref-cancelled", created_at=now - timedelta(days=5))
    service = OrderApplicationService(uow_factory)
    await service.cancel_order(cancelled.id, BUYER_ID, "no longer needed")

    summary = await service.auto_complete_stale_orders(older_than=WINDOW, now=now)

    assert summary.scanned == 0
    stored = await fetch.order(cancelled.id)
    assert stored.status == OrderStatus.CANCELLED
    assert stored.delivery is None


@pytest.mark.asyncio
async def test_rerun_is_a_noop(uow_factory, make_item, make_order, fetch):
    now = utcnow()
    item = await make_item(quantity=5)
    order = await make_order(item, "ref-rerun", created_at=now - timedelta(hours=72))
    service = OrderApplicationService(uow_factory)

    first = await service.auto_complete_stale_orders(older_than=WINDOW, now=now)
    delivered_at = (await fetch.order(order.id)).delivery.at
    second = await service.auto_complete_stale_orders(older_than=WINDOW, now=now + timedelta(hours=6))

    assert first.completed == 1
    assert second.scanned == 0 and second.completed == 0
    assert (await fetch.order(order.id)).delivery.at == delivered_at


@pytest.mark.asyncio
async def test_batch_size_limits_a_single_run(uow_factory, make_item, make_order):
    now = utcnow()
    item = await make_item(quantity=5)
    for n in range(3):
        await make_order(item, f"ref-batch-{n}", created_at=now - timedelta(hours=50 + n))
    service = OrderApplicationService(uow_factory)

    first = await service.auto_complete_stale_orders(older_than=WINDOW, batch_size=2, now=now)
    second = await service.auto_complete_stale_orders(older_than=WINDOW, batch_size=2, now=now)

    assert first.completed == 2
    assert second.completed == 1


@pytest.mark.asyncio
async def test_one_failing_order_does_not_stop_the_batch(uow_factory, make_item, make_order, fetch, monkeypatch):
    now = utcnow()
    item = await make_item(quantity=5)
    broken = await make_order(item, "ref-broken", created_at=now - timedelta(hours=60))
    healthy = await make_order(item, "ref-healthy", created_at=now - timedelta(hours=55))
    original = OrderDomainService.auto_complete

    async def flaky_auto_complete(self, order_id, cutoff):
        if order_id == broken.id:
            raise RuntimeError("connection reset")
        return await original(self, order_id, cutoff)

    monkeypatch.setattr(OrderDomainService, "auto_complete", flaky_auto_complete)

    summary = await OrderApplicationService(uow_factory).auto_complete_stale_orders(older_than=WINDOW, now=now)

    assert summary.scanned == 2
    assert summary.completed == 1
    assert summary.failed == 1
    assert (await fetch.order(healthy.id)).status == OrderStatus.DELIVERED
    assert (await fetch.order(broken.id)).status == OrderStatus.PENDING_DELIVERY
