import pytest

from domain.common.exceptions import DomainValidationException, InvalidOrderStateException
from domain.common.timeutils import utcnow
from domain.order.entity import (
    DEFAULT_DELIVERY_ADDRESS,
    Delivery,
    DeliveryConfirmation,
    Order,
    OrderStatus,
)
from domain.payment.entity import Payment, PaymentStatus


def _payment(**overrides) -> Payment:
    data = dict(id=1, reference="ref-1", item_id=2, buyer_id=3, seller_id=4, amount=1000)
    data.update(overrides)
    return Payment(**data)


def _order(**overrides) -> Order:
    data = dict(
        id=1, payment_id=1, item_id=2, buyer_id=3, seller_id=4, amount=1000, delivery_address="Hall 2"
    )
    data.update(overrides)
    return Order(**data)


def test_payment_requires_positive_amount():
    with pytest.raises(DomainValidationException):
        _payment(amount=0)


def test_payment_leaves_pending_only_once():
    payment = _payment()
    payment.mark_succeeded()

    assert payment.status == PaymentStatus.SUCCESS
    assert payment.paid_at is not None
    with pytest.raises(DomainValidationException):
        payment.mark_failed("late failure")


def test_order_from_payment_copies_parties_and_defaults_address():
    order = Order.from_payment(_payment(delivery_address=None))

    assert order.id is None
    assert (order.buyer_id, order.seller_id, order.item_id, order.amount) == (3, 4, 2, 1000)
    assert order.delivery_address == DEFAULT_DELIVERY_ADDRESS
    assert order.status == OrderStatus.PENDING_DELIVERY


def test_delivery_details_exist_only_when_delivered():
    with pytest.raises(DomainValidationException):
        _order(status=OrderStatus.DELIVERED)
    with pytest.raises(DomainValidationException):
        _order(delivery=Delivery(at=utcnow(), via=DeliveryConfirmation.BUYER))


def test_cancellation_reason_only_on_cancelled_orders():
    with pytest.raises(DomainValidationException):
        _order(cancellation_reason="oops")


def test_mark_delivered_records_confirmation():
    order = _order()
    order.mark_delivered(DeliveryConfirmation.SCHEDULER)

    assert order.status == OrderStatus.DELIVERED
    assert order.delivery.via == DeliveryConfirmation.SCHEDULER
    with pytest.raises(InvalidOrderStateException):
        order.cancel("too late")


def test_cancel_needs_reason():
    order = _order()
    with pytest.raises(DomainValidationException):
        order.cancel("")
    assert order.status == OrderStatus.PENDING_DELIVERY
