"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

# Mandatory settings must exist before core.config is imported
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PAYSTACK__SECRET_KEY", "sk_test_settlement")

from datetime import datetime
from functools import partial
from typing import Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from domain.common.timeutils import utcnow
from domain.inventory.entity import Item, ItemStatus
from domain.order.entity import Order, OrderStatus
from domain.payment.entity import Payment, PaymentStatus
from infrastructure.database import build_engine
from infrastructure.models import Base
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


SELLER_ID = 10
BUYER_ID = 20
STRANGER_ID = 99


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    # File-backed so concurrent sessions get their own connections
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'settlement.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(bind=db_engine, expire_on_commit=False)


@pytest.fixture
def uow_factory(session_factory):
    return partial(SQLAlchemyUnitOfWork, session_factory)


@pytest.fixture
def make_item(uow_factory):
    async def _make(
        quantity: int = 1,
        *,
        price: int = 500_000,
        status: ItemStatus = ItemStatus.ACTIVE,
        seller_id: int = SELLER_ID,
        seller_subaccount: Optional[str] = "ACCT_seller",
    ) -> Item:
        async with uow_factory() as uow:
            return await uow.item_repository.create(
                Item(
                    id=None,
                    seller_id=seller_id,
                    title="Desk lamp",
                    price=price,
                    quantity=quantity,
                    status=status,
                    seller_subaccount=seller_subaccount,
                )
            )

    return _make


@pytest.fixture
def make_payment(uow_factory):
    async def _make(
        item: Item,
        reference: str = "ref-001",
        *,
        buyer_id: int = BUYER_ID,
        amount: Optional[int] = None,
        delivery_address: Optional[str] = "Hall 3, Room 12",
    ) -> Payment:
        async with uow_factory() as uow:
            return await uow.payment_repository.create(
                Payment(
                    id=None,
                    reference=reference,
                    item_id=item.id,
                    buyer_id=buyer_id,
                    seller_id=item.seller_id,
                    amount=amount or item.price,
                    status=PaymentStatus.PENDING,
                    delivery_address=delivery_address,
                )
            )

    return _make


@pytest.fixture
def make_order(uow_factory, make_payment):
    """Seed a SUCCESS payment with its pending-delivery order (stock already taken)."""

    async def _make(item: Item, reference: str, *, created_at: Optional[datetime] = None) -> Order:
        payment = await make_payment(item, reference)
        created_at = created_at or utcnow()
        async with uow_factory() as uow:
            await uow.payment_repository.transition_status(
                payment.id, PaymentStatus.PENDING, PaymentStatus.SUCCESS, paid_at=created_at
            )
            return await uow.order_repository.create(
                Order(
                    id=None,
                    payment_id=payment.id,
                    item_id=item.id,
                    buyer_id=payment.buyer_id,
                    seller_id=payment.seller_id,
                    amount=payment.amount,
                    delivery_address=payment.delivery_address,
                    status=OrderStatus.PENDING_DELIVERY,
                    created_at=created_at,
                    updated_at=created_at,
                )
            )

    return _make


@pytest.fixture
def fetch(uow_factory):
    """Read current persisted state outside of any service."""

    class _Fetch:
        async def item(self, item_id: int) -> Item:
            async with uow_factory(readonly=True) as uow:
                return await uow.item_repository.get_by_id(item_id)

        async def payment(self, reference: str) -> Payment:
            async with uow_factory(readonly=True) as uow:
                return await uow.payment_repository.get_by_reference(reference)

        async def order(self, order_id: int) -> Order:
            async with uow_factory(readonly=True) as uow:
                return await uow.order_repository.get_by_id(order_id)

        async def order_for_payment(self, payment_id: int) -> Optional[Order]:
            async with uow_factory(readonly=True) as uow:
                return await uow.order_repository.get_by_payment_id(payment_id)

        async def orders_for_buyer(self, buyer_id: int = BUYER_ID):
            async with uow_factory(readonly=True) as uow:
                return await uow.order_repository.list_by_buyer(buyer_id, limit=100)

    return _Fetch()
