"""create_settlement_tables

Revision ID: 3c1f8a2d5e71
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1f8a2d5e71'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('seller_id', sa.Integer(), nullable=False, comment='卖家ID'),
        sa.Column('title', sa.String(length=200), nullable=False, comment='商品标题'),
        sa.Column('price', sa.Integer(), nullable=False, comment='价格（最小货币单位）'),
        sa.Column('quantity', sa.Integer(), nullable=False, comment='库存数量'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='商品状态: active/sold/hidden'),
        sa.Column('seller_subaccount', sa.String(length=100), nullable=True, comment='卖家分账子账户代码'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='更新时间'),
        sa.CheckConstraint('quantity >= 0', name='ck_items_quantity_non_negative'),
        sa.PrimaryKeyConstraint('id', name='pk_items'),
    )
    op.create_index('ix_items_id', 'items', ['id'], unique=False)
    op.create_index('ix_items_seller_id', 'items', ['seller_id'], unique=False)
    op.create_index('ix_items_status', 'items', ['status'], unique=False)
    op.create_index('ix_items_seller_status', 'items', ['seller_id', 'status'], unique=False)

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('reference', sa.String(length=100), nullable=False, comment='网关交易 reference'),
        sa.Column('access_code', sa.String(length=100), nullable=True, comment='网关 access code'),
        sa.Column('authorization_url', sa.String(length=500), nullable=True, comment='支付跳转地址'),
        sa.Column('item_id', sa.Integer(), nullable=False, comment='商品ID'),
        sa.Column('buyer_id', sa.Integer(), nullable=False, comment='买家ID'),
        sa.Column('seller_id', sa.Integer(), nullable=False, comment='卖家ID'),
        sa.Column('amount', sa.Integer(), nullable=False, comment='支付金额'),
        sa.Column('delivery_address', sa.String(length=500), nullable=True, comment='收货地址（结算时写入订单）'),
        sa.Column('status', sa.String(length=20), nullable=False, comment='支付状态: pending/success/failed/cancelled'),
        sa.Column('failure_reason', sa.Text(), nullable=True, comment='失败原因'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='更新时间'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True, comment='支付完成时间'),
        sa.Column('metadata', sa.JSON(), nullable=True, comment='扩展元数据'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_payments_item_id_items'),
        sa.PrimaryKeyConstraint('id', name='pk_payments'),
        sa.UniqueConstraint('reference', name='uq_payments_reference'),
    )
    op.create_index('ix_payments_id', 'payments', ['id'], unique=False)
    op.create_index('ix_payments_item_id', 'payments', ['item_id'], unique=False)
    op.create_index('ix_payments_buyer_id', 'payments', ['buyer_id'], unique=False)
    op.create_index('ix_payments_seller_id', 'payments', ['seller_id'], unique=False)
    op.create_index('ix_payments_status_created_at', 'payments', ['status', 'created_at'], unique=False)

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('payment_id', sa.Integer(), nullable=False, comment='支付ID'),
        sa.Column('item_id', sa.Integer(), nullable=False, comment='商品ID'),
        sa.Column('buyer_id', sa.Integer(), nullable=False, comment='买家ID'),
        sa.Column('seller_id', sa.Integer(), nullable=False, comment='卖家ID'),
        sa.Column('amount', sa.Integer(), nullable=False, comment='订单金额（最小货币单位）'),
        sa.Column('delivery_address', sa.String(length=500), nullable=False, comment='收货地址'),
        sa.Column('status', sa.String(length=30), nullable=False, comment='订单状态: pending_delivery/delivered/cancelled'),
        sa.Column('cancellation_reason', sa.Text(), nullable=True, comment='取消原因'),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True, comment='确认收货时间'),
        sa.Column('delivered_via', sa.String(length=20), nullable=True, comment='确认来源: buyer/scheduler'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, comment='更新时间'),
        sa.ForeignKeyConstraint(['payment_id'], ['payments.id'], name='fk_orders_payment_id_payments'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], name='fk_orders_item_id_items'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.UniqueConstraint('payment_id', name='uq_orders_payment_id'),
    )
    op.create_index('ix_orders_id', 'orders', ['id'], unique=False)
    op.create_index('ix_orders_buyer_id', 'orders', ['buyer_id'], unique=False)
    op.create_index('ix_orders_seller_id', 'orders', ['seller_id'], unique=False)
    op.create_index('ix_orders_status_created_at', 'orders', ['status', 'created_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_orders_status_created_at', table_name='orders')
    op.drop_index('ix_orders_seller_id', table_name='orders')
    op.drop_index('ix_orders_buyer_id', table_name='orders')
    op.drop_index('ix_orders_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_payments_status_created_at', table_name='payments')
    op.drop_index('ix_payments_seller_id', table_name='payments')
    op.drop_index('ix_payments_buyer_id', table_name='payments')
    op.drop_index('ix_payments_item_id', table_name='payments')
    op.drop_index('ix_payments_id', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_items_seller_status', table_name='items')
    op.drop_index('ix_items_status', table_name='items')
    op.drop_index('ix_items_seller_id', table_name='items')
    op.drop_index('ix_items_id', table_name='items')
    op.drop_table('items')
