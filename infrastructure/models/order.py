"""
订单数据库模型 - SQLAlchemy ORM模型
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Index, ForeignKey
from datetime import datetime, timezone

from .base import Base


class OrderModel(Base):
    """
    订单数据库模型

    收货信息以 delivered_at + delivered_via 成对存储，仅 delivered 状态有值
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # 一笔支付最多一个订单
    payment_id = Column(
        Integer,
        ForeignKey("payments.id"),
        unique=True,
        nullable=False,
        comment="支付ID"
    )

    # 冗余自支付记录
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, comment="商品ID")
    buyer_id = Column(Integer, nullable=False, comment="买家ID")
    seller_id = Column(Integer, nullable=False, comment="卖家ID")
    amount = Column(Integer, nullable=False, comment="订单金额（最小货币单位）")
    delivery_address = Column(String(500), nullable=False, comment="收货地址")

    status = Column(
        String(30),
        nullable=False,
        default="pending_delivery",
        comment="订单状态: pending_delivery/delivered/cancelled"
    )
    cancellation_reason = Column(Text, nullable=True, comment="取消原因")
    delivered_at = Column(DateTime(timezone=True), nullable=True, comment="确认收货时间")
    delivered_via = Column(String(20), nullable=True, comment="确认来源: buyer/scheduler")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    __table_args__ = (
        Index("ix_orders_buyer_id", "buyer_id"),
        Index("ix_orders_seller_id", "seller_id"),
        Index("ix_orders_status_created_at", "status", "created_at"),
    )

    def __repr__(self):
        return (
            f"<OrderModel(id={self.id}, payment_id={self.payment_id}, "
            f"status='{self.status}')>"
        )
