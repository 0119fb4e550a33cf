"""
支付数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import (
    Column, Integer, String, DateTime, Text, JSON,
    Index, ForeignKey
)
from datetime import datetime, timezone

from .base import Base


class PaymentModel(Base):
    """
    支付数据库模型

    这是数据库表的映射，不包含业务逻辑
    所有业务规则都在 domain.payment.entity.Payment 中
    """
    __tablename__ = "payments"

    # 主键
    id = Column(Integer, primary_key=True, index=True)

    # 网关交易信息
    reference = Column(String(100), unique=True, nullable=False, comment="网关交易 reference")
    access_code = Column(String(100), nullable=True, comment="网关 access code")
    authorization_url = Column(String(500), nullable=True, comment="支付跳转地址")

    # 交易双方与商品
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True, comment="商品ID")
    buyer_id = Column(Integer, nullable=False, index=True, comment="买家ID")
    seller_id = Column(Integer, nullable=False, index=True, comment="卖家ID")

    # 金额（最小货币单位，如 kobo）
    amount = Column(Integer, nullable=False, comment="支付金额")
    delivery_address = Column(String(500), nullable=True, comment="收货地址（结算时写入订单）")

    # 状态
    status = Column(
        String(20),
        nullable=False,
        default="pending",
        comment="支付状态: pending/success/failed/cancelled"
    )
    failure_reason = Column(Text, nullable=True, comment="失败原因")

    # 时间戳
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
    paid_at = Column(DateTime(timezone=True), nullable=True, comment="支付完成时间")

    # 元数据（JSON格式，使用 extra_metadata 避免与 SQLAlchemy 的 metadata 冲突）
    extra_metadata = Column("metadata", JSON, nullable=True, comment="扩展元数据")

    # 索引
    __table_args__ = (
        Index("ix_payments_status_created_at", "status", "created_at"),
    )

    def __repr__(self):
        return (
            f"<PaymentModel(id={self.id}, reference='{self.reference}', "
            f"amount={self.amount}, status='{self.status}')>"
        )
