"""
商品数据库模型 - SQLAlchemy ORM模型
"""
from sqlalchemy import Column, Integer, String, DateTime, Index, CheckConstraint
from datetime import datetime, timezone

from .base import Base


class ItemModel(Base):
    """
    商品数据库模型

    库存数量只通过 InventoryLedger 的条件更新修改
    """
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    seller_id = Column(Integer, nullable=False, index=True, comment="卖家ID")
    title = Column(String(200), nullable=False, comment="商品标题")
    price = Column(Integer, nullable=False, comment="价格（最小货币单位）")
    quantity = Column(Integer, nullable=False, default=1, comment="库存数量")
    status = Column(
        String(20),
        nullable=False,
        default="active",
        index=True,
        comment="商品状态: active/sold/hidden",
    )
    seller_subaccount = Column(String(100), nullable=True, comment="卖家分账子账户代码")

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
        CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        Index("ix_items_seller_status", "seller_id", "status"),
    )

    def __repr__(self):
        return (
            f"<ItemModel(id={self.id}, title='{self.title}', "
            f"quantity={self.quantity}, status='{self.status}')>"
        )
