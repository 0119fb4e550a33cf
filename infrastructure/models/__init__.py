"""Infrastructure models package exports."""
from .base import Base, metadata
from .item import ItemModel
from .payment import PaymentModel
from .order import OrderModel

__all__ = [
    "Base",
    "metadata",
    "ItemModel",
    "PaymentModel",
    "OrderModel",
]
