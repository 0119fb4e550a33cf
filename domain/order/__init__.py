"""Order domain exports."""
from .entity import Delivery, DeliveryConfirmation, Order, OrderStatus
from .repository import OrderRepository
from .service import OrderDomainService

__all__ = [
    "Delivery",
    "DeliveryConfirmation",
    "Order",
    "OrderStatus",
    "OrderRepository",
    "OrderDomainService",
]
