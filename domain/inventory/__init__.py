"""Inventory domain exports."""
from .entity import Item, ItemStatus
from .repository import ItemRepository
from .service import InventoryLedger

__all__ = ["Item", "ItemStatus", "ItemRepository", "InventoryLedger"]
