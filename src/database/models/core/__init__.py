"""
Core database models for Gildhall Economy.

Exports:
- User
- Character
- Item
- InventoryEntry
"""

from src.core.database.base import Base

from .user import User
from .character import Character
from .item import Item
from .inventory import InventoryEntry

__all__ = [
    "Base",
    "User",
    "Character",
    "Item",
    "InventoryEntry",
]
