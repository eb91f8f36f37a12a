"""
PATH: inventory/models/__init__.py

Inventory models export surface.
"""

from .ingredient import Ingredient, PLCategory
from .stock_level import StockLevel
from .stock_movement import StockMovement

__all__ = [
    "Ingredient",
    "PLCategory",
    "StockLevel",
    "StockMovement",
]
