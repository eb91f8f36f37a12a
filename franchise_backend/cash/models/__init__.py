"""
PATH: cash/models/__init__.py
"""

from .register import CashRegister
from .register_event import CashRegisterEvent

__all__ = [
    "CashRegister",
    "CashRegisterEvent",
]
