# closures/api/views/__init__.py

from closures.api.views.auto_close import AutoCloseShiftsView
from closures.api.views.manual_close import (
    CashCloseView,
    ShiftSalesCloseView,
    StockCloseView,
    StockPreviewView,
)
from closures.api.views.records import ClosureViewSet, PostingViewSet

__all__ = [
    "AutoCloseShiftsView",
    "StockCloseView",
    "CashCloseView",
    "ShiftSalesCloseView",
    "StockPreviewView",
    "ClosureViewSet",
    "PostingViewSet",
]
