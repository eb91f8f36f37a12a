# closures/api/serializers/__init__.py

from closures.api.serializers.close_requests import (
    ManualCloseSerializer,
    ShiftSalesCloseSerializer,
    StockPreviewQuerySerializer,
    SubEntityClosureSerializer,
)
from closures.api.serializers.records import (
    ClosureSerializer,
    PostingSerializer,
    StockPreviewRowSerializer,
)

__all__ = [
    "SubEntityClosureSerializer",
    "ManualCloseSerializer",
    "ShiftSalesCloseSerializer",
    "StockPreviewQuerySerializer",
    "ClosureSerializer",
    "PostingSerializer",
    "StockPreviewRowSerializer",
]
