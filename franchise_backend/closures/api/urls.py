# closures/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from closures.api.views import (
    AutoCloseShiftsView,
    CashCloseView,
    ClosureViewSet,
    PostingViewSet,
    ShiftSalesCloseView,
    StockCloseView,
    StockPreviewView,
)

router = DefaultRouter()
router.register("closures", ClosureViewSet, basename="closure")
router.register("postings", PostingViewSet, basename="posting")

urlpatterns = [
    # Read-only audit endpoints
    path("", include(router.urls)),
    # Manual closes
    path("stock/preview/", StockPreviewView.as_view(), name="closures-stock-preview"),
    path("stock/", StockCloseView.as_view(), name="closures-stock"),
    path("cash/", CashCloseView.as_view(), name="closures-cash"),
    path("shift-sales/", ShiftSalesCloseView.as_view(), name="closures-shift-sales"),
    # Scheduler trigger
    path(
        "jobs/auto-close-shifts/",
        AutoCloseShiftsView.as_view(),
        name="closures-auto-close-shifts",
    ),
]
