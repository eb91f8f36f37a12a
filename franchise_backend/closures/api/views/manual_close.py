"""
PATH: closures/api/views/manual_close.py

MANUAL CLOSE API

Endpoints:
- POST /api/closures/stock/        monthly stock count (period_key YYYY-MM)
- POST /api/closures/cash/         shift cash count (period_key YYYY-MM-DD/<shift>)
- POST /api/closures/shift-sales/  shift sales summary
- GET  /api/closures/stock/preview/?scope_id=&period_key=

Responses:
- 201  at least one closure was created by this request
- 200  every closure already existed (already_closed: true); the stored
       rows are returned unchanged
- 400  payload validation / unknown sub-entity
- 403  missing permission
- 422  invalid period key or branch shift configuration
- 502  an event source could not be read; nothing was written

Security:
- Authenticated
- closures.add_closure to close, closures.view_closure to preview
"""

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status
from rest_framework.generics import GenericAPIView
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from closures.api.permissions import (
    CLOSE_PERMISSION,
    VIEW_CLOSURE_PERMISSION,
    HasModelPermission,
)
from closures.api.serializers import (
    ClosureSerializer,
    ManualCloseSerializer,
    PostingSerializer,
    ShiftSalesCloseSerializer,
    StockPreviewQuerySerializer,
    StockPreviewRowSerializer,
)
from closures.api.views.errors import service_error_response
from closures.services.close_service import (
    close_cash_registers,
    close_shift_sales,
    close_stock_period,
    preview_stock_period,
)
from closures.services.exceptions import ClosureServiceError


def _outcome_payload(outcome) -> dict:
    data = dict(ClosureSerializer(outcome.closure).data)
    data["created"] = outcome.created
    data["postings"] = PostingSerializer(list(outcome.postings), many=True).data
    data["posting_error"] = str(outcome.posting_error) if outcome.posting_error else None
    return data


def _outcomes_response(outcomes) -> Response:
    any_created = any(o.created for o in outcomes)
    return Response(
        {
            "already_closed": not any_created,
            "closures": [_outcome_payload(o) for o in outcomes],
        },
        status=status.HTTP_201_CREATED if any_created else status.HTTP_200_OK,
    )


class _ManualCloseView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasModelPermission]
    required_permission = CLOSE_PERMISSION
    serializer_class = ManualCloseSerializer

    close_fn = None

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            outcomes = self.close_fn(
                branch_id=data["scope_id"],
                period_key=data["period_key"],
                counts=serializer.to_counts(),
            )
        except ClosureServiceError as exc:
            return service_error_response(exc)

        return _outcomes_response(outcomes)


@extend_schema(
    tags=["closures"],
    request=ManualCloseSerializer,
    responses={201: dict, 200: dict, 400: dict, 403: dict, 422: dict, 502: dict},
)
class StockCloseView(_ManualCloseView):
    """Monthly stock count: one closure per counted ingredient."""

    close_fn = staticmethod(close_stock_period)


@extend_schema(
    tags=["closures"],
    request=ManualCloseSerializer,
    responses={201: dict, 200: dict, 400: dict, 403: dict, 422: dict, 502: dict},
)
class CashCloseView(_ManualCloseView):
    """Shift cash count: one closure per counted register."""

    close_fn = staticmethod(close_cash_registers)


class ShiftSalesCloseView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasModelPermission]
    required_permission = CLOSE_PERMISSION
    serializer_class = ShiftSalesCloseSerializer

    @extend_schema(
        tags=["closures"],
        request=ShiftSalesCloseSerializer,
        responses={201: dict, 200: dict, 400: dict, 403: dict, 422: dict, 502: dict},
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            outcome = close_shift_sales(
                branch_id=data["scope_id"],
                period_key=data["period_key"],
            )
        except ClosureServiceError as exc:
            return service_error_response(exc)

        return _outcomes_response([outcome])


class StockPreviewView(GenericAPIView):
    permission_classes = [IsAuthenticated, HasModelPermission]
    required_permission = VIEW_CLOSURE_PERMISSION
    serializer_class = StockPreviewQuerySerializer

    @extend_schema(
        tags=["closures"],
        parameters=[
            OpenApiParameter(name="scope_id", type=str, required=True, description="Branch UUID."),
            OpenApiParameter(name="period_key", type=str, required=True, description="Month, e.g. 2024-03."),
        ],
        responses={200: StockPreviewRowSerializer(many=True), 400: dict, 403: dict, 422: dict, 502: dict},
    )
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            rows = preview_stock_period(
                branch_id=data["scope_id"],
                period_key=data["period_key"],
            )
        except ClosureServiceError as exc:
            return service_error_response(exc)

        return Response(
            {
                "scope_id": str(data["scope_id"]),
                "period_key": data["period_key"],
                "rows": StockPreviewRowSerializer(rows, many=True).data,
            }
        )
