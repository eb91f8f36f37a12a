# PATH: closures/api/views/records.py

"""
CLOSURE / POSTING READ API (AUDIT SAFE)

- GET /api/closures/closures/   filter: kind, scope_id, sub_entity_id,
                                period_key, period_start_after, period_end_before
- GET /api/closures/postings/   filter: category, period_key, source_closure

Both are strictly read-only; rows are immutable at the model level.

Security:
- closures.view_closure / closures.view_posting
"""

import django_filters
from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.viewsets import ReadOnlyModelViewSet

from closures.api.permissions import (
    VIEW_CLOSURE_PERMISSION,
    VIEW_POSTING_PERMISSION,
    HasModelPermission,
)
from closures.api.serializers import ClosureSerializer, PostingSerializer
from closures.models import Closure, Posting


class ClosureFilter(django_filters.FilterSet):
    scope_id = django_filters.UUIDFilter(field_name="branch_id")
    period_start_after = django_filters.IsoDateTimeFilter(field_name="period_start", lookup_expr="gte")
    period_end_before = django_filters.IsoDateTimeFilter(field_name="period_end", lookup_expr="lte")

    class Meta:
        model = Closure
        fields = ["kind", "scope_id", "sub_entity_id", "period_key"]


class PostingFilter(django_filters.FilterSet):
    class Meta:
        model = Posting
        fields = ["category", "period_key", "source_closure"]


@extend_schema(tags=["closures"])
class ClosureViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasModelPermission]
    required_permission = VIEW_CLOSURE_PERMISSION
    serializer_class = ClosureSerializer
    filterset_class = ClosureFilter
    http_method_names = ["get", "head", "options"]

    queryset = Closure.objects.all().order_by("-period_start", "kind", "sub_entity_id")


@extend_schema(tags=["closures"])
class PostingViewSet(ReadOnlyModelViewSet):
    permission_classes = [IsAuthenticated, HasModelPermission]
    required_permission = VIEW_POSTING_PERMISSION
    serializer_class = PostingSerializer
    filterset_class = PostingFilter
    http_method_names = ["get", "head", "options"]

    queryset = Posting.objects.all().order_by("-created_at")
