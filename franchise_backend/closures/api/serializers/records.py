# closures/api/serializers/records.py

"""
======================================================
PATH: closures/api/serializers/records.py
======================================================
CLOSURE / POSTING READ SERIALIZERS

Stored values keep their full precision. Rounding for display happens here
only, in the `display` block:
- stock closures   3 decimal places (quantities)
- cash and sales   2 decimal places (money)
"""

from decimal import ROUND_HALF_UP, Decimal

from rest_framework import serializers

from closures.models import Closure, Posting

MONEY_PLACES = Decimal("0.01")
QUANTITY_PLACES = Decimal("0.001")

DISPLAY_FIELDS = (
    "opening_balance",
    "inflows",
    "outflows",
    "expected_value",
    "actual_value",
    "discrepancy",
)


def _round(value, places: Decimal):
    if value is None:
        return None
    return str(Decimal(value).quantize(places, rounding=ROUND_HALF_UP))


class ClosureSerializer(serializers.ModelSerializer):
    branch_id = serializers.UUIDField(read_only=True)
    display = serializers.SerializerMethodField()

    class Meta:
        model = Closure
        fields = [
            "id",
            "kind",
            "branch_id",
            "sub_entity_id",
            "period_key",
            "period_start",
            "period_end",
            "opening_balance",
            "inflows",
            "outflows",
            "expected_value",
            "actual_value",
            "discrepancy",
            "breakdowns",
            "created_at",
            "display",
        ]
        read_only_fields = fields

    def get_display(self, obj: Closure) -> dict:
        places = QUANTITY_PLACES if obj.kind == Closure.Kind.STOCK else MONEY_PLACES
        return {name: _round(getattr(obj, name), places) for name in DISPLAY_FIELDS}


class PostingSerializer(serializers.ModelSerializer):
    source_closure_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Posting
        fields = [
            "id",
            "source_closure_id",
            "category",
            "amount",
            "period_key",
            "note",
            "created_at",
        ]
        read_only_fields = fields


class StockPreviewRowSerializer(serializers.Serializer):
    ingredient_id = serializers.CharField()
    ingredient_name = serializers.CharField()
    unit = serializers.CharField()
    opening_balance = serializers.DecimalField(max_digits=20, decimal_places=4)
    purchases = serializers.DecimalField(max_digits=20, decimal_places=4)
    consumption = serializers.DecimalField(max_digits=20, decimal_places=4)
    expected_value = serializers.DecimalField(max_digits=20, decimal_places=4)
