# closures/api/serializers/close_requests.py

"""
======================================================
PATH: closures/api/serializers/close_requests.py
======================================================
CLOSE REQUEST SERIALIZERS

Validate inputs for manual closes and the stock preview.

Rules:
- scope_id is the branch UUID
- period_key is kept as text; its grammar is checked by the period resolver
  (a bad key is a 422, not a 400)
- each sub-entity may be counted once per request
- counted values are non-negative; null means "not counted"
"""

from decimal import Decimal

from rest_framework import serializers


class SubEntityClosureSerializer(serializers.Serializer):
    sub_entity_id = serializers.UUIDField()
    actual_value = serializers.DecimalField(
        max_digits=20,
        decimal_places=4,
        min_value=Decimal("0"),
        allow_null=True,
        required=False,
    )


class ShiftSalesCloseSerializer(serializers.Serializer):
    scope_id = serializers.UUIDField()
    period_key = serializers.CharField(max_length=80, trim_whitespace=True)


class ManualCloseSerializer(ShiftSalesCloseSerializer):
    sub_entity_closures = SubEntityClosureSerializer(many=True, allow_empty=False)

    def validate_sub_entity_closures(self, value):
        seen = set()
        for row in value:
            key = row["sub_entity_id"]
            if key in seen:
                raise serializers.ValidationError(f"Duplicate sub_entity_id: {key}")
            seen.add(key)
        return value

    def to_counts(self) -> list[dict]:
        return [
            {
                "sub_entity_id": str(row["sub_entity_id"]),
                "actual_value": row.get("actual_value"),
            }
            for row in self.validated_data["sub_entity_closures"]
        ]


class StockPreviewQuerySerializer(ShiftSalesCloseSerializer):
    pass
