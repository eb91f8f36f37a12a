# inventory/services/stock_levels.py

"""
Current stock snapshot writes and reads.

record_count() joins the caller's transaction when there is one, so the
snapshot and the closure that produced it are committed together.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from django.db import transaction

from inventory.models import Ingredient, StockLevel

logger = logging.getLogger(__name__)


def record_count(
    *,
    branch_id,
    ingredient: Ingredient,
    quantity: Decimal,
    counted_at: datetime,
    source_closure=None,
) -> StockLevel:
    with transaction.atomic():
        return _record(branch_id, ingredient, quantity, counted_at, source_closure)


def _record(branch_id, ingredient, quantity, counted_at, source_closure) -> StockLevel:
    level, created = StockLevel.objects.select_for_update().get_or_create(
        branch_id=branch_id,
        ingredient=ingredient,
        defaults={
            "quantity": quantity,
            "unit": ingredient.base_unit,
            "counted_at": counted_at,
            "source_closure": source_closure,
        },
    )
    if created:
        return level

    if level.counted_at is not None and level.counted_at > counted_at:
        logger.info(
            "Stock level kept; a later count exists",
            extra={
                "branch_id": str(branch_id),
                "ingredient_id": str(ingredient.pk),
                "level_counted_at": level.counted_at.isoformat(),
                "counted_at": counted_at.isoformat(),
            },
        )
        return level

    level.quantity = quantity
    level.unit = ingredient.base_unit
    level.counted_at = counted_at
    level.source_closure = source_closure
    level.save(update_fields=["quantity", "unit", "counted_at", "source_closure", "updated_at"])
    return level


def current_levels(*, branch_id) -> dict[str, Decimal]:
    """Snapshot quantity per ingredient id (as str) for one branch."""
    rows = StockLevel.objects.filter(branch_id=branch_id).values_list("ingredient_id", "quantity")
    return {str(ingredient_id): quantity for ingredient_id, quantity in rows}
