# inventory/models/stock_level.py

"""
CURRENT STOCK SNAPSHOT

Last physically counted quantity of one ingredient at one branch.

Unlike StockMovement this row is mutable: a monthly stock close overwrites
it with the counted value. `counted_at` is the end of the counted period;
an older count never replaces a newer one.
"""

import uuid
from decimal import Decimal

from django.db import models

from branches.models import Branch

from .ingredient import Ingredient


class StockLevel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(
        Branch, on_delete=models.PROTECT, related_name="stock_levels"
    )
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="stock_levels"
    )

    quantity = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    unit = models.CharField(max_length=16, default="un")

    counted_at = models.DateTimeField(null=True, blank=True)
    source_closure = models.ForeignKey(
        "closures.Closure",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["branch", "ingredient"],
                name="uniq_stock_level_branch_ingredient",
            ),
        ]

    def __str__(self):
        return f"{self.ingredient_id} @ {self.branch_id}: {self.quantity} {self.unit}"
