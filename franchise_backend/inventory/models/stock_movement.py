# inventory/models/stock_movement.py

"""
STOCK LEDGER

Immutable stock movement per (branch, ingredient).

GUARANTEES:
- Append-only (no updates, no deletes)
- quantity is always positive; direction comes from `kind`
- Movements emitted by a closure carry `source_closure` and are never
  counted again by a later close
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from branches.models import Branch

from .ingredient import Ingredient


class StockMovement(models.Model):
    class Kind(models.TextChoices):
        PURCHASE = "purchase", "Purchase"
        SALE = "sale", "Sale consumption"
        ADJUSTMENT = "adjustment", "Manual adjustment"
        WASTE = "waste", "Waste"
        TRANSFER_IN = "transfer_in", "Transfer in"
        TRANSFER_OUT = "transfer_out", "Transfer out"
        COUNT_ADJUST = "count_adjust", "Count adjustment"
        PRODUCTION = "production", "Production"

    OUTFLOW_KINDS = frozenset({Kind.SALE, Kind.TRANSFER_OUT, Kind.WASTE})

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(
        Branch, on_delete=models.PROTECT, related_name="stock_movements"
    )
    ingredient = models.ForeignKey(
        Ingredient, on_delete=models.PROTECT, related_name="stock_movements"
    )

    kind = models.CharField(max_length=16, choices=Kind.choices)
    quantity = models.DecimalField(max_digits=18, decimal_places=4)
    note = models.CharField(max_length=255, blank=True, default="")

    source_closure = models.ForeignKey(
        "closures.Closure",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="stock_movements",
        help_text="Set when the movement was emitted by a period closure.",
    )

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["branch", "created_at"], name="inv_move_branch_created_idx"),
            models.Index(fields=["branch", "ingredient", "created_at"], name="inv_move_branch_ingr_idx"),
        ]

    @property
    def is_outflow(self) -> bool:
        return self.kind in self.OUTFLOW_KINDS

    def clean(self):
        if self.quantity is None or Decimal(self.quantity) <= 0:
            raise ValidationError({"quantity": "quantity must be greater than zero"})

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("StockMovement records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.ingredient_id} | {self.kind} | {self.quantity}"
