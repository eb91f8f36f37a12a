# closures/models/closure.py

"""
======================================================
PATH: closures/models/closure.py
======================================================
CLOSURE MODEL

One immutable record per (branch, sub_entity_id, period_key).

Kinds:
- stock        monthly count of one ingredient (sub_entity = ingredient id)
- cash         shift count of one cash register (sub_entity = register id)
- shift_sales  sales summary of one branch shift (no sub-entity)

Audit guarantees:
- Immutable once created
- Non-deletable
- Uniqueness is enforced by the database (see Meta.constraints); the
  closure writer relies on it for concurrent closes

sub_entity_id:
  Stored as "" (never NULL) for branch-level closures. SQL unique indexes
  treat NULLs as distinct, which would let two shift_sales closures for the
  same period coexist.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.db.models import F, Q

from branches.models import Branch


class Closure(models.Model):
    class Kind(models.TextChoices):
        STOCK = "stock", "Monthly stock count"
        CASH = "cash", "Shift cash count"
        SHIFT_SALES = "shift_sales", "Shift sales"

    NO_SUB_ENTITY = ""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    kind = models.CharField(max_length=16, choices=Kind.choices)

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="closures")
    sub_entity_id = models.CharField(max_length=64, blank=True, default=NO_SUB_ENTITY)
    period_key = models.CharField(max_length=80)

    period_start = models.DateTimeField()
    period_end = models.DateTimeField()

    opening_balance = models.DecimalField(max_digits=20, decimal_places=4, default=Decimal("0"))
    inflows = models.DecimalField(max_digits=20, decimal_places=4, default=Decimal("0"))
    outflows = models.DecimalField(max_digits=20, decimal_places=4, default=Decimal("0"))
    expected_value = models.DecimalField(max_digits=20, decimal_places=4)
    actual_value = models.DecimalField(max_digits=20, decimal_places=4, null=True, blank=True)
    discrepancy = models.DecimalField(max_digits=20, decimal_places=4, null=True, blank=True)

    breakdowns = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-period_end", "-created_at"]
        indexes = [
            models.Index(fields=["branch", "kind", "period_key"], name="closure_branch_kind_period_idx"),
            models.Index(fields=["created_at"], name="closure_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["branch", "sub_entity_id", "period_key"],
                name="uniq_closure_branch_sub_entity_period",
            ),
            models.CheckConstraint(
                condition=Q(period_end__gt=F("period_start")),
                name="chk_closure_period_end_gt_start",
            ),
        ]
        verbose_name = "Closure"
        verbose_name_plural = "Closures"

    def __str__(self):
        sub = f" [{self.sub_entity_id}]" if self.sub_entity_id else ""
        return f"{self.get_kind_display()} {self.period_key}{sub} ({self.branch_id})"

    @property
    def has_sub_entity(self) -> bool:
        return self.sub_entity_id != self.NO_SUB_ENTITY

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Closure records are immutable once created")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Closure records are immutable and cannot be deleted")
