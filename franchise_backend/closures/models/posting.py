# closures/models/posting.py

"""
POSTING MODEL

Cost entry derived from a closure discrepancy (e.g. waste found at a
monthly stock count), read by P&L reporting.

- Owned by its source closure (PROTECT: a posted closure cannot vanish)
- One posting per (closure, category): re-running the cascade for operator
  follow-up can never double-post
- Immutable
"""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError
from django.db import models

from inventory.models import PLCategory

from .closure import Closure


class Posting(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    source_closure = models.ForeignKey(
        Closure,
        on_delete=models.PROTECT,
        related_name="postings",
    )

    category = models.CharField(max_length=32, choices=PLCategory.choices)
    # waste (4 places) x unit cost (4 places) is stored exactly.
    amount = models.DecimalField(max_digits=28, decimal_places=8)
    period_key = models.CharField(max_length=80)
    note = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["period_key", "category"], name="posting_period_category_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["source_closure", "category"],
                name="uniq_posting_closure_category",
            ),
        ]

    def __str__(self):
        return f"Posting {self.category} {self.amount} ({self.period_key})"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Posting records are immutable once created")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Posting records are immutable and cannot be deleted")
