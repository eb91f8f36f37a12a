# cash/models/register_event.py

"""
CASH REGISTER EVENTS

Append-only log of register openings and closings.

- OPEN carries the opening float.
- CLOSE carries the amount counted in the drawer.

Sessions are rebuilt by pairing events; rows are never edited.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .register import CashRegister


class CashRegisterEvent(models.Model):
    class Kind(models.TextChoices):
        OPEN = "open", "Open"
        CLOSE = "close", "Close"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    register = models.ForeignKey(CashRegister, on_delete=models.PROTECT, related_name="events")
    kind = models.CharField(max_length=8, choices=Kind.choices)
    amount = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    performed_by = models.ForeignKey(
        "staff.Employee",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cash_register_events",
    )

    occurred_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["occurred_at"]
        indexes = [
            models.Index(fields=["register", "occurred_at"], name="cash_event_register_at_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("CashRegisterEvent records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("CashRegisterEvent records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.register} | {self.kind} | {self.occurred_at:%Y-%m-%d %H:%M}"
