# staff/models/attendance.py

"""
ATTENDANCE LOG

Append-only clock-in / clock-out events. Duplicated clock-ins happen (a
second tap on the kiosk); they are kept as-is and resolved when the log is
paired into work sessions.
"""

import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from branches.models import Branch

from .employee import Employee


class AttendanceLog(models.Model):
    class Kind(models.TextChoices):
        CLOCK_IN = "in", "Clock in"
        CLOCK_OUT = "out", "Clock out"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="attendance_logs")
    employee = models.ForeignKey(Employee, on_delete=models.PROTECT, related_name="attendance_logs")
    kind = models.CharField(max_length=4, choices=Kind.choices)

    occurred_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["occurred_at"]
        indexes = [
            models.Index(fields=["branch", "occurred_at"], name="staff_att_branch_at_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("AttendanceLog records are immutable")
        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("AttendanceLog records are immutable and cannot be deleted")

    def __str__(self):
        return f"{self.employee} | {self.kind} | {self.occurred_at:%Y-%m-%d %H:%M}"
