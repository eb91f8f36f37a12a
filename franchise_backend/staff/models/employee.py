# staff/models/employee.py

import uuid

from django.db import models

from branches.models import Branch


class Employee(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="employees")
    full_name = models.CharField(max_length=150, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["full_name"]

    def __str__(self):
        return self.full_name or str(self.id)
