# cash/models/register.py

import uuid

from django.db import models

from branches.models import Branch


class CashRegister(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="cash_registers")
    name = models.CharField(max_length=60)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["branch", "name"]
        constraints = [
            models.UniqueConstraint(fields=["branch", "name"], name="uniq_cash_register_name"),
        ]

    def __str__(self):
        return f"{self.branch} | {self.name}"
