# sales/models/order.py

import uuid
from decimal import Decimal

from django.db import models
from django.utils import timezone

from branches.models import Branch


class Order(models.Model):
    """
    A customer order taken at the POS, a delivery app or the web shop.

    sales_channel / payment_method are free strings written by the channel
    integrations and may be missing; reports bucket missing values as
    "unknown".

    cash_register:
      register that collected the money when the order was paid in cash.
    """

    STATUS_PENDING = "pending"
    STATUS_PREPARING = "preparing"
    STATUS_COMPLETED = "completed"
    STATUS_DELIVERED = "delivered"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PREPARING, "Preparing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # Orders that count as sales for a closed period.
    SETTLED_STATUSES = (STATUS_COMPLETED, STATUS_DELIVERED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    branch = models.ForeignKey(Branch, on_delete=models.PROTECT, related_name="orders")

    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING)
    sales_channel = models.CharField(max_length=40, null=True, blank=True)
    payment_method = models.CharField(max_length=40, null=True, blank=True)

    cash_register = models.ForeignKey(
        "cash.CashRegister",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )

    total = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["branch", "status", "created_at"], name="sales_order_branch_status_idx"),
        ]

    def __str__(self):
        return f"Order {self.id} | {self.status} | {self.total}"
