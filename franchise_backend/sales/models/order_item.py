# sales/models/order_item.py

from decimal import Decimal

from django.db import models

from .order import Order


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")

    # Snapshot taken when the order was placed; may be missing on legacy rows.
    product_name_snapshot = models.CharField(max_length=150, null=True, blank=True)

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    subtotal = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))

    class Meta:
        ordering = ["id"]

    def __str__(self):
        return f"{self.product_name_snapshot or '?'} x{self.quantity}"
