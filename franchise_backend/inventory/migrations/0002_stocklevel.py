"""
======================================================
PATH: inventory/migrations/0002_stocklevel.py
======================================================
MIGRATION: CREATE StockLevel (current stock snapshot)

Purpose:
- Per (branch, ingredient) counted quantity, overwritten by monthly stock
  closes and used by the count screen when a month has nothing to compute.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):
    dependencies = [
        ("branches", "0001_initial"),
        ("closures", "0001_initial"),
        ("inventory", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="StockLevel",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("quantity", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=18)),
                ("unit", models.CharField(default="un", max_length=16)),
                ("counted_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_levels",
                        to="branches.branch",
                    ),
                ),
                (
                    "ingredient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_levels",
                        to="inventory.ingredient",
                    ),
                ),
                (
                    "source_closure",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="closures.closure",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("branch", "ingredient"),
                        name="uniq_stock_level_branch_ingredient",
                    ),
                ],
            },
        ),
    ]
