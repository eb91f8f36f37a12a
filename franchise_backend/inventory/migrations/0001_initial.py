"""
MIGRATION: CREATE Ingredient + StockMovement (append-only ledger)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("branches", "0001_initial"),
        ("closures", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Ingredient",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=150, unique=True)),
                ("base_unit", models.CharField(default="un", max_length=16)),
                (
                    "unit_cost",
                    models.DecimalField(
                        decimal_places=4,
                        default=Decimal("0"),
                        max_digits=18,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                    ),
                ),
                (
                    "pl_category",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("materia_prima", "Materia prima"),
                            ("descartables", "Descartables"),
                            ("limpieza", "Limpieza"),
                            ("mantenimiento", "Mantenimiento"),
                            ("marketing", "Marketing"),
                            ("varios", "Varios"),
                        ],
                        help_text="P&L cost category for waste postings. Empty uses the default category.",
                        max_length=32,
                        null=True,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase"),
                            ("sale", "Sale consumption"),
                            ("adjustment", "Manual adjustment"),
                            ("waste", "Waste"),
                            ("transfer_in", "Transfer in"),
                            ("transfer_out", "Transfer out"),
                            ("count_adjust", "Count adjustment"),
                            ("production", "Production"),
                        ],
                        max_length=16,
                    ),
                ),
                ("quantity", models.DecimalField(decimal_places=4, max_digits=18)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="branches.branch",
                    ),
                ),
                (
                    "ingredient",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="inventory.ingredient",
                    ),
                ),
                (
                    "source_closure",
                    models.ForeignKey(
                        blank=True,
                        help_text="Set when the movement was emitted by a period closure.",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="stock_movements",
                        to="closures.closure",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["branch", "created_at"], name="inv_move_branch_created_idx"),
                    models.Index(fields=["branch", "ingredient", "created_at"], name="inv_move_branch_ingr_idx"),
                ],
            },
        ),
    ]
