"""
MIGRATION: CREATE Closure + Posting

The unique constraint on (branch, sub_entity_id, period_key) is what makes
concurrent closes of the same period resolve to a single row.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.core.serializers.json
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("branches", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Closure",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("stock", "Monthly stock count"),
                            ("cash", "Shift cash count"),
                            ("shift_sales", "Shift sales"),
                        ],
                        max_length=16,
                    ),
                ),
                ("sub_entity_id", models.CharField(blank=True, default="", max_length=64)),
                ("period_key", models.CharField(max_length=80)),
                ("period_start", models.DateTimeField()),
                ("period_end", models.DateTimeField()),
                ("opening_balance", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=20)),
                ("inflows", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=20)),
                ("outflows", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=20)),
                ("expected_value", models.DecimalField(decimal_places=4, max_digits=20)),
                ("actual_value", models.DecimalField(blank=True, decimal_places=4, max_digits=20, null=True)),
                ("discrepancy", models.DecimalField(blank=True, decimal_places=4, max_digits=20, null=True)),
                (
                    "breakdowns",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        encoder=django.core.serializers.json.DjangoJSONEncoder,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="closures",
                        to="branches.branch",
                    ),
                ),
            ],
            options={
                "verbose_name": "Closure",
                "verbose_name_plural": "Closures",
                "ordering": ["-period_end", "-created_at"],
                "indexes": [
                    models.Index(fields=["branch", "kind", "period_key"], name="closure_branch_kind_period_idx"),
                    models.Index(fields=["created_at"], name="closure_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("branch", "sub_entity_id", "period_key"),
                        name="uniq_closure_branch_sub_entity_period",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("period_end__gt", models.F("period_start"))),
                        name="chk_closure_period_end_gt_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Posting",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("materia_prima", "Materia prima"),
                            ("descartables", "Descartables"),
                            ("limpieza", "Limpieza"),
                            ("mantenimiento", "Mantenimiento"),
                            ("marketing", "Marketing"),
                            ("varios", "Varios"),
                        ],
                        max_length=32,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=4, max_digits=20)),
                ("period_key", models.CharField(max_length=80)),
                ("note", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "source_closure",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="postings",
                        to="closures.closure",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["period_key", "category"], name="posting_period_category_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("source_closure", "category"),
                        name="uniq_posting_closure_category",
                    ),
                ],
            },
        ),
    ]
