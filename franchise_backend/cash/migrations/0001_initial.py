"""
MIGRATION: CREATE CashRegister + CashRegisterEvent (append-only)
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("branches", "0001_initial"),
        ("staff", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CashRegister",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=60)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="cash_registers",
                        to="branches.branch",
                    ),
                ),
            ],
            options={
                "ordering": ["branch", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("branch", "name"), name="uniq_cash_register_name"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CashRegisterEvent",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("kind", models.CharField(choices=[("open", "Open"), ("close", "Close")], max_length=8)),
                ("amount", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=18)),
                ("occurred_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "register",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="events",
                        to="cash.cashregister",
                    ),
                ),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="cash_register_events",
                        to="staff.employee",
                    ),
                ),
            ],
            options={
                "ordering": ["occurred_at"],
                "indexes": [
                    models.Index(fields=["register", "occurred_at"], name="cash_event_register_at_idx"),
                ],
            },
        ),
    ]
