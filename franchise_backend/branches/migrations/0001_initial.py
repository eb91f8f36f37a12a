"""
MIGRATION: CREATE Branch + BranchShift
"""

from __future__ import annotations

import uuid

import django.db.models.deletion
from django.db import migrations, models

import branches.models.branch


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Branch",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=120, unique=True)),
                ("timezone", models.CharField(default=branches.models.branch._default_timezone, max_length=64)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name": "Branch",
                "verbose_name_plural": "Branches",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="BranchShift",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=60)),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("is_active", models.BooleanField(default=True)),
                (
                    "branch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="shifts",
                        to="branches.branch",
                    ),
                ),
            ],
            options={
                "ordering": ["branch", "start_time"],
                "constraints": [
                    models.UniqueConstraint(fields=("branch", "name"), name="uniq_branch_shift_name"),
                ],
            },
        ),
    ]
