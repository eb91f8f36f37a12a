"""
======================================================
PATH: closures/migrations/0002_posting_amount_scale.py
======================================================
MIGRATION: WIDEN Posting.amount

Purpose:
- waste quantity (4 places) x ingredient unit cost (4 places) needs 8 places;
  the amount is stored exactly instead of being rounded on save.
"""

from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("closures", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="posting",
            name="amount",
            field=models.DecimalField(decimal_places=8, max_digits=28),
        ),
    ]
