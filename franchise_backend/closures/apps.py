# closures/apps.py

"""
CLOSURES APP CONFIG

Period closure & reconciliation engine:
- Shift sales closures (scheduled)
- Shift cash counts per register (manual)
- Monthly stock counts per ingredient (manual) + waste postings
"""

from django.apps import AppConfig


class ClosuresConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "closures"
    verbose_name = "Period Closures"
