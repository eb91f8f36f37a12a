# closures/conf.py

"""
Access to the CLOSURES settings dict with engine defaults.
"""

from __future__ import annotations

from django.conf import settings

DEFAULTS = {
    "DEFAULT_PL_CATEGORY": "materia_prima",
    "STOCK_EXPECTED_KINDS": ["purchase", "sale"],
    "AUTO_CLOSE_LOOKBACK_DAYS": 1,
    "CASH_PAYMENT_METHOD": "efectivo",
    "JOB_TOKEN": "",
}


def get_setting(name: str):
    configured = getattr(settings, "CLOSURES", {}) or {}
    if name in configured:
        return configured[name]
    return DEFAULTS[name]
