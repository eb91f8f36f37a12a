# closures/services/carry_forward.py

"""
CARRY-FORWARD LOADER

opening(P) = actual(P-1) if it was counted, else expected(P-1).
No closure for P-1 (first close ever) -> 0. That is normal, not an error.

Only the predecessor key passed in is read: never the current period, never
a later one.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import DatabaseError

from closures.models import Closure
from closures.services.exceptions import SourceUnavailable

ZERO = Decimal("0")


def _closing_value(row: dict) -> Decimal:
    if row["actual_value"] is not None:
        return row["actual_value"]
    return row["expected_value"]


def load_opening_balance(*, branch_id, sub_entity_id, previous_key) -> Decimal:
    try:
        row = (
            Closure.objects.filter(
                branch_id=branch_id,
                sub_entity_id=str(sub_entity_id or Closure.NO_SUB_ENTITY),
                period_key=str(previous_key),
            )
            .values("actual_value", "expected_value")
            .first()
        )
    except DatabaseError as exc:
        raise SourceUnavailable(f"previous closure could not be read: {exc}") from exc

    if row is None:
        return ZERO
    return _closing_value(row)


def load_opening_balances(*, branch_id, previous_key, kind: str) -> dict[str, Decimal]:
    """Closing values of every sub-entity closed for `previous_key`."""
    try:
        rows = list(
            Closure.objects.filter(
                branch_id=branch_id,
                kind=kind,
                period_key=str(previous_key),
            ).values("sub_entity_id", "actual_value", "expected_value")
        )
    except DatabaseError as exc:
        raise SourceUnavailable(f"previous closures could not be read: {exc}") from exc

    return {row["sub_entity_id"]: _closing_value(row) for row in rows}
