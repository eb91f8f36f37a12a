# closures/services/reconciler.py

"""
RECONCILER

expected = opening + inflows - outflows

Discrepancy policies:
- WASTE   stock counts: max(0, expected - actual). A count above expected is
          not auto-corrected; it is returned as `surplus` so it can be
          flagged on the closure.
- SIGNED  cash counts: actual - expected (negative = shortage).
- NONE    sales summaries: never reconciled.

No actual value -> discrepancy is None, whatever the policy.
All arithmetic is Decimal; nothing is rounded here.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

ZERO = Decimal("0")


class ReconciliationPolicy(str, enum.Enum):
    WASTE = "waste"
    SIGNED = "signed"
    NONE = "none"


@dataclass(frozen=True)
class Reconciliation:
    opening_balance: Decimal
    inflows: Decimal
    outflows: Decimal
    expected_value: Decimal
    actual_value: Optional[Decimal] = None
    discrepancy: Optional[Decimal] = None
    surplus: Decimal = ZERO

    @property
    def closing_value(self) -> Decimal:
        """Value carried into the next period."""
        if self.actual_value is not None:
            return self.actual_value
        return self.expected_value


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def expected_value(opening_balance, inflows, outflows) -> Decimal:
    return _dec(opening_balance) + _dec(inflows) - _dec(outflows)


def reconcile(
    *,
    opening_balance,
    inflows,
    outflows=ZERO,
    actual_value=None,
    policy: ReconciliationPolicy,
) -> Reconciliation:
    opening = _dec(opening_balance)
    ins = _dec(inflows)
    outs = _dec(outflows)
    expected = expected_value(opening, ins, outs)

    if policy is ReconciliationPolicy.NONE:
        return Reconciliation(opening, ins, outs, expected)

    if actual_value is None:
        return Reconciliation(opening, ins, outs, expected)

    actual = _dec(actual_value)

    if policy is ReconciliationPolicy.WASTE:
        difference = expected - actual
        return Reconciliation(
            opening,
            ins,
            outs,
            expected,
            actual_value=actual,
            discrepancy=max(ZERO, difference),
            surplus=max(ZERO, -difference),
        )

    return Reconciliation(
        opening,
        ins,
        outs,
        expected,
        actual_value=actual,
        discrepancy=actual - expected,
    )
