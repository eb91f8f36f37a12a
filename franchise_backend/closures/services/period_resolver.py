# closures/services/period_resolver.py

"""
PERIOD RESOLVER

Turns a period key into a concrete half-open instant range [start, end).

Period keys:
- "YYYY-MM"                 calendar month (stock closes), UTC boundaries
- "YYYY-MM-DD/<shift name>" named branch shift on a date (sales/cash closes),
                            times-of-day interpreted in the branch timezone

Predecessors (used for carry-forward):
- month  -> previous calendar month
- shift  -> same shift on the previous calendar day

No function here reads the wall clock.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone as dt_timezone, tzinfo
from typing import Iterable, Union

from closures.services.exceptions import InvalidPeriodConfig

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_SHIFT_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})/(.+)$")


@dataclass(frozen=True)
class MonthlyPeriod:
    year: int
    month: int

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def predecessor(self) -> "MonthlyPeriod":
        if self.month == 1:
            return MonthlyPeriod(self.year - 1, 12)
        return MonthlyPeriod(self.year, self.month - 1)


@dataclass(frozen=True)
class ShiftPeriod:
    day: date
    shift_name: str

    def __str__(self) -> str:
        return f"{self.day.isoformat()}/{self.shift_name}"

    def predecessor(self) -> "ShiftPeriod":
        return ShiftPeriod(self.day - timedelta(days=1), self.shift_name)


PeriodKey = Union[MonthlyPeriod, ShiftPeriod]


@dataclass(frozen=True)
class PeriodWindow:
    start: datetime
    end: datetime

    def contains(self, ts: datetime) -> bool:
        return self.start <= ts < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def parse_period_key(value) -> PeriodKey:
    if isinstance(value, (MonthlyPeriod, ShiftPeriod)):
        return value

    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        raise InvalidPeriodConfig("period_key is required")

    match = _MONTH_RE.match(raw)
    if match:
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            raise InvalidPeriodConfig(f"Invalid month in period_key={raw!r}")
        return MonthlyPeriod(year, month)

    match = _SHIFT_RE.match(raw)
    if match:
        try:
            day = date.fromisoformat(match.group(1))
        except ValueError as exc:
            raise InvalidPeriodConfig(f"Invalid date in period_key={raw!r}") from exc
        shift_name = match.group(2).strip()
        if not shift_name:
            raise InvalidPeriodConfig(f"Missing shift name in period_key={raw!r}")
        return ShiftPeriod(day, shift_name)

    raise InvalidPeriodConfig(
        f"Unrecognised period_key={raw!r}. Use YYYY-MM or YYYY-MM-DD/<shift>."
    )


def require_monthly(period: PeriodKey) -> MonthlyPeriod:
    if not isinstance(period, MonthlyPeriod):
        raise InvalidPeriodConfig(f"Stock closes are monthly; got period_key={period}")
    return period


def require_shift(period: PeriodKey) -> ShiftPeriod:
    if not isinstance(period, ShiftPeriod):
        raise InvalidPeriodConfig(f"Expected a shift period (YYYY-MM-DD/<shift>); got {period}")
    return period


def month_window(period: MonthlyPeriod) -> PeriodWindow:
    start = datetime(period.year, period.month, 1, tzinfo=dt_timezone.utc)
    if period.month == 12:
        end = datetime(period.year + 1, 1, 1, tzinfo=dt_timezone.utc)
    else:
        end = datetime(period.year, period.month + 1, 1, tzinfo=dt_timezone.utc)
    return PeriodWindow(start=start, end=end)


def find_shift(shifts: Iterable, shift_name: str):
    """
    Pick the shift definition by name (case-insensitive).

    `shifts` is any iterable of objects exposing name/start_time/end_time
    (BranchShift rows in production).
    """
    wanted = shift_name.strip().casefold()
    for shift in shifts:
        if (shift.name or "").strip().casefold() == wanted:
            return shift
    return None


def canonical_shift_period(period: ShiftPeriod, *, shifts: Iterable) -> ShiftPeriod:
    """Rewrite the shift name as configured so "Noche" and "noche" share one key."""
    shift = find_shift(shifts, period.shift_name)
    if shift is None:
        raise InvalidPeriodConfig(
            f"No active shift named {period.shift_name!r} is configured for this branch"
        )
    return ShiftPeriod(period.day, shift.name)


def shift_window(period: ShiftPeriod, *, shifts: Iterable, tz: tzinfo) -> PeriodWindow:
    shift = find_shift(shifts, period.shift_name)
    if shift is None:
        raise InvalidPeriodConfig(
            f"No active shift named {period.shift_name!r} is configured for this branch"
        )

    start = datetime.combine(period.day, shift.start_time, tzinfo=tz)
    end = datetime.combine(period.day, shift.end_time, tzinfo=tz)

    # Crosses midnight: the shift ends on the next calendar day.
    if shift.end_time <= shift.start_time:
        end = datetime.combine(period.day + timedelta(days=1), shift.end_time, tzinfo=tz)

    return PeriodWindow(start=start, end=end)


def resolve_window(period, *, shifts: Iterable = (), tz: tzinfo = dt_timezone.utc) -> PeriodWindow:
    period = parse_period_key(period)
    if isinstance(period, MonthlyPeriod):
        return month_window(period)
    return shift_window(period, shifts=shifts, tz=tz)
