# closures/services/aggregator.py

"""
AGGREGATOR

Folds the events of one window into totals and breakdown buckets.

Rules:
- Single pass per fold, plain Decimal addition (no weighting)
- Missing dimension values land in a default bucket ("unknown", or
  "Desconocido" for products)
- Breakdown lists are sorted by amount descending, ties by key, so the same
  input always renders the same closure
- Stock kinds sale / transfer_out / waste are outflows; every other kind is
  an inflow

Time-paired events (clock in/out, register open/close) are paired per
sub-entity in timestamp order with a stack: a close takes the most recent
unmatched open. At a shared instant, closes end what was already open before
that instant's opens start; a close with nothing earlier open takes an open
from the same instant. Whatever is left is reported, never merged:
- the most recent leftover open is still open when no close came after it;
  its duration runs to the period end
- every other leftover open (superseded by a later open that was closed)
  and every close with no open is an orphan
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from itertools import groupby
from typing import Callable, Iterable, Optional, Sequence, Union

from closures.services.event_sources import Event

UNKNOWN = "unknown"
UNKNOWN_PRODUCT = "Desconocido"
UNKNOWN_EMPLOYEE = "Empleado"
UNKNOWN_REGISTER = "Caja"

OUTFLOW_KINDS = frozenset({"sale", "transfer_out", "waste"})

ZERO = Decimal("0")
FOURPLACES = Decimal("0.0001")
SECONDS_PER_HOUR = Decimal(3600)


def is_outflow(kind: str) -> bool:
    return kind in OUTFLOW_KINDS


# ============================================================
# FLOWS (stock)
# ============================================================


@dataclass(frozen=True)
class FlowTotals:
    inflows: Decimal = ZERO
    outflows: Decimal = ZERO
    count: int = 0

    @property
    def net(self) -> Decimal:
        return self.inflows - self.outflows


def sum_movements(events: Iterable[Event]) -> FlowTotals:
    inflows = ZERO
    outflows = ZERO
    count = 0
    for event in events:
        count += 1
        if is_outflow(event.kind):
            outflows += event.amount
        else:
            inflows += event.amount
    return FlowTotals(inflows=inflows, outflows=outflows, count=count)


def sum_by_sub_entity(events: Iterable[Event]) -> dict[str, FlowTotals]:
    grouped: dict[str, list[Event]] = defaultdict(list)
    for event in events:
        grouped[event.sub_entity_id or ""].append(event)
    return {key: sum_movements(group) for key, group in grouped.items()}


# ============================================================
# BREAKDOWNS
# ============================================================


@dataclass(frozen=True)
class Bucket:
    key: str
    amount: Decimal
    count: int
    quantity: Optional[Decimal] = None

    def as_dict(self) -> dict:
        data = {"key": self.key, "amount": self.amount, "count": self.count}
        if self.quantity is not None:
            data["quantity"] = self.quantity
        return data


Dimension = Union[str, Callable[[Event], Optional[str]]]


def _key_fn(dimension: Dimension) -> Callable[[Event], Optional[str]]:
    if callable(dimension):
        return dimension
    return lambda event: event.tag(dimension)


def _sorted(buckets: Iterable[Bucket]) -> list[Bucket]:
    return sorted(buckets, key=lambda b: (-b.amount, b.key))


def breakdown(events: Iterable[Event], dimension: Dimension, *, default: str = UNKNOWN) -> list[Bucket]:
    key_of = _key_fn(dimension)
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)

    for event in events:
        key = key_of(event)
        if key is None:
            key = default
        amounts[key] += event.amount
        counts[key] += 1

    return _sorted(Bucket(key=k, amount=amounts[k], count=counts[k]) for k in amounts)


def product_breakdown(order_events: Iterable[Event]) -> list[Bucket]:
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    quantities: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)

    for order in order_events:
        for line in order.lines:
            name = line.tag("product") or UNKNOWN_PRODUCT
            amounts[name] += line.amount
            quantities[name] += line.quantity or ZERO
            counts[name] += 1

    return _sorted(
        Bucket(key=k, amount=amounts[k], count=counts[k], quantity=quantities[k])
        for k in amounts
    )


def buckets_as_dicts(buckets: Sequence[Bucket]) -> list[dict]:
    return [b.as_dict() for b in buckets]


# ============================================================
# SALES
# ============================================================


@dataclass(frozen=True)
class SalesSummary:
    total: Decimal
    count: int
    average_ticket: Decimal
    by_channel: list
    by_payment: list
    by_product: list
    cancelled_count: int
    cancelled_amount: Decimal


def summarize_sales(orders: Sequence[Event], cancelled: Sequence[Event] = ()) -> SalesSummary:
    total = sum((o.amount for o in orders), ZERO)
    count = len(orders)
    average = total / count if count else ZERO

    return SalesSummary(
        total=total,
        count=count,
        average_ticket=average,
        by_channel=breakdown(orders, "channel"),
        by_payment=breakdown(orders, "payment_method"),
        by_product=product_breakdown(orders),
        cancelled_count=len(cancelled),
        cancelled_amount=sum((o.amount for o in cancelled), ZERO),
    )


# ============================================================
# PAIRING (attendance, cash register sessions)
# ============================================================

STATUS_CLOSED = "closed"
STATUS_STILL_OPEN = "still_open"
STATUS_ORPHAN_OPEN = "orphan_open"
STATUS_ORPHAN_CLOSE = "orphan_close"


@dataclass(frozen=True)
class Session:
    sub_entity_id: str
    status: str
    opened: Optional[Event] = None
    closed: Optional[Event] = None
    ends_at: Optional[datetime] = None
    duration: timedelta = field(default=timedelta(0))

    @property
    def starts_at(self) -> Optional[datetime]:
        return self.opened.timestamp if self.opened else None

    @property
    def sort_key(self) -> datetime:
        anchor = self.opened or self.closed
        return anchor.timestamp

    @property
    def hours(self) -> Decimal:
        seconds = Decimal(str(self.duration.total_seconds()))
        return (seconds / SECONDS_PER_HOUR).quantize(FOURPLACES)


def _pair_group(
    sub_entity_id: str,
    events: list[Event],
    *,
    open_kind: str,
    close_kind: str,
    period_end: datetime,
) -> list[Session]:
    sessions: list[Session] = []
    # (sequence, event); a leftover open is still running only if no close was
    # processed after it was opened.
    stack: list[tuple[int, Event]] = []
    last_close_seq = -1
    seq = 0

    def close_with(event: Event) -> None:
        nonlocal last_close_seq, seq
        last_close_seq = seq
        seq += 1
        if not stack:
            sessions.append(Session(sub_entity_id=sub_entity_id, status=STATUS_ORPHAN_CLOSE, closed=event))
            return
        _, opened = stack.pop()
        sessions.append(
            Session(
                sub_entity_id=sub_entity_id,
                status=STATUS_CLOSED,
                opened=opened,
                closed=event,
                ends_at=event.timestamp,
                duration=event.timestamp - opened.timestamp,
            )
        )

    ordered = sorted(events, key=lambda e: e.timestamp)
    for _, same_instant in groupby(ordered, key=lambda e: e.timestamp):
        same_instant = list(same_instant)
        opens = [e for e in same_instant if e.kind == open_kind]
        closes = [e for e in same_instant if e.kind == close_kind]

        # Same instant: closes first end what was already open, then the
        # instant's opens start, then any remaining close pairs with them.
        already_open = len(stack)
        for event in closes[:already_open]:
            close_with(event)
        for event in opens:
            stack.append((seq, event))
            seq += 1
        for event in closes[already_open:]:
            close_with(event)

    if stack and stack[-1][0] > last_close_seq:
        _, latest = stack.pop()
        sessions.append(
            Session(
                sub_entity_id=sub_entity_id,
                status=STATUS_STILL_OPEN,
                opened=latest,
                ends_at=period_end,
                duration=max(period_end - latest.timestamp, timedelta(0)),
            )
        )
    for _, superseded in stack:
        sessions.append(
            Session(sub_entity_id=sub_entity_id, status=STATUS_ORPHAN_OPEN, opened=superseded)
        )

    return sessions


def pair_sessions(
    events: Iterable[Event],
    *,
    open_kind: str,
    close_kind: str,
    period_end: datetime,
) -> list[Session]:
    grouped: dict[str, list[Event]] = defaultdict(list)
    for event in events:
        grouped[event.sub_entity_id or ""].append(event)

    sessions: list[Session] = []
    for sub_entity_id, group in grouped.items():
        sessions.extend(
            _pair_group(
                sub_entity_id,
                group,
                open_kind=open_kind,
                close_kind=close_kind,
                period_end=period_end,
            )
        )
    return sorted(sessions, key=lambda s: (s.sort_key, s.sub_entity_id))


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts else None


def _first_tag(session: Session, name: str) -> Optional[str]:
    for event in (session.opened, session.closed):
        if event is not None and event.tag(name):
            return event.tag(name)
    return None


@dataclass(frozen=True)
class StaffSummary:
    total_hours: Decimal
    rows: list


def summarize_staff(attendance: Iterable[Event], *, period_end: datetime) -> StaffSummary:
    sessions = pair_sessions(attendance, open_kind="in", close_kind="out", period_end=period_end)

    rows = []
    total_hours = ZERO
    for session in sessions:
        counted = session.status in (STATUS_CLOSED, STATUS_STILL_OPEN)
        hours = session.hours if counted else ZERO
        total_hours += hours
        rows.append(
            {
                "employee_id": session.sub_entity_id,
                "name": _first_tag(session, "employee") or UNKNOWN_EMPLOYEE,
                "check_in": _iso(session.starts_at),
                "check_out": _iso(session.closed.timestamp if session.closed else None),
                "hours": hours,
                "status": session.status,
            }
        )

    return StaffSummary(total_hours=total_hours, rows=rows)


def summarize_cash_registers(register_events: Iterable[Event], *, period_end: datetime) -> list[dict]:
    sessions = pair_sessions(register_events, open_kind="open", close_kind="close", period_end=period_end)

    return [
        {
            "register_id": session.sub_entity_id,
            "register_name": _first_tag(session, "register") or UNKNOWN_REGISTER,
            "opened_by": session.opened.tag("performed_by") if session.opened else None,
            "opened_at": _iso(session.starts_at),
            "closed_at": _iso(session.closed.timestamp if session.closed else None),
            "initial": session.opened.amount if session.opened else None,
            "declared": session.closed.amount if session.closed else None,
            "status": session.status,
        }
        for session in sessions
    ]
