# closures/services/event_sources.py

"""
EVENT SOURCE ADAPTERS

Read-only queries against the append-only logs, scoped to one branch and
one [start, end) window, each filtered to a fixed whitelist:

- stock movements      kinds in CLOSURES["STOCK_EXPECTED_KINDS"] (purchase, sale),
                       never rows emitted by a closure
- orders               completed | delivered
- cancelled orders     cancelled
- cash orders          completed | delivered, paid in cash, per register
- register events      open | close
- attendance logs      in | out

Every adapter materialises its rows inside the guard so a database error
surfaces here as SourceUnavailable, before the caller writes anything.

Missing related values (no channel, no product snapshot, no employee name)
are returned as explicit None tags; bucketing them is the aggregator's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Mapping, Optional, Sequence

from django.db import DatabaseError

from cash.models import CashRegisterEvent
from closures.conf import get_setting
from closures.services.exceptions import SourceUnavailable
from closures.services.period_resolver import PeriodWindow
from inventory.models import StockMovement
from sales.models import Order
from staff.models import AttendanceLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    id: str
    scope_id: str
    kind: str
    amount: Decimal
    timestamp: datetime
    sub_entity_id: Optional[str] = None
    quantity: Optional[Decimal] = None
    tags: Mapping[str, Optional[str]] = field(default_factory=dict)
    lines: tuple = ()

    def tag(self, name: str) -> Optional[str]:
        return self.tags.get(name)


def _tag(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _read(source: str, scope_id, window: PeriodWindow, fn: Callable[[], list]) -> list:
    try:
        return fn()
    except DatabaseError as exc:
        logger.warning(
            "Event source read failed",
            extra={
                "source": source,
                "scope_id": str(scope_id),
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
            },
        )
        raise SourceUnavailable(f"{source} could not be read: {exc}") from exc


# ============================================================
# STOCK
# ============================================================


def fetch_stock_movements(
    scope_id,
    window: PeriodWindow,
    *,
    kinds: Optional[Sequence[str]] = None,
    ingredient_ids: Optional[Iterable] = None,
) -> list[Event]:
    kinds = list(kinds if kinds is not None else get_setting("STOCK_EXPECTED_KINDS"))

    def query():
        qs = (
            StockMovement.objects.select_related("ingredient")
            .filter(
                branch_id=scope_id,
                created_at__gte=window.start,
                created_at__lt=window.end,
                kind__in=kinds,
                source_closure__isnull=True,
            )
            .order_by("created_at", "id")
        )
        if ingredient_ids is not None:
            qs = qs.filter(ingredient_id__in=list(ingredient_ids))

        return [
            Event(
                id=str(m.id),
                scope_id=str(scope_id),
                sub_entity_id=str(m.ingredient_id),
                kind=m.kind,
                amount=m.quantity,
                timestamp=m.created_at,
                tags={"ingredient": _tag(m.ingredient.name)},
            )
            for m in qs
        ]

    return _read("stock_movements", scope_id, window, query)


# ============================================================
# ORDERS
# ============================================================


def _order_event(scope_id, order: Order) -> Event:
    lines = tuple(
        Event(
            id=str(item.id),
            scope_id=str(scope_id),
            kind="line",
            amount=item.subtotal,
            quantity=Decimal(item.quantity),
            timestamp=order.created_at,
            tags={"product": _tag(item.product_name_snapshot)},
        )
        for item in order.items.all()
    )
    return Event(
        id=str(order.id),
        scope_id=str(scope_id),
        kind=order.status,
        amount=order.total,
        timestamp=order.created_at,
        sub_entity_id=str(order.cash_register_id) if order.cash_register_id else None,
        tags={
            "channel": _tag(order.sales_channel),
            "payment_method": _tag(order.payment_method),
        },
        lines=lines,
    )


def fetch_orders(
    scope_id,
    window: PeriodWindow,
    *,
    statuses: Sequence[str] = Order.SETTLED_STATUSES,
) -> list[Event]:
    def query():
        qs = (
            Order.objects.prefetch_related("items")
            .filter(
                branch_id=scope_id,
                created_at__gte=window.start,
                created_at__lt=window.end,
                status__in=list(statuses),
            )
            .order_by("created_at", "id")
        )
        return [_order_event(scope_id, o) for o in qs]

    return _read("orders", scope_id, window, query)


def fetch_cancelled_orders(scope_id, window: PeriodWindow) -> list[Event]:
    return fetch_orders(scope_id, window, statuses=(Order.STATUS_CANCELLED,))


def fetch_cash_orders(
    scope_id,
    window: PeriodWindow,
    *,
    register_id,
    payment_method: Optional[str] = None,
) -> list[Event]:
    method = payment_method or get_setting("CASH_PAYMENT_METHOD")

    def query():
        qs = (
            Order.objects.prefetch_related("items")
            .filter(
                branch_id=scope_id,
                cash_register_id=register_id,
                payment_method__iexact=method,
                created_at__gte=window.start,
                created_at__lt=window.end,
                status__in=list(Order.SETTLED_STATUSES),
            )
            .order_by("created_at", "id")
        )
        return [_order_event(scope_id, o) for o in qs]

    return _read("cash_orders", scope_id, window, query)


# ============================================================
# CASH REGISTER EVENTS
# ============================================================


def fetch_cash_register_events(
    scope_id,
    window: PeriodWindow,
    *,
    register_ids: Optional[Iterable] = None,
) -> list[Event]:
    def query():
        qs = (
            CashRegisterEvent.objects.select_related("register", "performed_by")
            .filter(
                register__branch_id=scope_id,
                occurred_at__gte=window.start,
                occurred_at__lt=window.end,
            )
            .order_by("occurred_at", "id")
        )
        if register_ids is not None:
            qs = qs.filter(register_id__in=list(register_ids))

        return [
            Event(
                id=str(e.id),
                scope_id=str(scope_id),
                sub_entity_id=str(e.register_id),
                kind=e.kind,
                amount=e.amount,
                timestamp=e.occurred_at,
                tags={
                    "register": _tag(e.register.name),
                    "performed_by": _tag(e.performed_by.full_name) if e.performed_by else None,
                },
            )
            for e in qs
        ]

    return _read("cash_register_events", scope_id, window, query)


# ============================================================
# ATTENDANCE
# ============================================================


def fetch_attendance_logs(scope_id, window: PeriodWindow) -> list[Event]:
    def query():
        qs = (
            AttendanceLog.objects.select_related("employee")
            .filter(
                branch_id=scope_id,
                occurred_at__gte=window.start,
                occurred_at__lt=window.end,
            )
            .order_by("occurred_at", "id")
        )
        return [
            Event(
                id=str(log.id),
                scope_id=str(scope_id),
                sub_entity_id=str(log.employee_id),
                kind=log.kind,
                amount=Decimal("0"),
                timestamp=log.occurred_at,
                tags={"employee": _tag(log.employee.full_name)},
            )
            for log in qs
        ]

    return _read("attendance_logs", scope_id, window, query)
