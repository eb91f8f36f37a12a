# PATH: closures/services/close_service.py

"""
CLOSE SERVICE (RUN ORCHESTRATOR)

Pipeline per unit of work:
  period resolver -> event sources -> aggregator
  -> carry-forward + reconciler -> closure writer -> posting cascade

Entry points:
- close_stock_period     manual monthly count, one closure per ingredient
- close_cash_registers   manual shift count, one closure per register
- close_shift_sales      one closure per branch shift (no reconciliation)
- preview_stock_period   expected rows for the count screen, writes nothing
- run_shift_autoclose    scheduled job; `now` is passed in by the trigger

Guarantees:
- Every source is read before the first write of a request; a read failure
  (SourceUnavailable) leaves nothing half-closed
- A repeated close returns the existing closure (created=False) and emits
  no postings
- Posting failures are reported on the outcome, never raised
- The scheduled run isolates failures per (branch, period_key)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction

from branches.models import Branch
from cash.models import CashRegister
from closures.conf import get_setting
from closures.models import Closure
from closures.services import aggregator, event_sources
from closures.services.carry_forward import load_opening_balances
from closures.services.closure_writer import ClosurePayload, write_closure
from closures.services.exceptions import (
    ClosureServiceError,
    InvalidPeriodConfig,
    PostingFailed,
    SourceUnavailable,
    UnknownSubEntity,
)
from closures.services.period_resolver import (
    ShiftPeriod,
    canonical_shift_period,
    month_window,
    parse_period_key,
    require_monthly,
    require_shift,
    shift_window,
)
from closures.services.posting_cascade import cascade_postings
from closures.services.reconciler import ReconciliationPolicy, reconcile
from inventory.models import Ingredient
from inventory.services.stock_levels import current_levels, record_count

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
FOURPLACES = Decimal("0.0001")


# ============================================================
# RESULT TYPES
# ============================================================


@dataclass(frozen=True)
class SubEntityCount:
    sub_entity_id: str
    actual_value: Optional[Decimal] = None


@dataclass
class CloseOutcome:
    closure: Closure
    created: bool
    postings: tuple = ()
    posting_error: Optional[PostingFailed] = None

    @property
    def already_closed(self) -> bool:
        return not self.created


@dataclass(frozen=True)
class StockPreviewRow:
    ingredient_id: str
    ingredient_name: str
    unit: str
    opening_balance: Decimal
    purchases: Decimal
    consumption: Decimal
    expected_value: Decimal


@dataclass
class AutoCloseReport:
    created: list = field(default_factory=list)
    already_closed: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.created)


# ============================================================
# HELPERS
# ============================================================


def _get_branch(branch_id) -> Branch:
    try:
        return Branch.objects.get(pk=branch_id, is_active=True)
    except (Branch.DoesNotExist, ValidationError, ValueError) as exc:
        raise InvalidPeriodConfig(f"Unknown or inactive branch: {branch_id}") from exc


def _active_shifts(branch: Branch) -> list:
    return list(branch.shifts.filter(is_active=True))


def _resolve_shift(branch: Branch, period_key):
    period = require_shift(parse_period_key(period_key))
    shifts = _active_shifts(branch)
    period = canonical_shift_period(period, shifts=shifts)
    return period, shift_window(period, shifts=shifts, tz=branch.tzinfo)


def _q(value: Decimal) -> Decimal:
    return value.quantize(FOURPLACES)


def _normalize_counts(counts: Iterable) -> list[SubEntityCount]:
    normalized = []
    for count in counts:
        if isinstance(count, SubEntityCount):
            normalized.append(count)
            continue
        actual = count.get("actual_value")
        normalized.append(
            SubEntityCount(
                sub_entity_id=str(count["sub_entity_id"]),
                actual_value=Decimal(str(actual)) if actual is not None else None,
            )
        )
    return normalized


def _outcome_for(result) -> CloseOutcome:
    outcome = CloseOutcome(closure=result.closure, created=result.created)
    if result.created:
        cascade = cascade_postings(result.closure)
        outcome.postings = cascade.postings
        outcome.posting_error = cascade.error
    return outcome


# ============================================================
# MONTHLY STOCK
# ============================================================


def close_stock_period(*, branch_id, period_key, counts) -> list[CloseOutcome]:
    """
    Close one month for the counted ingredients.

    expected = opening + purchases - consumption
    discrepancy (waste) = max(0, expected - counted)
    """
    branch = _get_branch(branch_id)
    period = require_monthly(parse_period_key(period_key))
    window = month_window(period)
    counts = _normalize_counts(counts)

    try:
        found = Ingredient.objects.in_bulk([c.sub_entity_id for c in counts])
    except ValidationError as exc:
        raise UnknownSubEntity(f"Invalid ingredient id: {exc}") from exc
    ingredients = {str(k): v for k, v in found.items()}
    missing = [c.sub_entity_id for c in counts if c.sub_entity_id not in ingredients]
    if missing:
        raise UnknownSubEntity(f"Unknown ingredient(s): {', '.join(missing)}")

    events = event_sources.fetch_stock_movements(
        branch.id, window, ingredient_ids=list(ingredients)
    )
    by_ingredient: dict[str, list] = {}
    for event in events:
        by_ingredient.setdefault(event.sub_entity_id, []).append(event)

    previous = period.predecessor()
    openings = load_opening_balances(
        branch_id=branch.id,
        previous_key=previous,
        kind=Closure.Kind.STOCK,
    )
    outcomes = []

    for count in counts:
        ingredient = ingredients[count.sub_entity_id]
        movements = by_ingredient.get(count.sub_entity_id, [])
        flows = aggregator.sum_movements(movements)

        opening = openings.get(count.sub_entity_id, ZERO)
        rec = reconcile(
            opening_balance=opening,
            inflows=flows.inflows,
            outflows=flows.outflows,
            actual_value=count.actual_value,
            policy=ReconciliationPolicy.WASTE,
        )

        breakdowns = {
            "ingredient": ingredient.name,
            "unit": ingredient.base_unit,
            "movement_count": flows.count,
            "by_kind": aggregator.buckets_as_dicts(
                aggregator.breakdown(movements, lambda e: e.kind)
            ),
            "previous_period_key": str(previous),
        }
        if rec.surplus > ZERO:
            # Counted above expected: flagged only, never auto-corrected.
            breakdowns["surplus"] = rec.surplus

        with transaction.atomic():
            result = write_closure(
                ClosurePayload(
                    kind=Closure.Kind.STOCK,
                    branch_id=branch.id,
                    sub_entity_id=count.sub_entity_id,
                    period_key=str(period),
                    window=window,
                    reconciliation=rec,
                    breakdowns=breakdowns,
                )
            )
            if result.created and rec.actual_value is not None:
                record_count(
                    branch_id=branch.id,
                    ingredient=ingredient,
                    quantity=rec.actual_value,
                    counted_at=window.end,
                    source_closure=result.closure,
                )
        outcomes.append(_outcome_for(result))

    return outcomes


def preview_stock_period(*, branch_id, period_key) -> list[StockPreviewRow]:
    """
    Expected stock per ingredient for the count screen.

    Rows cover ingredients that moved in the month or were closed the month
    before. With neither, every active ingredient is listed with its last
    counted stock level (zero when never counted) as the expected value.
    """
    branch = _get_branch(branch_id)
    period = require_monthly(parse_period_key(period_key))
    window = month_window(period)

    events = event_sources.fetch_stock_movements(branch.id, window)
    openings = load_opening_balances(
        branch_id=branch.id,
        previous_key=period.predecessor(),
        kind=Closure.Kind.STOCK,
    )
    flows = aggregator.sum_by_sub_entity(events)

    ids = set(flows) | set(openings)
    levels = {}
    if ids:
        ingredients = Ingredient.objects.filter(pk__in=list(ids))
    else:
        ingredients = Ingredient.objects.filter(is_active=True)
        try:
            levels = current_levels(branch_id=branch.id)
        except DatabaseError as exc:
            raise SourceUnavailable(f"stock levels could not be read: {exc}") from exc

    rows = []
    for ingredient in ingredients:
        key = str(ingredient.pk)
        if key in levels:
            # Nothing to compute for the month: the last count is the expectation.
            rows.append(
                StockPreviewRow(
                    ingredient_id=key,
                    ingredient_name=ingredient.name,
                    unit=ingredient.base_unit,
                    opening_balance=ZERO,
                    purchases=ZERO,
                    consumption=ZERO,
                    expected_value=levels[key],
                )
            )
            continue

        totals = flows.get(key, aggregator.FlowTotals())
        opening = openings.get(key, ZERO)
        rec = reconcile(
            opening_balance=opening,
            inflows=totals.inflows,
            outflows=totals.outflows,
            policy=ReconciliationPolicy.NONE,
        )
        rows.append(
            StockPreviewRow(
                ingredient_id=key,
                ingredient_name=ingredient.name,
                unit=ingredient.base_unit,
                opening_balance=opening,
                purchases=totals.inflows,
                consumption=totals.outflows,
                expected_value=rec.expected_value,
            )
        )
    return sorted(rows, key=lambda r: r.ingredient_name)


# ============================================================
# SHIFT CASH COUNT
# ============================================================


def close_cash_registers(*, branch_id, period_key, counts) -> list[CloseOutcome]:
    """
    Close one shift for the counted registers.

    expected = carried float + cash sales collected by the register
    discrepancy = declared - expected (negative = shortage)
    """
    branch = _get_branch(branch_id)
    period, window = _resolve_shift(branch, period_key)
    counts = _normalize_counts(counts)

    try:
        registers = {
            str(r.pk): r
            for r in CashRegister.objects.filter(branch=branch, pk__in=[c.sub_entity_id for c in counts])
        }
    except ValidationError as exc:
        raise UnknownSubEntity(f"Invalid cash register id: {exc}") from exc
    missing = [c.sub_entity_id for c in counts if c.sub_entity_id not in registers]
    if missing:
        raise UnknownSubEntity(f"Unknown cash register(s) for this branch: {', '.join(missing)}")

    cash_method = get_setting("CASH_PAYMENT_METHOD")
    sources = {}
    for count in counts:
        sources[count.sub_entity_id] = (
            event_sources.fetch_cash_orders(
                branch.id, window, register_id=count.sub_entity_id, payment_method=cash_method
            ),
            event_sources.fetch_cash_register_events(
                branch.id, window, register_ids=[count.sub_entity_id]
            ),
        )

    previous = period.predecessor()
    openings = load_opening_balances(
        branch_id=branch.id,
        previous_key=previous,
        kind=Closure.Kind.CASH,
    )
    outcomes = []

    for count in counts:
        orders, register_events = sources[count.sub_entity_id]
        cash_sales = sum((o.amount for o in orders), ZERO)

        opening = openings.get(count.sub_entity_id, ZERO)
        rec = reconcile(
            opening_balance=opening,
            inflows=cash_sales,
            actual_value=count.actual_value,
            policy=ReconciliationPolicy.SIGNED,
        )

        breakdowns = {
            "register_name": registers[count.sub_entity_id].name,
            "shift_name": period.shift_name,
            "payment_method": cash_method,
            "cash_orders": len(orders),
            "sales_by_channel": aggregator.buckets_as_dicts(aggregator.breakdown(orders, "channel")),
            "sessions": aggregator.summarize_cash_registers(register_events, period_end=window.end),
            "previous_period_key": str(previous),
        }

        result = write_closure(
            ClosurePayload(
                kind=Closure.Kind.CASH,
                branch_id=branch.id,
                sub_entity_id=count.sub_entity_id,
                period_key=str(period),
                window=window,
                reconciliation=rec,
                breakdowns=breakdowns,
            )
        )
        outcomes.append(_outcome_for(result))

    return outcomes


# ============================================================
# SHIFT SALES
# ============================================================


def close_shift_sales(*, branch_id, period_key) -> CloseOutcome:
    branch = _get_branch(branch_id)
    period, window = _resolve_shift(branch, period_key)
    return _close_shift_sales(branch, period, window)


def _close_shift_sales(branch: Branch, period: ShiftPeriod, window) -> CloseOutcome:
    orders = event_sources.fetch_orders(branch.id, window)
    cancelled = event_sources.fetch_cancelled_orders(branch.id, window)
    register_events = event_sources.fetch_cash_register_events(branch.id, window)
    attendance = event_sources.fetch_attendance_logs(branch.id, window)

    sales = aggregator.summarize_sales(orders, cancelled)
    staff = aggregator.summarize_staff(attendance, period_end=window.end)

    rec = reconcile(
        opening_balance=ZERO,
        inflows=sales.total,
        policy=ReconciliationPolicy.NONE,
    )

    breakdowns = {
        "shift_name": period.shift_name,
        "totals": {
            "total_sales": sales.total,
            "total_orders": sales.count,
            "average_ticket": _q(sales.average_ticket),
            "cancelled_orders": sales.cancelled_count,
            "cancelled_amount": sales.cancelled_amount,
            "total_staff_hours": staff.total_hours,
        },
        "sales_by_channel": aggregator.buckets_as_dicts(sales.by_channel),
        "sales_by_payment": aggregator.buckets_as_dicts(sales.by_payment),
        "sales_by_product": aggregator.buckets_as_dicts(sales.by_product),
        "cash_registers_summary": aggregator.summarize_cash_registers(
            register_events, period_end=window.end
        ),
        "staff_summary": staff.rows,
    }

    result = write_closure(
        ClosurePayload(
            kind=Closure.Kind.SHIFT_SALES,
            branch_id=branch.id,
            period_key=str(period),
            window=window,
            reconciliation=rec,
            breakdowns=breakdowns,
        )
    )
    return _outcome_for(result)


# ============================================================
# SCHEDULED RUN
# ============================================================


def _due_shift_periods(branch: Branch, *, now: datetime, lookback_days: int):
    local_today = now.astimezone(branch.tzinfo).date()
    shifts = _active_shifts(branch)

    for shift in shifts:
        for offset in range(lookback_days, -1, -1):
            period = ShiftPeriod(local_today - timedelta(days=offset), shift.name)
            window = shift_window(period, shifts=shifts, tz=branch.tzinfo)
            if window.end > now:
                continue
            if window.end <= branch.created_at:
                continue
            yield period, window


def run_shift_autoclose(*, now: datetime, lookback_days: Optional[int] = None) -> AutoCloseReport:
    """
    Close every branch shift that ended within the look-back horizon.

    Closed keys are skipped up front to avoid re-reading sources every tick;
    the closure writer still decides under concurrency. A failing unit is
    logged and left for the next tick; it never stops its siblings.
    """
    if lookback_days is None:
        lookback_days = int(get_setting("AUTO_CLOSE_LOOKBACK_DAYS"))

    report = AutoCloseReport()
    branches = Branch.objects.filter(is_active=True).order_by("name")

    for branch in branches:
        try:
            due = list(_due_shift_periods(branch, now=now, lookback_days=lookback_days))
            closed_keys = set(
                Closure.objects.filter(
                    branch=branch,
                    sub_entity_id=Closure.NO_SUB_ENTITY,
                    period_key__in=[str(p) for p, _ in due],
                ).values_list("period_key", flat=True)
            )
        except (ClosureServiceError, DatabaseError) as exc:
            logger.exception(
                "Auto-close could not plan branch",
                extra={"branch_id": str(branch.id)},
            )
            report.failed.append({"branch_id": str(branch.id), "period_key": None, "error": str(exc)})
            continue

        for period, window in due:
            unit = {"branch_id": str(branch.id), "period_key": str(period)}
            if str(period) in closed_keys:
                report.already_closed.append(unit)
                continue

            try:
                outcome = _close_shift_sales(branch, period, window)
            except (ClosureServiceError, DatabaseError) as exc:
                logger.exception("Auto-close failed", extra=unit)
                report.failed.append({**unit, "error": str(exc)})
                continue

            if outcome.created:
                report.created.append({**unit, "closure_id": str(outcome.closure.id)})
            else:
                report.already_closed.append(unit)

    logger.info(
        "Auto-close run finished",
        extra={
            "now": now.isoformat(),
            "created_count": len(report.created),
            "already_closed_count": len(report.already_closed),
            "failed_count": len(report.failed),
        },
    )
    return report
