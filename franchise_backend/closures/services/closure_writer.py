# closures/services/closure_writer.py

"""
CLOSURE WRITER

Insert-if-absent keyed on (branch, sub_entity_id, period_key).

The decision is made by the database unique constraint, not by a prior
SELECT: the insert runs inside a savepoint and an IntegrityError on the key
means somebody else closed first. The existing row is returned unchanged
with created=False (the "already closed" outcome), so schedulers firing
twice and double-submitted forms are safe.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from django.core.serializers.json import DjangoJSONEncoder
from django.db import IntegrityError, transaction

from closures.models import Closure
from closures.services.period_resolver import PeriodWindow
from closures.services.reconciler import Reconciliation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosurePayload:
    kind: str
    branch_id: Any
    period_key: str
    window: PeriodWindow
    reconciliation: Reconciliation
    sub_entity_id: str = Closure.NO_SUB_ENTITY
    breakdowns: dict = field(default_factory=dict)

    @property
    def key(self) -> dict:
        return {
            "branch_id": self.branch_id,
            "sub_entity_id": self.sub_entity_id or Closure.NO_SUB_ENTITY,
            "period_key": self.period_key,
        }


@dataclass(frozen=True)
class WriteResult:
    closure: Closure
    created: bool

    @property
    def already_closed(self) -> bool:
        return not self.created


def _json_safe(data: dict) -> dict:
    # Decimals and datetimes become strings, exactly as they read back from the DB.
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def write_closure(payload: ClosurePayload) -> WriteResult:
    rec = payload.reconciliation
    breakdowns = _json_safe(payload.breakdowns)

    try:
        with transaction.atomic():
            closure = Closure.objects.create(
                kind=payload.kind,
                period_start=payload.window.start,
                period_end=payload.window.end,
                opening_balance=rec.opening_balance,
                inflows=rec.inflows,
                outflows=rec.outflows,
                expected_value=rec.expected_value,
                actual_value=rec.actual_value,
                discrepancy=rec.discrepancy,
                breakdowns=breakdowns,
                **payload.key,
            )
    except IntegrityError:
        existing = Closure.objects.filter(**payload.key).first()
        if existing is None:
            # Not the uniqueness key (e.g. a check constraint): a real failure.
            raise
        logger.info(
            "Closure already exists",
            extra={
                "closure_id": str(existing.id),
                "branch_id": str(payload.branch_id),
                "sub_entity_id": payload.sub_entity_id,
                "period_key": payload.period_key,
            },
        )
        return WriteResult(closure=existing, created=False)

    logger.info(
        "Closure created",
        extra={
            "closure_id": str(closure.id),
            "kind": closure.kind,
            "branch_id": str(payload.branch_id),
            "sub_entity_id": payload.sub_entity_id,
            "period_key": payload.period_key,
        },
    )
    return WriteResult(closure=closure, created=True)
