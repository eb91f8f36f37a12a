# closures/services/posting_cascade.py

"""
POSTING CASCADE

Runs after a stock closure was newly created with discrepancy > 0 and
records the waste downstream:

1. a StockMovement(kind=waste) tagged with the closure, dated at the last
   instant of the closed period (the stock ledger reflects the loss, and the
   row is never counted again by a later close)
2. a Posting of discrepancy * unit_cost in the ingredient's P&L category
   (default category when unset)

Best-effort relative to the closure:
- separate transaction; a failure never rolls the closure back
- the failure is logged and returned as PostingFailed for operator follow-up
- re-running for the same closure is safe (get_or_create on both records),
  which is what `retry_postings` relies on
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from django.db import DatabaseError, transaction

from closures.models import Closure, Posting
from closures.services.exceptions import PostingFailed
from inventory.models import Ingredient, StockMovement

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class CascadeResult:
    postings: tuple = ()
    movements: tuple = ()
    error: Optional[PostingFailed] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def needs_cascade(closure: Closure) -> bool:
    return (
        closure.kind == Closure.Kind.STOCK
        and closure.discrepancy is not None
        and closure.discrepancy > ZERO
    )


def _emit(closure: Closure) -> CascadeResult:
    ingredient = Ingredient.objects.get(pk=closure.sub_entity_id)
    waste = Decimal(closure.discrepancy)

    movement = StockMovement.objects.filter(
        source_closure=closure, kind=StockMovement.Kind.WASTE
    ).first()
    if movement is None:
        movement = StockMovement.objects.create(
            branch_id=closure.branch_id,
            ingredient=ingredient,
            kind=StockMovement.Kind.WASTE,
            quantity=waste,
            note=f"Cierre mensual {closure.period_key}",
            source_closure=closure,
            created_at=closure.period_end - timedelta(microseconds=1),
        )

    amount = waste * Decimal(ingredient.unit_cost or ZERO)
    if amount <= ZERO:
        return CascadeResult(movements=(movement,))

    posting, _ = Posting.objects.get_or_create(
        source_closure=closure,
        category=ingredient.cost_category,
        defaults={
            "amount": amount,
            "period_key": closure.period_key,
            "note": f"Cierre stock {closure.period_key}: {ingredient.name}",
        },
    )
    # Report the row as stored, not the in-memory value handed to the insert.
    posting = Posting.objects.get(pk=posting.pk)
    return CascadeResult(postings=(posting,), movements=(movement,))


def cascade_postings(closure: Closure) -> CascadeResult:
    if not needs_cascade(closure):
        return CascadeResult()

    try:
        with transaction.atomic():
            result = _emit(closure)
    except (DatabaseError, ValidationError, ObjectDoesNotExist) as exc:
        logger.exception(
            "Posting cascade failed; closure kept",
            extra={
                "closure_id": str(closure.id),
                "sub_entity_id": closure.sub_entity_id,
                "period_key": closure.period_key,
            },
        )
        return CascadeResult(error=PostingFailed(f"Postings for closure {closure.id} failed: {exc}"))

    logger.info(
        "Postings emitted",
        extra={
            "closure_id": str(closure.id),
            "postings": len(result.postings),
            "movements": len(result.movements),
        },
    )
    return result


def retry_postings(closure: Closure) -> CascadeResult:
    """Operator follow-up for a closure whose cascade previously failed."""
    return cascade_postings(closure)
