# closures/management/commands/retry_closure_postings.py

"""
Operator follow-up for stock closures whose posting cascade failed.

A stock closure with discrepancy > 0 should have a waste movement and (when
the ingredient has a cost) a posting. This command finds closures missing
them and re-runs the cascade, which is idempotent.

    python manage.py retry_closure_postings --period 2024-03
    python manage.py retry_closure_postings --closure <uuid>
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db.models import Exists, OuterRef

from closures.models import Closure
from closures.services.posting_cascade import retry_postings
from inventory.models import StockMovement


def pending_closures(*, period_key: str | None = None, closure_id: str | None = None):
    qs = Closure.objects.filter(kind=Closure.Kind.STOCK, discrepancy__gt=0)
    if closure_id:
        return qs.filter(pk=closure_id)
    if period_key:
        qs = qs.filter(period_key=period_key)
    waste = StockMovement.objects.filter(source_closure=OuterRef("pk"))
    return qs.exclude(Exists(waste)).order_by("period_start", "sub_entity_id")


class Command(BaseCommand):
    help = "Re-run the waste/posting cascade for stock closures that are missing it."

    def add_arguments(self, parser):
        parser.add_argument("--period", dest="period_key", help="Limit to one period key (YYYY-MM).")
        parser.add_argument("--closure", dest="closure_id", help="Retry a single closure by id.")

    def handle(self, *args, **options):
        try:
            closures = list(
                pending_closures(
                    period_key=options.get("period_key"),
                    closure_id=options.get("closure_id"),
                )
            )
        except ValidationError as exc:
            raise CommandError(f"Invalid --closure id: {options.get('closure_id')}") from exc
        if not closures:
            self.stdout.write("Nothing to retry.")
            return

        failures = 0
        for closure in closures:
            result = retry_postings(closure)
            if result.ok:
                self.stdout.write(f"ok       {closure.id} {closure.period_key} postings={len(result.postings)}")
            else:
                failures += 1
                self.stderr.write(self.style.ERROR(f"failed   {closure.id}: {result.error}"))

        if failures:
            raise CommandError(f"{failures} closure(s) still failing")
        self.stdout.write(self.style.SUCCESS(f"Retried {len(closures)} closure(s)."))
