# closures/management/commands/auto_close_shifts.py

"""
Cron entrypoint for the scheduled shift closes.

    python manage.py auto_close_shifts
    python manage.py auto_close_shifts --now 2024-03-15T06:00:00Z --lookback-days 3

Exit status is non-zero with --strict when any unit failed.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from closures.services.close_service import run_shift_autoclose


def _parse_now(value: str | None):
    if not value:
        return timezone.now()
    parsed = parse_datetime(value)
    if parsed is None:
        raise CommandError("Invalid --now. Use an ISO-8601 datetime, e.g. 2024-03-15T06:00:00Z")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, timezone.get_current_timezone())
    return parsed


class Command(BaseCommand):
    help = "Close every branch shift that has ended within the look-back horizon."

    def add_arguments(self, parser):
        parser.add_argument(
            "--now",
            dest="now",
            help="Reference instant (ISO-8601). Defaults to the current time.",
        )
        parser.add_argument(
            "--lookback-days",
            dest="lookback_days",
            type=int,
            help="Days before today to scan (default: CLOSURES['AUTO_CLOSE_LOOKBACK_DAYS']).",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any unit failed.",
        )

    def handle(self, *args, **options):
        now = _parse_now(options.get("now"))
        lookback = options.get("lookback_days")
        if lookback is not None and lookback < 0:
            raise CommandError("--lookback-days must be >= 0")

        report = run_shift_autoclose(now=now, lookback_days=lookback)

        for unit in report.created:
            self.stdout.write(f"closed   {unit['branch_id']} {unit['period_key']}")
        for unit in report.failed:
            self.stderr.write(
                self.style.ERROR(f"failed   {unit['branch_id']} {unit['period_key']}: {unit['error']}")
            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Auto-close done: {len(report.created)} created, "
                f"{len(report.already_closed)} already closed, {len(report.failed)} failed."
            )
        )

        if options.get("strict") and report.failed:
            raise CommandError(f"{len(report.failed)} unit(s) failed")
