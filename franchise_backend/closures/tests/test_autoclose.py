# closures/tests/test_autoclose.py

from __future__ import annotations

from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from closures.models import Closure
from closures.services import close_service
from closures.services.exceptions import SourceUnavailable
from closures.tests.factories import make_branch, make_order, make_shift, utc

NOW = utc(2024, 3, 16, 3)


def _keys(units):
    return sorted((u["branch_id"], u["period_key"]) for u in units)


class ShiftAutoCloseTests(TestCase):
    def setUp(self):
        self.centro = make_branch("Centro")
        make_shift(self.centro, "mediodia", (11, 0), (16, 0))
        make_shift(self.centro, "noche", (22, 0), (2, 0))
        make_shift(self.centro, "tarde", (16, 0), (20, 0), is_active=False)

        self.norte = make_branch("Norte")
        make_shift(self.norte, "noche", (22, 0), (2, 0))

        make_order(self.centro, "120", utc(2024, 3, 15, 12))

    def test_closes_every_ended_shift_in_horizon(self):
        report = close_service.run_shift_autoclose(now=NOW, lookback_days=1)

        self.assertEqual(
            _keys(report.created),
            sorted(
                [
                    (str(self.centro.id), "2024-03-15/mediodia"),
                    (str(self.centro.id), "2024-03-15/noche"),
                    (str(self.norte.id), "2024-03-15/noche"),
                ]
            ),
        )
        self.assertEqual(report.failed, [])
        self.assertEqual(report.processed, 3)

        lunch = Closure.objects.get(branch=self.centro, period_key="2024-03-15/mediodia")
        self.assertEqual(lunch.kind, Closure.Kind.SHIFT_SALES)
        self.assertEqual(lunch.breakdowns["totals"]["total_orders"], 1)

    def test_second_tick_is_a_noop(self):
        close_service.run_shift_autoclose(now=NOW, lookback_days=1)
        report = close_service.run_shift_autoclose(now=NOW, lookback_days=1)

        self.assertEqual(report.created, [])
        self.assertEqual(len(report.already_closed), 3)
        self.assertEqual(Closure.objects.count(), 3)

    def test_shift_still_running_is_not_closed(self):
        report = close_service.run_shift_autoclose(now=utc(2024, 3, 16, 1), lookback_days=0)

        # 03-16 shifts have not ended yet; 03-15 is outside a zero-day horizon.
        self.assertEqual(report.created, [])
        self.assertFalse(Closure.objects.exists())

    def test_shifts_before_branch_opened_are_skipped(self):
        late = make_branch("Sur", created_at=utc(2024, 3, 15, 20))
        make_shift(late, "mediodia", (11, 0), (16, 0))
        make_shift(late, "noche", (22, 0), (2, 0))

        report = close_service.run_shift_autoclose(now=NOW, lookback_days=1)

        late_keys = [u["period_key"] for u in report.created if u["branch_id"] == str(late.id)]
        self.assertEqual(late_keys, ["2024-03-15/noche"])

    def test_failure_is_isolated_and_retried_next_tick(self):
        real = close_service._close_shift_sales

        def flaky(branch, period, window):
            if branch.pk == self.centro.pk:
                raise SourceUnavailable("orders replica unreachable")
            return real(branch, period, window)

        with mock.patch.object(close_service, "_close_shift_sales", side_effect=flaky):
            with self.assertLogs("closures.services.close_service", level="ERROR"):
                report = close_service.run_shift_autoclose(now=NOW, lookback_days=1)

        self.assertEqual(len(report.failed), 2)
        self.assertTrue(all(u["branch_id"] == str(self.centro.id) for u in report.failed))
        self.assertEqual(_keys(report.created), [(str(self.norte.id), "2024-03-15/noche")])

        retry = close_service.run_shift_autoclose(now=NOW, lookback_days=1)
        self.assertEqual(len(retry.created), 2)
        self.assertEqual(len(retry.already_closed), 1)

    def test_inactive_branch_is_ignored(self):
        self.norte.is_active = False
        self.norte.save(update_fields=["is_active"])

        report = close_service.run_shift_autoclose(now=NOW, lookback_days=1)

        self.assertFalse(any(u["branch_id"] == str(self.norte.id) for u in report.created))


class AutoCloseCommandTests(TestCase):
    def setUp(self):
        branch = make_branch()
        make_shift(branch, "noche", (22, 0), (2, 0))

    def test_command_runs_with_fixed_now(self):
        out = StringIO()
        call_command("auto_close_shifts", "--now", "2024-03-16T03:00:00Z", "--lookback-days", "1", stdout=out)

        self.assertIn("1 created", out.getvalue())
        self.assertTrue(Closure.objects.filter(period_key="2024-03-15/noche").exists())

    def test_command_rejects_bad_now(self):
        with self.assertRaises(CommandError):
            call_command("auto_close_shifts", "--now", "yesterday", stdout=StringIO())
