# closures/tests/test_stock_close.py

from __future__ import annotations

from decimal import Decimal
from io import StringIO
from unittest import mock

from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import DatabaseError
from django.test import TestCase, override_settings

from closures.models import Closure, Posting
from closures.services.close_service import close_stock_period, preview_stock_period
from closures.services.exceptions import InvalidPeriodConfig, PostingFailed, SourceUnavailable, UnknownSubEntity
from closures.tests.factories import (
    make_branch,
    make_closure,
    make_ingredient,
    make_movement,
    utc,
)
from inventory.models import PLCategory, StockLevel, StockMovement


class MonthlyStockCloseTests(TestCase):
    """
    Monthly count of one ingredient:
      opening 100 (February count) + purchases 50 - consumption 120 = 30
      counted 25 -> waste 5
    """

    def setUp(self):
        self.branch = make_branch()
        self.flour = make_ingredient("Harina", unit_cost="2.5", pl_category=PLCategory.LIMPIEZA)

        make_closure(
            self.branch, Closure.Kind.STOCK, "2024-02", utc(2024, 2, 1), utc(2024, 3, 1),
            sub_entity_id=self.flour.id, expected="104", actual="100",
        )
        make_movement(self.branch, self.flour, StockMovement.Kind.PURCHASE, 50, utc(2024, 3, 4, 10))
        make_movement(self.branch, self.flour, StockMovement.Kind.SALE, 70, utc(2024, 3, 10, 21))
        make_movement(self.branch, self.flour, StockMovement.Kind.SALE, 50, utc(2024, 3, 31, 23, 59))

        # Outside the window or outside the whitelist: ignored.
        make_movement(self.branch, self.flour, StockMovement.Kind.PURCHASE, 999, utc(2024, 4, 1))
        make_movement(self.branch, self.flour, StockMovement.Kind.ADJUSTMENT, 3, utc(2024, 3, 5))

    def _close(self, counted="25"):
        return close_stock_period(
            branch_id=self.branch.id,
            period_key="2024-03",
            counts=[{"sub_entity_id": str(self.flour.id), "actual_value": Decimal(counted)}],
        )

    def test_expected_and_waste(self):
        [outcome] = self._close()

        closure = Closure.objects.get(pk=outcome.closure.pk)
        self.assertTrue(outcome.created)
        self.assertEqual(closure.kind, Closure.Kind.STOCK)
        self.assertEqual(closure.opening_balance, Decimal("100"))
        self.assertEqual(closure.inflows, Decimal("50"))
        self.assertEqual(closure.outflows, Decimal("120"))
        self.assertEqual(closure.expected_value, Decimal("30"))
        self.assertEqual(closure.actual_value, Decimal("25"))
        self.assertEqual(closure.discrepancy, Decimal("5"))
        self.assertEqual(closure.breakdowns["movement_count"], 3)

    def test_waste_is_posted_in_ingredient_category(self):
        [outcome] = self._close()

        self.assertIsNone(outcome.posting_error)
        [posting] = outcome.postings
        self.assertEqual(posting.category, PLCategory.LIMPIEZA)
        self.assertEqual(posting.amount, Decimal("12.5"))
        self.assertEqual(posting.period_key, "2024-03")

        waste = StockMovement.objects.get(source_closure=outcome.closure)
        self.assertEqual(waste.kind, StockMovement.Kind.WASTE)
        self.assertEqual(waste.quantity, Decimal("5"))
        self.assertLess(waste.created_at, utc(2024, 4, 1))
        self.assertGreaterEqual(waste.created_at, utc(2024, 3, 31, 23, 59))

    @override_settings(CLOSURES={"DEFAULT_PL_CATEGORY": "mantenimiento"})
    def test_uncategorised_ingredient_uses_default_category(self):
        sugar = make_ingredient("Azucar", unit_cost="1")
        make_movement(self.branch, sugar, StockMovement.Kind.PURCHASE, 10, utc(2024, 3, 2))

        [outcome] = close_stock_period(
            branch_id=self.branch.id,
            period_key="2024-03",
            counts=[{"sub_entity_id": str(sugar.id), "actual_value": Decimal("8")}],
        )
        self.assertEqual(outcome.postings[0].category, PLCategory.MANTENIMIENTO)
        self.assertEqual(outcome.postings[0].amount, Decimal("2"))

    def test_surplus_records_zero_discrepancy_and_no_posting(self):
        [outcome] = self._close(counted="32")

        closure = Closure.objects.get(pk=outcome.closure.pk)
        self.assertEqual(closure.discrepancy, Decimal("0"))
        self.assertEqual(Decimal(closure.breakdowns["surplus"]), Decimal("2"))
        self.assertEqual(outcome.postings, ())
        self.assertFalse(Posting.objects.exists())
        self.assertFalse(StockMovement.objects.filter(source_closure__isnull=False).exists())

    def test_repeat_close_is_noop(self):
        self._close()
        [again] = self._close(counted="1")

        self.assertFalse(again.created)
        self.assertTrue(again.already_closed)
        self.assertEqual(again.closure.actual_value, Decimal("25"))
        self.assertEqual(Closure.objects.filter(period_key="2024-03").count(), 1)
        self.assertEqual(Posting.objects.count(), 1)
        self.assertEqual(StockMovement.objects.filter(kind=StockMovement.Kind.WASTE).count(), 1)

    def test_emitted_waste_is_never_counted_again(self):
        self._close()

        with override_settings(CLOSURES={"STOCK_EXPECTED_KINDS": ["purchase", "sale", "waste"]}):
            [row] = preview_stock_period(branch_id=self.branch.id, period_key="2024-03")

        self.assertEqual(row.consumption, Decimal("120"))

    def test_next_month_opens_at_counted_value(self):
        self._close()

        [april] = close_stock_period(
            branch_id=self.branch.id,
            period_key="2024-04",
            counts=[{"sub_entity_id": str(self.flour.id), "actual_value": None}],
        )
        # opening 25 (March count) + 999 purchased on April 1st
        self.assertEqual(april.closure.opening_balance, Decimal("25"))
        self.assertEqual(april.closure.expected_value, Decimal("1024"))
        self.assertIsNone(april.closure.discrepancy)
        self.assertEqual(april.postings, ())

    def test_posting_failure_keeps_closure(self):
        with mock.patch(
            "closures.services.posting_cascade._emit",
            side_effect=DatabaseError("ledger down"),
        ):
            with self.assertLogs("closures.services.posting_cascade", level="ERROR"):
                [outcome] = self._close()

        self.assertTrue(outcome.created)
        self.assertIsInstance(outcome.posting_error, PostingFailed)
        self.assertTrue(Closure.objects.filter(pk=outcome.closure.pk).exists())
        self.assertFalse(Posting.objects.exists())

        # Operator follow-up re-runs the cascade.
        out = StringIO()
        call_command("retry_closure_postings", "--period", "2024-03", stdout=out)
        self.assertEqual(Posting.objects.filter(source_closure=outcome.closure).count(), 1)
        self.assertIn("Retried 1 closure(s)", out.getvalue())

    def test_source_failure_writes_nothing(self):
        with mock.patch.object(
            StockMovement.objects,
            "select_related",
            side_effect=DatabaseError("replica gone"),
        ):
            with self.assertRaises(SourceUnavailable):
                self._close()
        self.assertFalse(Closure.objects.filter(period_key="2024-03").exists())

    def test_shift_key_is_rejected(self):
        with self.assertRaises(InvalidPeriodConfig):
            close_stock_period(branch_id=self.branch.id, period_key="2024-03-01/noche", counts=[])

    def test_unknown_ingredient(self):
        with self.assertRaises(UnknownSubEntity):
            close_stock_period(
                branch_id=self.branch.id,
                period_key="2024-03",
                counts=[{"sub_entity_id": "00000000-0000-0000-0000-000000000000", "actual_value": 1}],
            )


class StockPreviewTests(TestCase):
    def setUp(self):
        self.branch = make_branch()

    def test_lists_active_ingredients_when_nothing_happened(self):
        make_ingredient("Harina")
        make_ingredient("Aceite")

        rows = preview_stock_period(branch_id=self.branch.id, period_key="2024-03")

        self.assertEqual([r.ingredient_name for r in rows], ["Aceite", "Harina"])
        self.assertTrue(all(r.expected_value == Decimal("0") for r in rows))

    def test_preview_matches_close_and_writes_nothing(self):
        flour = make_ingredient("Harina")
        make_ingredient("Sal")
        make_closure(
            self.branch, Closure.Kind.STOCK, "2024-02", utc(2024, 2, 1), utc(2024, 3, 1),
            sub_entity_id=flour.id, expected="10",
        )
        make_movement(self.branch, flour, StockMovement.Kind.PURCHASE, 5, utc(2024, 3, 3))
        make_movement(self.branch, flour, StockMovement.Kind.SALE, 2, utc(2024, 3, 4))

        [row] = preview_stock_period(branch_id=self.branch.id, period_key="2024-03")

        self.assertEqual(row.ingredient_name, "Harina")
        self.assertEqual(row.opening_balance, Decimal("10"))
        self.assertEqual(row.purchases, Decimal("5"))
        self.assertEqual(row.consumption, Decimal("2"))
        self.assertEqual(row.expected_value, Decimal("13"))
        self.assertEqual(Closure.objects.count(), 1)


class StockCloseAtomicityTests(TestCase):
    def setUp(self):
        self.branch = make_branch()
        self.flour = make_ingredient("Harina", unit_cost="1")
        self.oil = make_ingredient("Aceite", unit_cost="1")
        for ingredient in (self.flour, self.oil):
            make_movement(self.branch, ingredient, StockMovement.Kind.PURCHASE, 10, utc(2024, 3, 2))

    def test_opening_read_failure_writes_nothing(self):
        def unavailable(**kwargs):
            # Openings are read before the first closure is written.
            self.assertFalse(Closure.objects.exists())
            raise SourceUnavailable("closures replica unreachable")

        with mock.patch("closures.services.close_service.load_opening_balances", side_effect=unavailable):
            with self.assertRaises(SourceUnavailable):
                close_stock_period(
                    branch_id=self.branch.id,
                    period_key="2024-03",
                    counts=[
                        {"sub_entity_id": str(self.flour.id), "actual_value": Decimal("8")},
                        {"sub_entity_id": str(self.oil.id), "actual_value": Decimal("9")},
                    ],
                )

        self.assertEqual(Closure.objects.count(), 0)
        self.assertFalse(Posting.objects.exists())
        self.assertFalse(StockMovement.objects.filter(kind=StockMovement.Kind.WASTE).exists())


class WastePostingPrecisionTests(TestCase):
    def test_fractional_cost_is_stored_and_returned_exactly(self):
        branch = make_branch()
        cheese = make_ingredient("Queso", unit_cost="1.3333")
        make_movement(branch, cheese, StockMovement.Kind.PURCHASE, 1, utc(2024, 3, 2))

        [outcome] = close_stock_period(
            branch_id=branch.id,
            period_key="2024-03",
            counts=[{"sub_entity_id": str(cheese.id), "actual_value": Decimal("0.6667")}],
        )

        [posting] = outcome.postings
        stored = Posting.objects.get(pk=posting.pk)
        self.assertEqual(stored.amount, Decimal("0.44438889"))
        self.assertEqual(posting.amount, stored.amount)


class CurrentStockAfterCloseTests(TestCase):
    def setUp(self):
        self.branch = make_branch()
        self.flour = make_ingredient("Harina")
        make_movement(self.branch, self.flour, StockMovement.Kind.PURCHASE, 40, utc(2024, 3, 2))

    def _close(self, period_key, counted):
        return close_stock_period(
            branch_id=self.branch.id,
            period_key=period_key,
            counts=[{"sub_entity_id": str(self.flour.id), "actual_value": counted}],
        )

    def test_close_sets_current_stock_to_counted(self):
        [outcome] = self._close("2024-03", Decimal("35"))

        level = StockLevel.objects.get(branch=self.branch, ingredient=self.flour)
        self.assertEqual(level.quantity, Decimal("35"))
        self.assertEqual(level.unit, "kg")
        self.assertEqual(level.counted_at, utc(2024, 4, 1))
        self.assertEqual(level.source_closure_id, outcome.closure.pk)

    def test_repeat_and_uncounted_closes_leave_level_alone(self):
        self._close("2024-03", Decimal("35"))
        self._close("2024-03", Decimal("1"))
        self._close("2024-04", None)

        level = StockLevel.objects.get(branch=self.branch, ingredient=self.flour)
        self.assertEqual(level.quantity, Decimal("35"))

    def test_older_count_never_replaces_newer(self):
        self._close("2024-04", Decimal("30"))
        self._close("2024-03", Decimal("35"))

        level = StockLevel.objects.get(branch=self.branch, ingredient=self.flour)
        self.assertEqual(level.quantity, Decimal("30"))
        self.assertEqual(level.counted_at, utc(2024, 5, 1))

    def test_preview_falls_back_to_current_stock(self):
        self._close("2024-03", Decimal("35"))
        make_ingredient("Sal")

        # May: no movements and no April closure.
        rows = preview_stock_period(branch_id=self.branch.id, period_key="2024-05")

        by_name = {r.ingredient_name: r for r in rows}
        self.assertEqual(by_name["Harina"].expected_value, Decimal("35"))
        self.assertEqual(by_name["Harina"].opening_balance, Decimal("0"))
        self.assertEqual(by_name["Sal"].expected_value, Decimal("0"))

    def test_preview_with_activity_ignores_current_stock(self):
        self._close("2024-03", Decimal("35"))
        make_movement(self.branch, self.flour, StockMovement.Kind.SALE, 5, utc(2024, 4, 3))

        [row] = preview_stock_period(branch_id=self.branch.id, period_key="2024-04")
        self.assertEqual(row.opening_balance, Decimal("35"))
        self.assertEqual(row.expected_value, Decimal("30"))


class RetryCommandTests(TestCase):
    def test_malformed_closure_id_is_a_command_error(self):
        with self.assertRaises(CommandError):
            call_command("retry_closure_postings", "--closure", "not-a-uuid", stdout=StringIO())
