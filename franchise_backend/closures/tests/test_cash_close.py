# closures/tests/test_cash_close.py

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.test import TestCase

from closures.models import Closure, Posting
from closures.services.close_service import close_cash_registers
from closures.services.exceptions import InvalidPeriodConfig, SourceUnavailable, UnknownSubEntity
from closures.tests.factories import (
    make_branch,
    make_closure,
    make_employee,
    make_order,
    make_register,
    make_register_event,
    make_shift,
    utc,
)
from sales.models import Order


class ShiftCashCloseTests(TestCase):
    """
    Register "Caja 1", shift "manana" 08:00-16:00 on 2024-03-15:
      float carried from the previous day's count 5000
      + cash sales 40000 = expected 45000
      declared 44500 -> discrepancy -500
    """

    def setUp(self):
        self.branch = make_branch()
        make_shift(self.branch, "manana", (8, 0), (16, 0))
        self.register = make_register(self.branch)
        other_register = make_register(self.branch, "Caja 2")

        make_closure(
            self.branch, Closure.Kind.CASH, "2024-03-14/manana", utc(2024, 3, 14, 8), utc(2024, 3, 14, 16),
            sub_entity_id=self.register.id, expected="5100", actual="5000",
        )

        make_order(self.branch, "25000", utc(2024, 3, 15, 9), register=self.register, payment_method="Efectivo")
        make_order(
            self.branch, "15000", utc(2024, 3, 15, 15, 59), register=self.register,
            status=Order.STATUS_DELIVERED,
        )
        # Not cash, other register, cancelled, outside the shift: ignored.
        make_order(self.branch, "9000", utc(2024, 3, 15, 10), register=self.register, payment_method="tarjeta")
        make_order(self.branch, "7000", utc(2024, 3, 15, 10), register=other_register)
        make_order(
            self.branch, "3000", utc(2024, 3, 15, 11), register=self.register,
            status=Order.STATUS_CANCELLED,
        )
        make_order(self.branch, "1000", utc(2024, 3, 15, 16), register=self.register)

        cashier = make_employee(self.branch, "Luis Gomez")
        make_register_event(self.register, "open", "5000", utc(2024, 3, 15, 8), performed_by=cashier)
        make_register_event(self.register, "close", "44500", utc(2024, 3, 15, 15, 55))

    def _close(self, declared="44500", period_key="2024-03-15/manana"):
        return close_cash_registers(
            branch_id=self.branch.id,
            period_key=period_key,
            counts=[{"sub_entity_id": str(self.register.id), "actual_value": Decimal(declared)}],
        )

    def test_signed_discrepancy(self):
        [outcome] = self._close()

        closure = Closure.objects.get(pk=outcome.closure.pk)
        self.assertEqual(closure.kind, Closure.Kind.CASH)
        self.assertEqual(closure.sub_entity_id, str(self.register.id))
        self.assertEqual(closure.opening_balance, Decimal("5000"))
        self.assertEqual(closure.inflows, Decimal("40000"))
        self.assertEqual(closure.expected_value, Decimal("45000"))
        self.assertEqual(closure.discrepancy, Decimal("-500"))
        self.assertEqual(closure.breakdowns["cash_orders"], 2)

    def test_sessions_are_summarised(self):
        [outcome] = self._close()

        [session] = outcome.closure.breakdowns["sessions"]
        self.assertEqual(session["register_name"], "Caja 1")
        self.assertEqual(session["opened_by"], "Luis Gomez")
        self.assertEqual(session["status"], "closed")
        self.assertEqual(Decimal(session["declared"]), Decimal("44500"))

    def test_cash_discrepancy_is_never_posted(self):
        [outcome] = self._close(declared="40000")
        self.assertEqual(outcome.postings, ())
        self.assertFalse(Posting.objects.exists())

    def test_shift_name_is_case_insensitive_and_idempotent(self):
        self._close(period_key="2024-03-15/MANANA")
        [again] = self._close(period_key="2024-03-15/manana")

        self.assertFalse(again.created)
        self.assertEqual(again.closure.period_key, "2024-03-15/manana")
        self.assertEqual(Closure.objects.filter(kind=Closure.Kind.CASH).count(), 2)

    def test_first_shift_opens_at_zero(self):
        [outcome] = self._close(period_key="2024-03-16/manana", declared="0")
        self.assertEqual(outcome.closure.opening_balance, Decimal("0"))

    def test_unknown_shift(self):
        with self.assertRaises(InvalidPeriodConfig):
            self._close(period_key="2024-03-15/noche")

    def test_register_of_another_branch(self):
        other = make_register(make_branch("Norte"))
        with self.assertRaises(UnknownSubEntity):
            close_cash_registers(
                branch_id=self.branch.id,
                period_key="2024-03-15/manana",
                counts=[{"sub_entity_id": str(other.id), "actual_value": Decimal("1")}],
            )

    def test_inactive_branch(self):
        self.branch.is_active = False
        self.branch.save(update_fields=["is_active"])
        with self.assertRaises(InvalidPeriodConfig):
            self._close()


class CashCloseAtomicityTests(TestCase):
    def test_opening_read_failure_writes_nothing(self):
        branch = make_branch()
        make_shift(branch, "manana", (8, 0), (16, 0))
        first = make_register(branch, "Caja 1")
        second = make_register(branch, "Caja 2")

        def unavailable(**kwargs):
            self.assertFalse(Closure.objects.exists())
            raise SourceUnavailable("closures replica unreachable")

        with mock.patch("closures.services.close_service.load_opening_balances", side_effect=unavailable):
            with self.assertRaises(SourceUnavailable):
                close_cash_registers(
                    branch_id=branch.id,
                    period_key="2024-03-15/manana",
                    counts=[
                        {"sub_entity_id": str(first.id), "actual_value": Decimal("100")},
                        {"sub_entity_id": str(second.id), "actual_value": Decimal("200")},
                    ],
                )

        self.assertEqual(Closure.objects.count(), 0)
