# closures/tests/test_api.py

from __future__ import annotations

import uuid
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Permission
from django.db import DatabaseError
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from closures.models import Closure, Posting
from closures.tests.factories import (
    make_branch,
    make_ingredient,
    make_movement,
    make_order,
    make_register,
    make_shift,
    utc,
)
from inventory.models import PLCategory, StockMovement

User = get_user_model()

STOCK_URL = "/api/closures/stock/"
CASH_URL = "/api/closures/cash/"
SHIFT_SALES_URL = "/api/closures/shift-sales/"
PREVIEW_URL = "/api/closures/stock/preview/"
JOB_URL = "/api/closures/jobs/auto-close-shifts/"
CLOSURES_URL = "/api/closures/closures/"
POSTINGS_URL = "/api/closures/postings/"


def _user(username, *codenames):
    user = User.objects.create_user(username=username, password="pass")
    if codenames:
        user.user_permissions.add(
            *Permission.objects.filter(content_type__app_label="closures", codename__in=codenames)
        )
    return user


class ClosureApiTestBase(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.branch = make_branch()
        make_shift(self.branch, "noche", (22, 0), (2, 0))
        self.flour = make_ingredient("Harina", unit_cost="2", pl_category=PLCategory.MATERIA_PRIMA)
        make_movement(self.branch, self.flour, StockMovement.Kind.PURCHASE, 10, utc(2024, 3, 2))

        self.manager = _user("manager", "add_closure", "view_closure", "view_posting")
        self.viewer = _user("viewer", "view_closure")

    def _stock_body(self, counted="7.5", **overrides):
        body = {
            "scope_id": str(self.branch.id),
            "period_key": "2024-03",
            "sub_entity_closures": [{"sub_entity_id": str(self.flour.id), "actual_value": counted}],
        }
        body.update(overrides)
        return body


class ManualCloseApiTests(ClosureApiTestBase):
    def test_stock_close_created_then_already_closed(self):
        self.client.force_authenticate(self.manager)

        first = self.client.post(STOCK_URL, self._stock_body(), format="json")
        self.assertEqual(first.status_code, 201, first.data)
        self.assertFalse(first.data["already_closed"])

        [row] = first.data["closures"]
        self.assertTrue(row["created"])
        self.assertEqual(Decimal(row["discrepancy"]), Decimal("2.5"))
        self.assertEqual(row["display"]["discrepancy"], "2.500")
        self.assertEqual(len(row["postings"]), 1)
        self.assertEqual(Decimal(row["postings"][0]["amount"]), Decimal("5"))
        self.assertIsNone(row["posting_error"])

        second = self.client.post(STOCK_URL, self._stock_body(counted="1"), format="json")
        self.assertEqual(second.status_code, 200)
        self.assertTrue(second.data["already_closed"])
        self.assertEqual(second.data["closures"][0]["id"], row["id"])
        self.assertEqual(Posting.objects.count(), 1)

    def test_posting_failure_is_reported_not_raised(self):
        self.client.force_authenticate(self.manager)
        with mock.patch("closures.services.posting_cascade._emit", side_effect=DatabaseError("down")):
            with self.assertLogs("closures.services.posting_cascade", level="ERROR"):
                response = self.client.post(STOCK_URL, self._stock_body(), format="json")

        self.assertEqual(response.status_code, 201)
        self.assertIn("down", response.data["closures"][0]["posting_error"])
        self.assertEqual(Closure.objects.count(), 1)

    def test_invalid_period_key_is_422(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(STOCK_URL, self._stock_body(period_key="marzo"), format="json")
        self.assertEqual(response.status_code, 422)

    def test_unknown_shift_is_422(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(
            SHIFT_SALES_URL,
            {"scope_id": str(self.branch.id), "period_key": "2024-03-15/madrugada"},
            format="json",
        )
        self.assertEqual(response.status_code, 422)

    def test_source_unavailable_is_502(self):
        self.client.force_authenticate(self.manager)
        with mock.patch.object(StockMovement.objects, "select_related", side_effect=DatabaseError("gone")):
            response = self.client.post(STOCK_URL, self._stock_body(), format="json")

        self.assertEqual(response.status_code, 502)
        self.assertFalse(Closure.objects.exists())

    def test_payload_validation_is_400(self):
        self.client.force_authenticate(self.manager)
        cases = [
            self._stock_body(counted="-1"),
            self._stock_body(sub_entity_closures=[]),
            self._stock_body(scope_id="not-a-uuid"),
            self._stock_body(
                sub_entity_closures=[
                    {"sub_entity_id": str(self.flour.id), "actual_value": "1"},
                    {"sub_entity_id": str(self.flour.id), "actual_value": "2"},
                ]
            ),
        ]
        for body in cases:
            with self.subTest(body=body):
                response = self.client.post(STOCK_URL, body, format="json")
                self.assertEqual(response.status_code, 400)

    def test_unknown_sub_entity_is_400(self):
        self.client.force_authenticate(self.manager)
        body = self._stock_body()
        body["sub_entity_closures"][0]["sub_entity_id"] = str(uuid.uuid4())
        response = self.client.post(STOCK_URL, body, format="json")
        self.assertEqual(response.status_code, 400)

    def test_missing_permission_is_403(self):
        self.client.force_authenticate(self.viewer)
        response = self.client.post(STOCK_URL, self._stock_body(), format="json")
        self.assertEqual(response.status_code, 403)
        self.assertFalse(Closure.objects.exists())

    def test_anonymous_is_rejected(self):
        response = self.client.post(STOCK_URL, self._stock_body(), format="json")
        self.assertIn(response.status_code, (401, 403))

    def test_cash_close_displays_money(self):
        register = make_register(self.branch)
        make_order(self.branch, "1000.555", utc(2024, 3, 15, 23), register=register)
        self.client.force_authenticate(self.manager)

        response = self.client.post(
            CASH_URL,
            {
                "scope_id": str(self.branch.id),
                "period_key": "2024-03-15/noche",
                "sub_entity_closures": [{"sub_entity_id": str(register.id), "actual_value": "1000"}],
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201, response.data)
        row = response.data["closures"][0]
        self.assertEqual(row["display"]["expected_value"], "1000.56")
        self.assertEqual(row["display"]["discrepancy"], "-0.56")

    def test_shift_sales_close(self):
        make_order(self.branch, "300", utc(2024, 3, 15, 23))
        self.client.force_authenticate(self.manager)

        response = self.client.post(
            SHIFT_SALES_URL,
            {"scope_id": str(self.branch.id), "period_key": "2024-03-15/noche"},
            format="json",
        )
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["closures"][0]["breakdowns"]["totals"]["total_orders"], 1)

    def test_stock_preview(self):
        self.client.force_authenticate(self.viewer)
        response = self.client.get(PREVIEW_URL, {"scope_id": str(self.branch.id), "period_key": "2024-03"})

        self.assertEqual(response.status_code, 200)
        [row] = response.data["rows"]
        self.assertEqual(row["ingredient_name"], "Harina")
        self.assertEqual(Decimal(row["expected_value"]), Decimal("10"))


@override_settings(CLOSURES={"JOB_TOKEN": "s3cret"})
class AutoCloseJobApiTests(ClosureApiTestBase):
    def test_job_token_runs_autoclose(self):
        with mock.patch("closures.api.views.auto_close.timezone.now", return_value=utc(2024, 3, 16, 3)):
            response = self.client.post(JOB_URL, HTTP_X_JOB_TOKEN="s3cret")

        self.assertEqual(response.status_code, 200, response.data)
        self.assertEqual(response.data["processed"], 1)
        self.assertTrue(Closure.objects.filter(period_key="2024-03-15/noche").exists())

    def test_wrong_token_is_rejected(self):
        response = self.client.post(JOB_URL, HTTP_X_JOB_TOKEN="nope")
        self.assertIn(response.status_code, (401, 403))
        self.assertFalse(Closure.objects.exists())

    def test_user_with_close_permission_may_trigger(self):
        self.client.force_authenticate(self.manager)
        response = self.client.post(JOB_URL)
        self.assertEqual(response.status_code, 200)

    @override_settings(CLOSURES={"JOB_TOKEN": ""})
    def test_empty_configured_token_never_matches(self):
        response = self.client.post(JOB_URL, HTTP_X_JOB_TOKEN="")
        self.assertIn(response.status_code, (401, 403))


class ReadOnlyApiTests(ClosureApiTestBase):
    def setUp(self):
        super().setUp()
        self.client.force_authenticate(self.manager)
        self.client.post(STOCK_URL, self._stock_body(), format="json")

    def test_list_and_filter_closures(self):
        response = self.client.get(CLOSURES_URL, {"kind": "stock", "scope_id": str(self.branch.id)})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)

        response = self.client.get(CLOSURES_URL, {"period_key": "2024-02"})
        self.assertEqual(response.data["count"], 0)

    def test_list_postings(self):
        response = self.client.get(POSTINGS_URL, {"category": "materia_prima"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)

    def test_closures_are_read_only(self):
        closure = Closure.objects.get()
        response = self.client.delete(f"{CLOSURES_URL}{closure.id}/")
        self.assertEqual(response.status_code, 405)
        self.assertTrue(Closure.objects.filter(pk=closure.pk).exists())

    def test_viewer_without_posting_permission(self):
        self.client.force_authenticate(self.viewer)
        self.assertEqual(self.client.get(CLOSURES_URL).status_code, 200)
        self.assertEqual(self.client.get(POSTINGS_URL).status_code, 403)
