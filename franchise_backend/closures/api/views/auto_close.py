# PATH: closures/api/views/auto_close.py

"""
SCHEDULED AUTO-CLOSE TRIGGER

POST /api/closures/jobs/auto-close-shifts/

Called by an external scheduler (cron, Cloud Scheduler, ...). This view is
the only place the engine reads the wall clock: `now` is taken here and
handed to the run.

Auth:
- X-Job-Token header matching CLOSURES["JOB_TOKEN"], or
- an authenticated user with closures.add_closure

Always 200 when the run completes: per-unit failures are part of the report,
not an HTTP error.
"""

import logging

from django.utils import timezone
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from closures.api.permissions import HasJobTokenOrClosePermission
from closures.services.close_service import run_shift_autoclose

logger = logging.getLogger(__name__)


class AutoCloseShiftsView(APIView):
    permission_classes = [HasJobTokenOrClosePermission]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "closure_job"

    @extend_schema(
        tags=["closures"],
        request=None,
        responses={
            200: {
                "type": "object",
                "properties": {
                    "processed": {"type": "integer"},
                    "created": {"type": "array", "items": {"type": "object"}},
                    "already_closed": {"type": "array", "items": {"type": "object"}},
                    "failed": {"type": "array", "items": {"type": "object"}},
                },
            },
            403: dict,
        },
    )
    def post(self, request, *args, **kwargs):
        now = timezone.now()
        logger.info("Auto-close triggered", extra={"now": now.isoformat()})

        report = run_shift_autoclose(now=now)

        return Response(
            {
                "now": now.isoformat(),
                "processed": report.processed,
                "created": report.created,
                "already_closed": report.already_closed,
                "failed": report.failed,
            },
            status=status.HTTP_200_OK,
        )
