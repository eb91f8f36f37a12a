# closures/api/views/errors.py

"""
Domain error -> HTTP mapping shared by the closure views.

- InvalidPeriodConfig  422  bad key / unknown shift / unknown branch
- UnknownSubEntity     400  counted id does not belong to the branch
- SourceUnavailable    502  an event log could not be read; retry later
"""

from rest_framework import status
from rest_framework.response import Response

from closures.services.exceptions import (
    ClosureServiceError,
    InvalidPeriodConfig,
    SourceUnavailable,
    UnknownSubEntity,
)

ERROR_STATUS = (
    (InvalidPeriodConfig, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (UnknownSubEntity, status.HTTP_400_BAD_REQUEST),
    (SourceUnavailable, status.HTTP_502_BAD_GATEWAY),
)


def service_error_response(exc: ClosureServiceError) -> Response:
    for error_class, code in ERROR_STATUS:
        if isinstance(exc, error_class):
            return Response({"detail": str(exc)}, status=code)
    return Response({"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
