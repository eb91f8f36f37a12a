# closures/api/permissions.py

"""
CLOSURE API PERMISSIONS

Manual closes and reads use Django model permissions:
- closures.add_closure    run a close
- closures.view_closure   read closures / preview
- closures.view_posting   read postings

The scheduled job may also authenticate with a shared secret sent as the
X-Job-Token header (CLOSURES["JOB_TOKEN"]). An empty configured token
disables header access.
"""

from __future__ import annotations

import hmac

from rest_framework.permissions import BasePermission

from closures.conf import get_setting

CLOSE_PERMISSION = "closures.add_closure"
VIEW_CLOSURE_PERMISSION = "closures.view_closure"
VIEW_POSTING_PERMISSION = "closures.view_posting"

JOB_TOKEN_HEADER = "X-Job-Token"


def has_valid_job_token(request) -> bool:
    expected = str(get_setting("JOB_TOKEN") or "")
    if not expected:
        return False
    supplied = request.headers.get(JOB_TOKEN_HEADER) or ""
    return hmac.compare_digest(supplied.encode(), expected.encode())


class HasModelPermission(BasePermission):
    """Authenticated user holding `required_permission` (set on the view)."""

    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        required = getattr(view, "required_permission", None)
        return bool(required) and user.has_perm(required)


class HasJobTokenOrClosePermission(BasePermission):
    message = "A valid job token or closures.add_closure permission is required."

    def has_permission(self, request, view):
        if has_valid_job_token(request):
            return True
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.has_perm(CLOSE_PERMISSION))
