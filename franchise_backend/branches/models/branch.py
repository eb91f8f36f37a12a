# branches/models/branch.py

import uuid
import zoneinfo

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models


def _default_timezone() -> str:
    return settings.TIME_ZONE


class Branch(models.Model):
    """
    A franchise location. Closures are always scoped to one branch.

    timezone:
      IANA name used to interpret shift times-of-day (22:00 means 22:00 at
      the branch, not on the server).
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=120, unique=True)
    timezone = models.CharField(max_length=64, default=_default_timezone)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name = "Branch"
        verbose_name_plural = "Branches"

    def clean(self):
        try:
            zoneinfo.ZoneInfo(self.timezone)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
            raise ValidationError({"timezone": f"Unknown timezone: {self.timezone}"}) from exc

    @property
    def tzinfo(self) -> zoneinfo.ZoneInfo:
        return zoneinfo.ZoneInfo(self.timezone)

    def __str__(self):
        return self.name
