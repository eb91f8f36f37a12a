# inventory/models/ingredient.py

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class PLCategory(models.TextChoices):
    """
    Cost categories of the branch P&L that a stock discrepancy can land in.

    The set is closed. Unknown or empty values coming from configuration are
    coerced to the configured default (VARIOS is the catch-all member).
    """

    MATERIA_PRIMA = "materia_prima", "Materia prima"
    DESCARTABLES = "descartables", "Descartables"
    LIMPIEZA = "limpieza", "Limpieza"
    MANTENIMIENTO = "mantenimiento", "Mantenimiento"
    MARKETING = "marketing", "Marketing"
    VARIOS = "varios", "Varios"

    @classmethod
    def default(cls) -> "PLCategory":
        closures_conf = getattr(settings, "CLOSURES", {}) or {}
        configured = str(closures_conf.get("DEFAULT_PL_CATEGORY", cls.MATERIA_PRIMA.value) or "").strip()
        if configured in cls.values:
            return cls(configured)
        return cls.VARIOS

    @classmethod
    def coerce(cls, value) -> "PLCategory":
        value = (value or "").strip() if isinstance(value, str) else value
        if value in cls.values:
            return cls(value)
        return cls.default()


class Ingredient(models.Model):
    """
    Stock-tracked raw material (insumo). Quantities are in base_unit.

    unit_cost is the cost per base unit used to value waste found at a
    monthly stock close.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=150, unique=True)
    base_unit = models.CharField(max_length=16, default="un")

    unit_cost = models.DecimalField(
        max_digits=18,
        decimal_places=4,
        default=Decimal("0"),
        validators=[MinValueValidator(Decimal("0"))],
    )

    pl_category = models.CharField(
        max_length=32,
        choices=PLCategory.choices,
        null=True,
        blank=True,
        help_text="P&L cost category for waste postings. Empty uses the default category.",
    )

    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    @property
    def cost_category(self) -> PLCategory:
        return PLCategory.coerce(self.pl_category)

    def __str__(self):
        return f"{self.name} ({self.base_unit})"
