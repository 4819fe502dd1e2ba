# tenants/models.py

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


def _default_base_currency() -> str:
    return getattr(settings, "LEDGER_BASE_CURRENCY", "EGP")


class Tenant(models.Model):
    """
    A business using the suite.

    Every ledger row (accounts, fiscal years, journal entries) carries a
    tenant FK; no ledger query runs without one.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=64, unique=True)

    base_currency = models.CharField(
        max_length=3,
        default=_default_base_currency,
        help_text="Currency journal lines are recorded in.",
    )

    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_tenant_name_not_blank",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        self.name = (self.name or "").strip()
        self.slug = (self.slug or "").strip()
        self.base_currency = (self.base_currency or "").strip().upper()

        if not self.name:
            raise ValidationError("Tenant name is required")
        if len(self.base_currency) != 3:
            raise ValidationError({"base_currency": "Use a 3-letter currency code"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
