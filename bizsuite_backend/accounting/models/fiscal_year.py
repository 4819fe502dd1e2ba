# accounting/models/fiscal_year.py

"""
======================================================
PATH: accounting/models/fiscal_year.py
======================================================
FISCAL YEAR MODEL

The accounting period a journal entry is posted into.

Guarantees:
- At most ONE open fiscal year per tenant (partial unique constraint)
- A (start_date, end_date) window exists once per tenant
- end_date is never before start_date
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q

from tenants.models import Tenant


class FiscalYear(models.Model):
    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="fiscal_years",
    )

    name = models.CharField(max_length=100)

    start_date = models.DateField()
    end_date = models.DateField()

    is_closed = models.BooleanField(
        default=False,
        help_text="Closed years accept no new postings",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-start_date"]
        verbose_name = "Fiscal Year"
        verbose_name_plural = "Fiscal Years"
        indexes = [
            models.Index(fields=["tenant", "is_closed"], name="accounting__tenant__e1d84b_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant"],
                condition=Q(is_closed=False),
                name="uniq_open_fiscal_year_per_tenant",
            ),
            models.UniqueConstraint(
                fields=["tenant", "start_date", "end_date"],
                name="uniq_fiscal_year_tenant_window",
            ),
            models.CheckConstraint(
                condition=Q(end_date__gte=F("start_date")),
                name="chk_fiscal_year_end_after_start",
            ),
        ]

    def __str__(self):
        state = "closed" if self.is_closed else "open"
        return f"{self.name} ({self.start_date} → {self.end_date}, {state})"

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Fiscal year name is required")

        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError("Fiscal year end_date cannot be before start_date")

    def contains(self, day) -> bool:
        return self.start_date <= day <= self.end_date
