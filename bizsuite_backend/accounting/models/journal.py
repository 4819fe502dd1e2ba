# accounting/models/journal.py

"""
======================================================
PATH: accounting/models/journal.py
======================================================
JOURNAL ENTRY MODEL

Header of a single accounting transaction.

Guarantees:
- entry_number is unique per tenant
- transaction_date is date-only
- Lines are written together with the header by the journal entry
  service; the header itself is never edited once posted
  (reversal / void replaces edit-in-place)
- source_type + source_id link the entry to the business document
  that caused it; reference stays a human-readable key
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from accounting.models.fiscal_year import FiscalYear
from tenants.models import Tenant


class JournalEntry(models.Model):
    DRAFT = "draft"
    POSTED = "posted"
    VOID = "void"

    STATUS_CHOICES = [
        (DRAFT, "Draft"),
        (POSTED, "Posted"),
        (VOID, "Void"),
    ]

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )

    fiscal_year = models.ForeignKey(
        FiscalYear,
        on_delete=models.PROTECT,
        related_name="journal_entries",
    )

    entry_number = models.CharField(max_length=64)

    transaction_date = models.DateField(help_text="Accounting effective date")

    description = models.TextField(blank=True, default="")

    reference = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="External reference (invoice number, voucher number, etc.)",
    )

    currency = models.CharField(max_length=3)

    exchange_rate = models.DecimalField(
        max_digits=10,
        decimal_places=6,
        default=Decimal("1"),
        help_text="Document currency → base currency rate (audit only)",
    )

    status = models.CharField(
        max_length=10,
        choices=STATUS_CHOICES,
        default=POSTED,
    )

    source_type = models.CharField(max_length=50, blank=True, null=True)
    source_id = models.CharField(max_length=100, blank=True, null=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="journal_entries",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-transaction_date", "-created_at"]
        verbose_name = "Journal Entry"
        verbose_name_plural = "Journal Entries"
        indexes = [
            models.Index(fields=["tenant", "transaction_date"], name="accounting__tenant__7f3b20_idx"),
            models.Index(fields=["tenant", "reference"], name="accounting__tenant__2c91da_idx"),
            models.Index(
                fields=["tenant", "source_type", "source_id"],
                name="accounting__tenant__58e6f4_idx",
            ),
            models.Index(fields=["status"], name="accounting__status_0d4a77_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "entry_number"],
                name="uniq_journal_entry_number_per_tenant",
            ),
            models.CheckConstraint(
                condition=models.Q(exchange_rate__gt=0),
                name="chk_journal_exchange_rate_positive",
            ),
        ]

    def __str__(self):
        return f"{self.entry_number} – {self.transaction_date}"

    def clean(self):
        if self.reference is not None:
            ref = str(self.reference).strip()
            self.reference = ref or None

        self.description = (self.description or "").strip()
        self.currency = (self.currency or "").strip().upper()
        if len(self.currency) != 3:
            raise ValidationError({"currency": "Currency must be a 3-letter code"})

        if self.fiscal_year_id and self.fiscal_year.tenant_id != self.tenant_id:
            raise ValidationError({"fiscal_year": "Fiscal year belongs to another tenant"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
