# accounting/models/journal_line.py

"""
======================================================
PATH: accounting/models/journal_line.py
======================================================
JOURNAL LINE MODEL

One debit or credit against a single account, always in base currency.

Guarantees:
- debit >= 0 and credit >= 0
- A line never carries both a debit and a credit
- The account belongs to the entry's tenant
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from accounting.models.account import Account
from accounting.models.journal import JournalEntry

ZERO = Decimal("0.00")


class JournalLine(models.Model):
    journal_entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    description = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(
        max_digits=20,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )
    credit = models.DecimalField(
        max_digits=20,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
    )

    class Meta:
        ordering = ["id"]
        verbose_name = "Journal Line"
        verbose_name_plural = "Journal Lines"
        indexes = [
            models.Index(fields=["account"], name="accounting__account_3e5c19_idx"),
            models.Index(fields=["journal_entry"], name="accounting__journal_a6b0f2_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(debit__gte=0),
                name="chk_journal_line_debit_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(credit__gte=0),
                name="chk_journal_line_credit_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(debit=0) | Q(credit=0),
                name="chk_journal_line_single_side",
            ),
        ]

    def __str__(self):
        if self.debit:
            return f"Dr {self.debit} → {self.account}"
        return f"Cr {self.credit} → {self.account}"

    @property
    def net(self) -> Decimal:
        """Effect of this line on the account balance (debit - credit)."""
        return (self.debit or ZERO) - (self.credit or ZERO)

    def clean(self):
        if self.debit and self.credit:
            raise ValidationError("A journal line cannot carry both a debit and a credit")

        if (
            self.journal_entry_id
            and self.account_id
            and self.account.tenant_id != self.journal_entry.tenant_id
        ):
            raise ValidationError({"account": "Account belongs to another tenant"})
