# accounting/models/account.py

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from tenants.models import Tenant


class Account(models.Model):
    """
    A node in a tenant's chart of accounts, carrying a running balance.

    Guarantees:
    - Account codes are unique per tenant
    - Code + name are normalized (trimmed)
    - The parent belongs to the same tenant
    - balance is written only by the ledger engine (F() increments);
      save() on an existing row never touches it
    - An account with children or journal lines cannot be deleted
    """

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    ACCOUNT_TYPES = [
        (ASSET, "Asset"),
        (LIABILITY, "Liability"),
        (EQUITY, "Equity"),
        (REVENUE, "Revenue"),
        (EXPENSE, "Expense"),
    ]

    tenant = models.ForeignKey(
        Tenant,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    code = models.CharField(max_length=32)
    name = models.CharField(max_length=150)

    account_type = models.CharField(
        max_length=20,
        choices=ACCOUNT_TYPES,
    )

    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="children",
    )

    is_active = models.BooleanField(default=True)

    balance = models.DecimalField(
        max_digits=20,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text="Sum of (debit - credit) over posted journal lines",
    )

    # Canonical role claimed by the account resolver ("treasury", "supplier:acme", ...).
    role_key = models.CharField(
        max_length=200,
        null=True,
        blank=True,
        default=None,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["code"]
        verbose_name = "Account"
        verbose_name_plural = "Accounts"
        indexes = [
            models.Index(fields=["tenant", "account_type"], name="accounting__tenant__c6f0a1_idx"),
            models.Index(fields=["tenant", "name"], name="accounting__tenant__4b2e9d_idx"),
            models.Index(fields=["is_active"], name="accounting__is_acti_9a7c3e_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "code"],
                name="uniq_account_tenant_code",
            ),
            models.UniqueConstraint(
                fields=["tenant", "role_key"],
                condition=Q(role_key__isnull=False),
                name="uniq_account_tenant_role_key",
            ),
            models.CheckConstraint(
                condition=~Q(code=""),
                name="chk_account_code_not_blank",
            ),
            models.CheckConstraint(
                condition=~Q(name=""),
                name="chk_account_name_not_blank",
            ),
        ]

    def __str__(self):
        return f"{self.code} – {self.name}"

    def clean(self):
        self.code = (self.code or "").strip()
        self.name = (self.name or "").strip()

        if not self.code:
            raise ValidationError("Account code is required")
        if not self.name:
            raise ValidationError("Account name is required")

        if self.parent_id is not None:
            if self.pk is not None and self.parent_id == self.pk:
                raise ValidationError({"parent": "An account cannot be its own parent"})
            if self.parent.tenant_id != self.tenant_id:
                raise ValidationError({"parent": "Parent account belongs to another tenant"})

    def save(self, *args, **kwargs):
        self.full_clean()

        if self.pk and not self._state.adding:
            update_fields = kwargs.get("update_fields")
            if update_fields is None:
                update_fields = [
                    f.name
                    for f in self._meta.concrete_fields
                    if not f.primary_key and f.name != "balance"
                ]
            kwargs["update_fields"] = [f for f in update_fields if f != "balance"]

        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        from accounting.services.exceptions import AccountInUseError

        if self.children.exists():
            raise AccountInUseError(
                f"Account {self.code} has sub-accounts and cannot be deleted"
            )
        if self.journal_lines.exists():
            raise AccountInUseError(
                f"Account {self.code} has journal lines and cannot be deleted"
            )
        return super().delete(*args, **kwargs)
