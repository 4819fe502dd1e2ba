"""
======================================================
PATH: accounting/migrations/0001_initial.py
======================================================
MIGRATION: LEDGER TABLES

Creates accounts, fiscal years, journal entries and journal lines,
all scoped by tenant.
"""

from __future__ import annotations

import decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("tenants", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Account",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("code", models.CharField(max_length=32)),
                ("name", models.CharField(max_length=150)),
                (
                    "account_type",
                    models.CharField(
                        choices=[
                            ("asset", "Asset"),
                            ("liability", "Liability"),
                            ("equity", "Equity"),
                            ("revenue", "Revenue"),
                            ("expense", "Expense"),
                        ],
                        max_length=20,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
                (
                    "balance",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        help_text="Sum of (debit - credit) over posted journal lines",
                        max_digits=20,
                    ),
                ),
                (
                    "role_key",
                    models.CharField(
                        blank=True, default=None, max_length=200, null=True
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="children",
                        to="accounting.account",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="accounts",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Account",
                "verbose_name_plural": "Accounts",
                "ordering": ["code"],
                "indexes": [
                    models.Index(
                        fields=["tenant", "account_type"],
                        name="accounting__tenant__c6f0a1_idx",
                    ),
                    models.Index(
                        fields=["tenant", "name"],
                        name="accounting__tenant__4b2e9d_idx",
                    ),
                    models.Index(
                        fields=["is_active"],
                        name="accounting__is_acti_9a7c3e_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "code"),
                        name="uniq_account_tenant_code",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("role_key__isnull", False)),
                        fields=("tenant", "role_key"),
                        name="uniq_account_tenant_role_key",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("code", ""), _negated=True),
                        name="chk_account_code_not_blank",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("name", ""), _negated=True),
                        name="chk_account_name_not_blank",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="FiscalYear",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=100)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                (
                    "is_closed",
                    models.BooleanField(
                        default=False,
                        help_text="Closed years accept no new postings",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="fiscal_years",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Fiscal Year",
                "verbose_name_plural": "Fiscal Years",
                "ordering": ["-start_date"],
                "indexes": [
                    models.Index(
                        fields=["tenant", "is_closed"],
                        name="accounting__tenant__e1d84b_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_closed", False)),
                        fields=("tenant",),
                        name="uniq_open_fiscal_year_per_tenant",
                    ),
                    models.UniqueConstraint(
                        fields=("tenant", "start_date", "end_date"),
                        name="uniq_fiscal_year_tenant_window",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("end_date__gte", models.F("start_date"))
                        ),
                        name="chk_fiscal_year_end_after_start",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("entry_number", models.CharField(max_length=64)),
                (
                    "transaction_date",
                    models.DateField(help_text="Accounting effective date"),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="External reference (invoice number, voucher number, etc.)",
                        max_length=100,
                        null=True,
                    ),
                ),
                ("currency", models.CharField(max_length=3)),
                (
                    "exchange_rate",
                    models.DecimalField(
                        decimal_places=6,
                        default=decimal.Decimal("1"),
                        help_text="Document currency → base currency rate (audit only)",
                        max_digits=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("posted", "Posted"),
                            ("void", "Void"),
                        ],
                        default="posted",
                        max_length=10,
                    ),
                ),
                (
                    "source_type",
                    models.CharField(blank=True, max_length=50, null=True),
                ),
                (
                    "source_id",
                    models.CharField(blank=True, max_length=100, null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="journal_entries",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "fiscal_year",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_entries",
                        to="accounting.fiscalyear",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="journal_entries",
                        to="tenants.tenant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Entry",
                "verbose_name_plural": "Journal Entries",
                "ordering": ["-transaction_date", "-created_at"],
                "indexes": [
                    models.Index(
                        fields=["tenant", "transaction_date"],
                        name="accounting__tenant__7f3b20_idx",
                    ),
                    models.Index(
                        fields=["tenant", "reference"],
                        name="accounting__tenant__2c91da_idx",
                    ),
                    models.Index(
                        fields=["tenant", "source_type", "source_id"],
                        name="accounting__tenant__58e6f4_idx",
                    ),
                    models.Index(
                        fields=["status"],
                        name="accounting__status_0d4a77_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "entry_number"),
                        name="uniq_journal_entry_number_per_tenant",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("exchange_rate__gt", 0)),
                        name="chk_journal_exchange_rate_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalLine",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "description",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "debit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=20,
                        validators=[
                            django.core.validators.MinValueValidator(
                                decimal.Decimal("0.00")
                            )
                        ],
                    ),
                ),
                (
                    "credit",
                    models.DecimalField(
                        decimal_places=2,
                        default=decimal.Decimal("0.00"),
                        max_digits=20,
                        validators=[
                            django.core.validators.MinValueValidator(
                                decimal.Decimal("0.00")
                            )
                        ],
                    ),
                ),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="journal_lines",
                        to="accounting.account",
                    ),
                ),
                (
                    "journal_entry",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="accounting.journalentry",
                    ),
                ),
            ],
            options={
                "verbose_name": "Journal Line",
                "verbose_name_plural": "Journal Lines",
                "ordering": ["id"],
                "indexes": [
                    models.Index(
                        fields=["account"],
                        name="accounting__account_3e5c19_idx",
                    ),
                    models.Index(
                        fields=["journal_entry"],
                        name="accounting__journal_a6b0f2_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("debit__gte", 0)),
                        name="chk_journal_line_debit_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("credit__gte", 0)),
                        name="chk_journal_line_credit_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("debit", 0), ("credit", 0), _connector="OR"),
                        name="chk_journal_line_single_side",
                    ),
                ],
            },
        ),
    ]
