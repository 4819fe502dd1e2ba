# accounting/apps.py

"""
ACCOUNTING APP CONFIG

Double-entry ledger engine:
- Chart of accounts with running balances
- Fiscal years
- Journal posting / reversal
- Originator posting recipes (sales, purchases, payroll, commission, vouchers)
"""

from django.apps import AppConfig


class AccountingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "accounting"
    verbose_name = "Accounting Ledger"
