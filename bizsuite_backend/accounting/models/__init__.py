# accounting/models/__init__.py

"""
ACCOUNTING MODELS PACKAGE EXPORTS

Note:
- Keep this file *imports-only* (no business logic).
- Do NOT import services from models at module level (models must stay pure).
"""

from accounting.models.account import Account
from accounting.models.fiscal_year import FiscalYear
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine

__all__ = [
    "Account",
    "FiscalYear",
    "JournalEntry",
    "JournalLine",
]
