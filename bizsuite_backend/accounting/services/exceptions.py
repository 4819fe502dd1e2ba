# accounting/services/exceptions.py

"""
ACCOUNTING SERVICE ERRORS

Centralized domain errors for the ledger engine, plus the result value
returned across the component boundary (callers that must not see
exceptions get a PostingResult instead).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.utils.translation import gettext as _


class LedgerError(Exception):
    """Base exception for all ledger engine failures."""

    default_message = "Ledger operation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class LedgerValidationError(LedgerError):
    """Malformed input from a caller. Raised before any write."""

    default_message = "Invalid journal entry input"


class UnbalancedEntryError(LedgerError):
    """Debits and credits differ by more than the configured tolerance."""

    default_message = "Journal entry is not balanced"


class FiscalYearError(LedgerError):
    """No open fiscal year could be resolved or created."""

    default_message = "No open fiscal year available"


class EntryNotFoundError(LedgerError):
    """Reversal target is missing or owned by another tenant."""

    default_message = "Journal entry not found"


class AccountInUseError(LedgerError):
    """Account deletion blocked by sub-accounts or journal lines."""

    default_message = "Account is in use"


class AccountResolutionError(LedgerError):
    """Raised when an operational account cannot be resolved or created."""

    default_message = "Account could not be resolved"


class PostingRuleError(LedgerError):
    """Raised when a posting recipe cannot build or submit its lines."""

    default_message = "Posting rule could not be applied"


@dataclass
class PostingResult:
    success: bool
    message: str
    entry: Any = None
    error: LedgerError | None = None

    @classmethod
    def ok(cls, message: str, entry=None) -> "PostingResult":
        return cls(success=True, message=message, entry=entry)

    @classmethod
    def failed(cls, error: Exception) -> "PostingResult":
        if isinstance(error, LedgerError):
            return cls(success=False, message=error.message, error=error)
        return cls(success=False, message=str(error) or error.__class__.__name__)

    def warning_for(self, message: str) -> str:
        """
        Append this ledger outcome to a business-level success message.

        A successful posting leaves the message untouched.
        """
        if self.success:
            return message
        return _("%(message)s (warning: journal entry not recorded: %(reason)s)") % {
            "message": message,
            "reason": self.message,
        }

    def __bool__(self) -> bool:
        return self.success
