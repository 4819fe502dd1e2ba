# accounting/services/posting.py

"""
======================================================
PATH: accounting/services/posting.py
======================================================
POSTING ADAPTER

Shared plumbing for the posting recipes (posting_rules_*.py).

This module should remain a thin adapter:
- It DOES NOT compute business amounts (recipes do).
- It DOES apply the ledger failure policy for recipes.
- It ALWAYS posts through journal_entry_service (the engine).

FAILURE POLICY (settings.LEDGER_STRICT_POSTING):
- False (default): a recipe that cannot post rolls back its own savepoint
  (accounts it created included) and returns a failed PostingResult.
  The caller keeps its business document and shows
  result.warning_for(success_message) to the user.
- True: the failure is raised as PostingRuleError and the caller's
  transaction rolls back with it.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.utils.translation import gettext as _

from accounting.services.exceptions import PostingResult, PostingRuleError
from accounting.services.journal_entry_service import (
    BOUNDARY_ERRORS,
    post_journal_entry,
    reverse_entries_for_source,
)
from accounting.services.money import ZERO, money, to_base

logger = logging.getLogger(__name__)

# source_type values written on JournalEntry by the recipes
SALE = "sale"
SALE_RETURN = "sale_return"
PURCHASE = "purchase"
PURCHASE_RETURN = "purchase_return"
PAYROLL = "payroll"
EMPLOYEE_ADVANCE = "employee_advance"
COMMISSION = "commission"
VOUCHER = "voucher"


def strict_posting() -> bool:
    return bool(getattr(settings, "LEDGER_STRICT_POSTING", False))


def non_negative(value, *, field: str) -> Decimal:
    amt = money(value, field=field)
    if amt < ZERO:
        raise PostingRuleError(f"{field} cannot be negative")
    return amt


def base_amount(value, exchange_rate, *, field: str) -> Decimal:
    """Validated document amount converted to base currency."""
    non_negative(value, field=field)
    return to_base(value, exchange_rate)


def prorate(amount: Decimal, part: Decimal, whole: Decimal) -> Decimal:
    """amount * part / whole, 2dp; zero when whole is zero."""
    if whole <= ZERO or amount <= ZERO or part <= ZERO:
        return ZERO
    if part == whole:
        return amount
    return money(amount * part / whole)


def split_settlement(
    total_b: Decimal, *, settled, outstanding_doc: Decimal, exchange_rate
) -> tuple[Decimal, Decimal]:
    """
    Split a base-currency total into (settled, outstanding) parts that sum
    exactly to total_b. A document with nothing outstanding is fully
    settled in base currency too, whatever the per-amount rounding.
    """
    if outstanding_doc == ZERO:
        return total_b, ZERO
    settled_b = min(to_base(settled, exchange_rate), total_b)
    return settled_b, total_b - settled_b


def _fail(exc: Exception, *, tenant, source_type: str, source_id, reference) -> PostingResult:
    if strict_posting():
        raise PostingRuleError(
            f"Ledger posting failed for {source_type} {reference or source_id}: {exc}"
        ) from exc

    logger.warning(
        "Ledger posting skipped; business document kept: %s",
        exc,
        extra={
            "tenant_id": str(getattr(tenant, "pk", "")),
            "source_type": source_type,
            "source_id": str(source_id),
            "reference": reference,
            "error": exc.__class__.__name__,
        },
    )
    return PostingResult.failed(exc)


def submit_posting(
    tenant,
    *,
    build_lines,
    transaction_date,
    description: str,
    reference: str | None,
    source_type: str,
    source_id,
    currency: str | None = None,
    exchange_rate=None,
    created_by=None,
) -> PostingResult:
    """
    Resolve accounts + build lines (build_lines()) and post them, all in one
    savepoint, then apply the failure policy.
    """
    try:
        with transaction.atomic():
            lines = [line for line in build_lines() if line is not None]
            entry = post_journal_entry(
                tenant=tenant,
                transaction_date=transaction_date,
                lines=lines,
                description=description,
                reference=reference,
                currency=currency,
                exchange_rate=exchange_rate,
                source_type=source_type,
                source_id=source_id,
                created_by=created_by,
            )
    except BOUNDARY_ERRORS as exc:
        return _fail(
            exc,
            tenant=tenant,
            source_type=source_type,
            source_id=source_id,
            reference=reference,
        )

    return PostingResult.ok(
        _("Journal entry %(number)s posted successfully") % {"number": entry.entry_number},
        entry=entry,
    )


def reverse_document_postings(tenant, source_type: str, source_id) -> PostingResult:
    """
    Reverse every entry a business document produced, before the document
    is edited (and re-posted) or deleted.
    """
    try:
        with transaction.atomic():
            count = reverse_entries_for_source(
                tenant=tenant, source_type=source_type, source_id=source_id
            )
    except BOUNDARY_ERRORS as exc:
        return _fail(
            exc,
            tenant=tenant,
            source_type=source_type,
            source_id=source_id,
            reference=None,
        )

    return PostingResult.ok(
        _("%(count)d journal entries reversed") % {"count": count}
    )
