# accounting/services/journal_entry_service.py

"""
======================================================
PATH: accounting/services/journal_entry_service.py
======================================================
JOURNAL ENTRY SERVICE (LEDGER ENGINE)

This module is the ONLY place allowed to:
- Create / delete JournalEntry and JournalLine rows
- Enforce debit == credit (within LEDGER_BALANCE_TOLERANCE)
- Change Account.balance (atomic F() increments, one per line)
- Guarantee atomicity of header + lines + balances

Everything else (sales, purchases, payroll, vouchers) must pass through here.

Two layers:
- post_journal_entry / reverse_journal_entry RAISE LedgerError subclasses.
  They run under transaction.atomic, so inside a caller's transaction they
  become a savepoint and the caller decides what a failure means.
- create_journal_entry / delete_journal_entry / void_journal_entry are the
  component boundary: they never raise ledger or database errors and return
  a PostingResult instead.

Balance convention:
- Account.balance == SUM(debit - credit) over lines of POSTED entries.
  Same arithmetic for every account type; recipes pick the side.
"""

from __future__ import annotations

import logging
import secrets
from datetime import date, datetime
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime
from django.utils.translation import gettext as _

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.serializers import JournalEntryInputSerializer
from accounting.services.exceptions import (
    EntryNotFoundError,
    FiscalYearError,
    LedgerError,
    LedgerValidationError,
    PostingResult,
    UnbalancedEntryError,
)
from accounting.services.fiscal_year_service import get_open_fiscal_year
from accounting.services.money import ZERO, balance_tolerance, money, rate

logger = logging.getLogger(__name__)

BOUNDARY_ERRORS = (LedgerError, DjangoValidationError, DatabaseError)


# ------------------------------------------------------------
# INPUT NORMALIZATION
# ------------------------------------------------------------


def _normalize_date(value) -> date:
    """Strip any time component; the persisted date is date-only."""
    if value is None:
        return timezone.localdate()

    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        raw = value.strip()
        try:
            parsed_dt = parse_datetime(raw)
            if parsed_dt is not None:
                return _normalize_date(parsed_dt)
            parsed = parse_date(raw)
        except ValueError as exc:
            raise LedgerValidationError(f"Invalid transaction date: {value!r}") from exc
        if parsed is not None:
            return parsed

    raise LedgerValidationError(f"Invalid transaction date: {value!r}")


def _normalize_line(raw) -> dict:
    if not isinstance(raw, dict):
        raise LedgerValidationError("Each journal line must be a dict")

    account = raw.get("account", raw.get("account_id"))
    return {
        "account_id": getattr(account, "pk", account),
        "description": (raw.get("description") or "").strip(),
        "debit": money(raw.get("debit"), field="debit"),
        "credit": money(raw.get("credit"), field="credit"),
    }


def _flatten_errors(errors, prefix: str = "") -> list[str]:
    if isinstance(errors, dict):
        out: list[str] = []
        for key, value in errors.items():
            label = prefix if key == "non_field_errors" else f"{prefix}.{key}".strip(".")
            out.extend(_flatten_errors(value, label))
        return out

    if isinstance(errors, list):
        out = []
        for idx, item in enumerate(errors):
            if isinstance(item, (dict, list)):
                out.extend(_flatten_errors(item, f"{prefix}[{idx}]"))
            else:
                out.append(f"{prefix}: {item}" if prefix else str(item))
        return out

    return [f"{prefix}: {errors}" if prefix else str(errors)]


def _validated_payload(
    *,
    tenant,
    transaction_date,
    lines,
    description,
    reference,
    currency,
    exchange_rate,
    source_type,
    source_id,
) -> dict:
    if tenant is None:
        raise LedgerValidationError("Tenant is required")

    if not isinstance(lines, (list, tuple)):
        raise LedgerValidationError("Journal lines must be a list")

    base_currency = getattr(tenant, "base_currency", None) or settings.LEDGER_BASE_CURRENCY
    data = {
        "transaction_date": _normalize_date(transaction_date),
        "description": description or "",
        "reference": reference,
        "currency": (currency or base_currency),
        "exchange_rate": rate(exchange_rate),
        "source_type": source_type,
        "source_id": None if source_id is None else str(source_id),
        "lines": [_normalize_line(line) for line in lines],
    }

    serializer = JournalEntryInputSerializer(data=data)
    if not serializer.is_valid():
        raise LedgerValidationError("; ".join(_flatten_errors(serializer.errors)))
    return serializer.validated_data


def _check_balance(lines) -> tuple[Decimal, Decimal]:
    total_debit = sum((line["debit"] for line in lines), ZERO)
    total_credit = sum((line["credit"] for line in lines), ZERO)

    if abs(total_debit - total_credit) >= balance_tolerance():
        raise UnbalancedEntryError(
            f"Journal entry not balanced: debits={total_debit} credits={total_credit}"
        )
    return total_debit, total_credit


def _load_accounts(tenant, lines) -> dict:
    wanted = {line["account_id"] for line in lines}
    accounts = {a.pk: a for a in Account.objects.filter(tenant=tenant, pk__in=wanted)}

    missing = sorted(wanted - set(accounts))
    if missing:
        raise LedgerValidationError(
            f"Account(s) {missing} do not exist for this tenant"
        )

    inactive = sorted(a.code for a in accounts.values() if not a.is_active)
    if inactive:
        raise LedgerValidationError(f"Account(s) {inactive} are inactive")

    return accounts


def generate_entry_number(now: datetime | None = None) -> str:
    """JE-YYYYMMDDHHMMSSffffff-XXXX (time-based, random suffix)."""
    now = now or timezone.now()
    return f"JE-{now:%Y%m%d%H%M%S%f}-{secrets.token_hex(2).upper()}"


def _apply_balance(account_id, delta: Decimal) -> None:
    if delta:
        Account.objects.filter(pk=account_id).update(balance=F("balance") + delta)


# ------------------------------------------------------------
# POSTER
# ------------------------------------------------------------


@transaction.atomic
def post_journal_entry(
    *,
    tenant,
    transaction_date,
    lines: list,
    description: str = "",
    reference: str | None = None,
    currency: str | None = None,
    exchange_rate=None,
    source_type: str | None = None,
    source_id=None,
    created_by=None,
) -> JournalEntry:
    """
    Validate and commit a balanced journal entry.

    Lines are dicts: {account | account_id, description?, debit, credit}.
    Raises LedgerValidationError, UnbalancedEntryError or FiscalYearError;
    nothing is written unless every check passes.
    """
    payload = _validated_payload(
        tenant=tenant,
        transaction_date=transaction_date,
        lines=lines,
        description=description,
        reference=reference,
        currency=currency,
        exchange_rate=exchange_rate,
        source_type=source_type,
        source_id=source_id,
    )
    clean_lines = payload["lines"]

    total_debit, _total_credit = _check_balance(clean_lines)
    _load_accounts(tenant, clean_lines)

    fiscal_year = get_open_fiscal_year(tenant)
    if not fiscal_year.contains(payload["transaction_date"]):
        logger.warning(
            "Posting dated outside the open fiscal year",
            extra={
                "tenant_id": str(tenant.pk),
                "fiscal_year": fiscal_year.name,
                "transaction_date": payload["transaction_date"].isoformat(),
            },
        )

    entry = JournalEntry.objects.create(
        tenant=tenant,
        fiscal_year=fiscal_year,
        entry_number=generate_entry_number(),
        transaction_date=payload["transaction_date"],
        description=payload["description"],
        reference=payload["reference"],
        currency=payload["currency"],
        exchange_rate=payload["exchange_rate"],
        status=JournalEntry.POSTED,
        source_type=payload["source_type"],
        source_id=payload["source_id"],
        created_by=created_by,
    )

    JournalLine.objects.bulk_create(
        [
            JournalLine(
                journal_entry=entry,
                account_id=line["account_id"],
                description=line["description"],
                debit=line["debit"],
                credit=line["credit"],
            )
            for line in clean_lines
        ]
    )

    for line in clean_lines:
        _apply_balance(line["account_id"], line["debit"] - line["credit"])

    logger.info(
        "Posted journal entry %s",
        entry.entry_number,
        extra={
            "tenant_id": str(tenant.pk),
            "entry_id": entry.pk,
            "reference": entry.reference,
            "source_type": entry.source_type,
            "source_id": entry.source_id,
            "line_count": len(clean_lines),
            "total": str(total_debit),
        },
    )
    return entry


def create_journal_entry(**kwargs) -> PostingResult:
    """Boundary wrapper around post_journal_entry; never raises ledger errors."""
    try:
        entry = post_journal_entry(**kwargs)
    except BOUNDARY_ERRORS as exc:
        tenant = kwargs.get("tenant")
        logger.warning(
            "Journal entry rejected: %s",
            exc,
            extra={
                "tenant_id": str(getattr(tenant, "pk", "")),
                "reference": kwargs.get("reference"),
                "error": exc.__class__.__name__,
            },
        )
        return PostingResult.failed(_boundary_error(exc))

    return PostingResult.ok(
        _("Journal entry %(number)s posted successfully") % {"number": entry.entry_number},
        entry=entry,
    )


def _boundary_error(exc: Exception) -> LedgerError:
    if isinstance(exc, LedgerError):
        return exc
    if isinstance(exc, DjangoValidationError):
        return LedgerValidationError("; ".join(exc.messages))
    return LedgerError(_("Database error while writing the journal entry: %(error)s") % {"error": exc})


# ------------------------------------------------------------
# REVERSER
# ------------------------------------------------------------


def _locked_entry(tenant, entry_id) -> JournalEntry:
    try:
        return JournalEntry.objects.select_for_update().get(tenant=tenant, pk=entry_id)
    except (JournalEntry.DoesNotExist, ValueError, TypeError) as exc:
        raise EntryNotFoundError(f"Journal entry {entry_id} not found") from exc


def _assert_year_open(entry: JournalEntry) -> None:
    if entry.fiscal_year.is_closed:
        raise FiscalYearError(
            f"Journal entry {entry.entry_number} belongs to closed fiscal year "
            f"{entry.fiscal_year.name}"
        )


def _unapply(entry: JournalEntry) -> None:
    for line in entry.lines.all():
        _apply_balance(line.account_id, -line.net)


@transaction.atomic
def reverse_journal_entry(*, tenant, entry_id) -> None:
    """
    Undo an entry's balance effect, then delete its lines and header.

    A second call for the same id raises EntryNotFoundError; the balance
    effect is never applied twice. Void entries were already undone, so
    they are only deleted.
    """
    entry = _locked_entry(tenant, entry_id)
    _assert_year_open(entry)

    if entry.status == JournalEntry.POSTED:
        _unapply(entry)

    number = entry.entry_number
    entry.lines.all().delete()
    entry.delete()

    logger.info(
        "Reversed journal entry %s",
        number,
        extra={"tenant_id": str(tenant.pk), "entry_id": entry_id},
    )


def delete_journal_entry(*, tenant, entry_id) -> PostingResult:
    try:
        reverse_journal_entry(tenant=tenant, entry_id=entry_id)
    except BOUNDARY_ERRORS as exc:
        logger.warning(
            "Journal entry reversal failed: %s",
            exc,
            extra={"tenant_id": str(getattr(tenant, "pk", "")), "entry_id": entry_id},
        )
        return PostingResult.failed(_boundary_error(exc))
    return PostingResult.ok(_("Journal entry deleted and balances restored"))


@transaction.atomic
def _void_entry(*, tenant, entry_id) -> JournalEntry:
    entry = _locked_entry(tenant, entry_id)
    _assert_year_open(entry)

    if entry.status == JournalEntry.VOID:
        raise LedgerValidationError(f"Journal entry {entry.entry_number} is already void")

    if entry.status == JournalEntry.POSTED:
        _unapply(entry)

    entry.status = JournalEntry.VOID
    entry.save(update_fields=["status", "updated_at"])

    logger.info(
        "Voided journal entry %s",
        entry.entry_number,
        extra={"tenant_id": str(tenant.pk), "entry_id": entry.pk},
    )
    return entry


def void_journal_entry(*, tenant, entry_id) -> PostingResult:
    """Undo the balance effect but keep header + lines (status=void) for audit."""
    try:
        entry = _void_entry(tenant=tenant, entry_id=entry_id)
    except BOUNDARY_ERRORS as exc:
        logger.warning(
            "Journal entry void failed: %s",
            exc,
            extra={"tenant_id": str(getattr(tenant, "pk", "")), "entry_id": entry_id},
        )
        return PostingResult.failed(_boundary_error(exc))
    return PostingResult.ok(
        _("Journal entry %(number)s voided") % {"number": entry.entry_number},
        entry=entry,
    )


# ------------------------------------------------------------
# CLEANUP BY SOURCE DOCUMENT
# ------------------------------------------------------------


@transaction.atomic
def reverse_entries_for_source(*, tenant, source_type: str, source_id) -> int:
    """Reverse every entry linked to (source_type, source_id). Returns the count."""
    entry_ids = list(
        JournalEntry.objects.filter(
            tenant=tenant,
            source_type=source_type,
            source_id=str(source_id),
        ).values_list("pk", flat=True)
    )
    for entry_id in entry_ids:
        reverse_journal_entry(tenant=tenant, entry_id=entry_id)
    return len(entry_ids)


@transaction.atomic
def reverse_entries_by_reference(*, tenant, reference: str, exact: bool = True) -> int:
    """
    Legacy cleanup by the free-text reference.

    exact=True matches the whole reference, so "INV-1" never hits "INV-100".
    exact=False is a substring match and can over-match.
    """
    reference = (reference or "").strip()
    if not reference:
        raise LedgerValidationError("Reference is required")

    qs = JournalEntry.objects.filter(tenant=tenant)
    if exact:
        qs = qs.filter(reference=reference)
    else:
        qs = qs.filter(reference__icontains=reference)

    entry_ids = list(qs.values_list("pk", flat=True))
    for entry_id in entry_ids:
        reverse_journal_entry(tenant=tenant, entry_id=entry_id)
    return len(entry_ids)
