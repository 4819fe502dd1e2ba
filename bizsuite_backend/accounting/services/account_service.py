# accounting/services/account_service.py

"""
======================================================
PATH: accounting/services/account_service.py
======================================================
ACCOUNT DIRECTORY

Chart-of-accounts maintenance for one tenant:
- create / delete accounts (deletion guarded by children + postings)
- account tree for display
- natural-side balance for reporting
- default root accounts (idempotent seed)
- balance verification / rebuild from posted lines

Account.balance itself is never written here except by
rebuild_account_balances(), the repair tool for a drifted ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils.translation import gettext as _

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services.exceptions import (
    LedgerError,
    LedgerValidationError,
    PostingResult,
)
from accounting.services.money import balance_tolerance

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

# (code, name, type): the five roots of a default chart.
DEFAULT_ROOT_ACCOUNTS = [
    ("1000", "الأصول (Assets)", Account.ASSET),
    ("2000", "الخصوم (Liabilities)", Account.LIABILITY),
    ("3000", "حقوق الملكية (Equity)", Account.EQUITY),
    ("4000", "الإيرادات (Revenue)", Account.REVENUE),
    ("5000", "المصروفات (Expenses)", Account.EXPENSE),
]

DEFAULT_ROOT_CODES = {account_type: code for code, _name, account_type in DEFAULT_ROOT_ACCOUNTS}

CREDIT_NORMAL_TYPES = {Account.LIABILITY, Account.EQUITY, Account.REVENUE}

VALID_TYPES = {value for value, _label in Account.ACCOUNT_TYPES}


@dataclass(frozen=True)
class BalanceMismatch:
    account_id: int
    code: str
    stored: Decimal
    derived: Decimal

    @property
    def difference(self) -> Decimal:
        return self.stored - self.derived


@transaction.atomic
def create_account(tenant, *, code: str, name: str, account_type: str, parent=None) -> Account:
    code = (code or "").strip()
    account_type = (account_type or "").strip().lower()

    if account_type not in VALID_TYPES:
        raise LedgerValidationError(f"Invalid account type: {account_type!r}")

    if isinstance(parent, (int, str)):
        parent = Account.objects.filter(tenant=tenant, pk=parent).first()
        if parent is None:
            raise LedgerValidationError("Parent account not found for this tenant")
    elif parent is not None and parent.tenant_id != tenant.pk:
        raise LedgerValidationError("Parent account belongs to another tenant")

    if Account.objects.filter(tenant=tenant, code=code).exists():
        raise LedgerValidationError(f"Account code {code} already exists")

    try:
        with transaction.atomic():
            account = Account.objects.create(
                tenant=tenant,
                code=code,
                name=name,
                account_type=account_type,
                parent=parent,
            )
    except (ValidationError, IntegrityError) as exc:
        raise LedgerValidationError(str(exc)) from exc

    logger.info(
        "Created account %s",
        account.code,
        extra={"tenant_id": str(tenant.pk), "account_id": account.pk},
    )
    return account


def delete_account(tenant, account_id) -> PostingResult:
    try:
        with transaction.atomic():
            account = Account.objects.filter(tenant=tenant, pk=account_id).first()
            if account is None:
                raise LedgerValidationError(_("Account not found"))
            code = account.code
            account.delete()
    except (LedgerError, ValueError) as exc:
        logger.warning(
            "Account deletion refused: %s",
            exc,
            extra={"tenant_id": str(tenant.pk), "account_id": account_id},
        )
        return PostingResult.failed(exc)

    logger.info(
        "Deleted account %s",
        code,
        extra={"tenant_id": str(tenant.pk), "account_id": account_id},
    )
    return PostingResult.ok(_("Account %(code)s deleted") % {"code": code})


def get_account_tree(tenant) -> list[dict]:
    """Nested dicts, roots first, siblings ordered by code."""
    accounts = list(Account.objects.filter(tenant=tenant).order_by("code"))

    nodes = {
        a.pk: {
            "id": a.pk,
            "code": a.code,
            "name": a.name,
            "account_type": a.account_type,
            "is_active": a.is_active,
            "balance": a.balance,
            "children": [],
        }
        for a in accounts
    }

    roots: list[dict] = []
    for a in accounts:
        if a.parent_id and a.parent_id in nodes:
            nodes[a.parent_id]["children"].append(nodes[a.pk])
        else:
            roots.append(nodes[a.pk])
    return roots


def natural_balance(account: Account) -> Decimal:
    """
    Balance on the account's normal side (reporting only).

    The stored balance is always SUM(debit - credit); credit-normal
    accounts (liability / equity / revenue) are shown negated.
    """
    if account.account_type in CREDIT_NORMAL_TYPES:
        return -account.balance
    return account.balance


@transaction.atomic
def seed_default_accounts(tenant) -> list[Account]:
    """Create the five root accounts if missing. Returns the accounts created."""
    created: list[Account] = []
    for code, name, account_type in DEFAULT_ROOT_ACCOUNTS:
        if Account.objects.filter(tenant=tenant, code=code).exists():
            continue
        created.append(
            Account.objects.create(
                tenant=tenant,
                code=code,
                name=name,
                account_type=account_type,
            )
        )

    if created:
        logger.info(
            "Seeded %d default accounts",
            len(created),
            extra={"tenant_id": str(tenant.pk)},
        )
    return created


def _derived_balances(tenant) -> dict:
    rows = (
        JournalLine.objects.filter(
            journal_entry__tenant=tenant,
            journal_entry__status=JournalEntry.POSTED,
        )
        .values("account_id")
        .order_by()
        .annotate(
            total_debit=Sum("debit", default=ZERO),
            total_credit=Sum("credit", default=ZERO),
        )
    )
    return {
        row["account_id"]: (row["total_debit"] or ZERO) - (row["total_credit"] or ZERO)
        for row in rows
    }


def verify_account_balances(tenant) -> list[BalanceMismatch]:
    derived = _derived_balances(tenant)
    mismatches: list[BalanceMismatch] = []

    for account in Account.objects.filter(tenant=tenant).order_by("code"):
        expected = derived.get(account.pk, ZERO)
        if account.balance != expected:
            mismatches.append(
                BalanceMismatch(
                    account_id=account.pk,
                    code=account.code,
                    stored=account.balance,
                    derived=expected,
                )
            )
    return mismatches


def unbalanced_entries(tenant) -> list[JournalEntry]:
    """Posted entries whose lines do not sum to zero net."""
    tolerance = balance_tolerance()
    entries = (
        JournalEntry.objects.filter(tenant=tenant, status=JournalEntry.POSTED)
        .annotate(
            total_debit=Sum("lines__debit", default=ZERO),
            total_credit=Sum("lines__credit", default=ZERO),
        )
        .order_by("transaction_date", "pk")
    )
    return [e for e in entries if abs(e.total_debit - e.total_credit) >= tolerance]


@transaction.atomic
def rebuild_account_balances(tenant) -> int:
    """Recompute every balance from posted lines. Returns accounts changed."""
    changed = 0
    for mismatch in verify_account_balances(tenant):
        Account.objects.filter(pk=mismatch.account_id).update(balance=mismatch.derived)
        changed += 1
        logger.warning(
            "Rebuilt balance of account %s: %s -> %s",
            mismatch.code,
            mismatch.stored,
            mismatch.derived,
            extra={"tenant_id": str(tenant.pk), "account_id": mismatch.account_id},
        )
    return changed
