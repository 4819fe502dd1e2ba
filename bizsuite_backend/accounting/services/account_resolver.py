# PATH: accounting/services/account_resolver.py

"""
PATH: accounting/services/account_resolver.py

ACCOUNT RESOLVER (AUTHORITATIVE)

This module answers ONE question:
"Which account should be used for this purpose?"

The chart of accounts grows lazily: nothing here assumes a pre-seeded
chart. For each operational role (treasury, sales revenue, purchases...)
the lookup order is:

1) The account already claimed for the role (Account.role_key).
2) An unclaimed active account of the role's type whose name contains one
   of the role's name fragments (Arabic or English, case-insensitive).
3) A new account: "<prefix>-<4 digit time suffix>", the role's type,
   zero balance, parented under the seeded root of that type if present.

The found / created account is claimed by writing role_key. The unique
(tenant, role_key) constraint makes concurrent first use converge on one
account: the loser's write fails inside a savepoint and it re-reads the
winner's claim.

Party accounts (one payable per supplier, one receivable per customer)
follow the same scheme with role_key "supplier:<name>" / "customer:<name>"
and exact (trimmed, case-insensitive) name matching.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from accounting.models.account import Account
from accounting.services.account_service import DEFAULT_ROOT_CODES
from accounting.services.exceptions import AccountResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountRole:
    key: str
    account_type: str
    code_prefix: str
    default_name: str
    fragments: tuple[str, ...]


TREASURY = AccountRole(
    key="treasury",
    account_type=Account.ASSET,
    code_prefix="101",
    default_name="الخزينة (Cash)",
    fragments=("نقدية", "خزينة", "خزنة", "صندوق", "cash", "treasury"),
)
SALES_REVENUE = AccountRole(
    key="sales_revenue",
    account_type=Account.REVENUE,
    code_prefix="401",
    default_name="إيرادات المبيعات (Sales Revenue)",
    fragments=("مبيعات", "sales"),
)
SALES_TAX = AccountRole(
    key="sales_tax",
    account_type=Account.LIABILITY,
    code_prefix="211",
    default_name="ضريبة القيمة المضافة (VAT Payable)",
    fragments=("ضريبة", "vat", "tax"),
)
RECEIVABLES = AccountRole(
    key="receivables",
    account_type=Account.ASSET,
    code_prefix="102",
    default_name="العملاء (Accounts Receivable)",
    fragments=("عملاء", "مدينون", "receivable"),
)
DISCOUNT_ALLOWED = AccountRole(
    key="discount_allowed",
    account_type=Account.EXPENSE,
    code_prefix="503",
    default_name="خصم مسموح به (Discount Allowed)",
    fragments=("خصم مسموح", "discount"),
)
PURCHASES = AccountRole(
    key="purchases",
    account_type=Account.EXPENSE,
    code_prefix="501",
    default_name="المشتريات (Purchases)",
    fragments=("مشتريات", "purchase"),
)
SALARIES = AccountRole(
    key="salaries",
    account_type=Account.EXPENSE,
    code_prefix="5101",
    default_name="مصروفات رواتب وأجور (Salaries & Wages)",
    fragments=("رواتب", "أجور", "salar", "wage"),
)
ADVANCES = AccountRole(
    key="employee_advances",
    account_type=Account.ASSET,
    code_prefix="1205",
    default_name="سلف موظفين (Employee Advances)",
    fragments=("سلف", "advance"),
)
PENALTIES = AccountRole(
    key="penalties",
    account_type=Account.REVENUE,
    code_prefix="4205",
    default_name="إيرادات جزاءات ومخالفات (Penalties Income)",
    fragments=("جزاءات", "penalt"),
)
COMMISSION = AccountRole(
    key="commission",
    account_type=Account.EXPENSE,
    code_prefix="502",
    default_name="عمولات بيع وتوزيع (Sales Commission)",
    fragments=("عمولات", "عمولة", "commission"),
)

ROLES = {
    role.key: role
    for role in (
        TREASURY,
        SALES_REVENUE,
        SALES_TAX,
        RECEIVABLES,
        DISCOUNT_ALLOWED,
        PURCHASES,
        SALARIES,
        ADVANCES,
        PENALTIES,
        COMMISSION,
    )
}

SUPPLIER = "supplier"
CUSTOMER = "customer"

PARTY_TYPES = {
    SUPPLIER: (Account.LIABILITY, "210"),
    CUSTOMER: (Account.ASSET, "102"),
}


def _norm(s) -> str:
    if s is None:
        return ""
    return " ".join(str(s).strip().lower().split())


# ------------------------------------------------------------
# INTERNALS
# ------------------------------------------------------------


def _claimed_account(tenant, role_key: str) -> Account | None:
    return Account.objects.filter(tenant=tenant, role_key=role_key).first()


def _find_by_fragments(tenant, role: AccountRole) -> Account | None:
    match = Q()
    for fragment in role.fragments:
        match |= Q(name__icontains=fragment)

    return (
        Account.objects.filter(
            tenant=tenant,
            account_type=role.account_type,
            is_active=True,
            role_key__isnull=True,
        )
        .filter(match)
        .order_by("code")
        .first()
    )


def _find_party(tenant, account_type: str, name: str, role_key: str) -> Account | None:
    return (
        Account.objects.filter(
            tenant=tenant,
            account_type=account_type,
            name__iexact=name,
        )
        .filter(Q(role_key__isnull=True) | Q(role_key=role_key))
        .order_by("code")
        .first()
    )


def _next_free_code(tenant, prefix: str) -> str:
    """<prefix>-<last 4 digits of the ms clock>, bumped until unused."""
    seed = int(timezone.now().timestamp() * 1000) % 10000
    for step in range(10000):
        code = f"{prefix}-{(seed + step) % 10000:04d}"
        if not Account.objects.filter(tenant=tenant, code=code).exists():
            return code
    raise AccountResolutionError(f"No free account code left under prefix {prefix}")


def _default_parent(tenant, account_type: str) -> Account | None:
    code = DEFAULT_ROOT_CODES.get(account_type)
    if not code:
        return None
    return Account.objects.filter(
        tenant=tenant, code=code, account_type=account_type
    ).first()


def _claim(account: Account, role_key: str) -> Account:
    account.role_key = role_key
    account.save(update_fields=["role_key", "updated_at"])
    return account


def _claim_or_create(
    tenant,
    *,
    role_key: str,
    account_type: str,
    code_prefix: str,
    name: str,
    found: Account | None,
) -> Account:
    if found is not None:
        if found.role_key == role_key:
            return found
        logger.info(
            "Claimed existing account %s for role %s",
            found.code,
            role_key,
            extra={"tenant_id": str(tenant.pk), "account_id": found.pk},
        )
        return _claim(found, role_key)

    account = Account.objects.create(
        tenant=tenant,
        code=_next_free_code(tenant, code_prefix),
        name=name,
        account_type=account_type,
        parent=_default_parent(tenant, account_type),
        role_key=role_key,
    )
    logger.info(
        "Created account %s (%s) for role %s",
        account.code,
        account.name,
        role_key,
        extra={"tenant_id": str(tenant.pk), "account_id": account.pk},
    )
    return account


def _resolve(tenant, role_key: str, build, *, attempts: int = 2) -> Account:
    account = _claimed_account(tenant, role_key)
    if account is not None:
        return account

    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                return build()
        except (IntegrityError, ValidationError) as exc:
            # A concurrent request claimed the role first.
            account = _claimed_account(tenant, role_key)
            if account is not None:
                logger.info(
                    "Role %s resolved concurrently; using account %s",
                    role_key,
                    account.code,
                    extra={"tenant_id": str(tenant.pk), "account_id": account.pk},
                )
                return account
            # Otherwise another role took our generated code; draw a fresh one.
            if attempt == attempts:
                raise AccountResolutionError(
                    f"Could not resolve account for role {role_key}: {exc}"
                ) from exc
            logger.info(
                "Account code collision for role %s; retrying",
                role_key,
                extra={"tenant_id": str(tenant.pk)},
            )


# ------------------------------------------------------------
# PUBLIC API
# ------------------------------------------------------------


def resolve_account(tenant, role) -> Account:
    if isinstance(role, str):
        try:
            role = ROLES[role]
        except KeyError as exc:
            raise AccountResolutionError(f"Unknown account role: {role}") from exc

    return _resolve(
        tenant,
        role.key,
        lambda: _claim_or_create(
            tenant,
            role_key=role.key,
            account_type=role.account_type,
            code_prefix=role.code_prefix,
            name=role.default_name,
            found=_find_by_fragments(tenant, role),
        ),
    )


def resolve_party_account(tenant, party_type: str, name: str) -> Account:
    if party_type not in PARTY_TYPES:
        raise AccountResolutionError(f"Unknown party type: {party_type}")

    display_name = " ".join(str(name or "").split())
    if not display_name:
        raise AccountResolutionError(f"A {party_type} name is required")

    account_type, code_prefix = PARTY_TYPES[party_type]
    role_key = f"{party_type}:{_norm(display_name)}"[:200]

    return _resolve(
        tenant,
        role_key,
        lambda: _claim_or_create(
            tenant,
            role_key=role_key,
            account_type=account_type,
            code_prefix=code_prefix,
            name=display_name[:150],
            found=_find_party(tenant, account_type, display_name, role_key),
        ),
    )


def get_treasury_account(tenant) -> Account:
    return resolve_account(tenant, TREASURY)


def get_sales_revenue_account(tenant) -> Account:
    return resolve_account(tenant, SALES_REVENUE)


def get_sales_tax_account(tenant) -> Account:
    return resolve_account(tenant, SALES_TAX)


def get_receivables_account(tenant) -> Account:
    return resolve_account(tenant, RECEIVABLES)


def get_discount_allowed_account(tenant) -> Account:
    return resolve_account(tenant, DISCOUNT_ALLOWED)


def get_purchases_account(tenant) -> Account:
    return resolve_account(tenant, PURCHASES)


def get_salaries_account(tenant) -> Account:
    return resolve_account(tenant, SALARIES)


def get_advances_account(tenant) -> Account:
    return resolve_account(tenant, ADVANCES)


def get_penalties_account(tenant) -> Account:
    return resolve_account(tenant, PENALTIES)


def get_commission_account(tenant) -> Account:
    return resolve_account(tenant, COMMISSION)


def get_supplier_account(tenant, name: str) -> Account:
    return resolve_party_account(tenant, SUPPLIER, name)


def get_customer_account(tenant, name: str) -> Account:
    return resolve_party_account(tenant, CUSTOMER, name)
