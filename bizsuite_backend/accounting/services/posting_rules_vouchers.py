# accounting/services/posting_rules_vouchers.py

"""
POSTING RULES: CASH VOUCHERS

RECEIPT (cash in):   Debit Treasury / Credit party account
PAYMENT (cash out):  Debit party account / Credit Treasury

Party account:
- customer / supplier: the party's own account (resolved by name)
- other: an explicit account chosen by the caller
"""

from __future__ import annotations

from django.utils.translation import gettext as _

from accounting.models.account import Account
from accounting.services import sides
from accounting.services.account_resolver import (
    CUSTOMER,
    SUPPLIER,
    get_treasury_account,
    resolve_party_account,
)
from accounting.services.exceptions import PostingResult, PostingRuleError
from accounting.services.money import ZERO
from accounting.services.posting import VOUCHER, non_negative, submit_posting

RECEIPT = "receipt"
PAYMENT = "payment"
OTHER = "other"


def _party_account(tenant, party_type: str, party_name: str, account):
    if party_type in (CUSTOMER, SUPPLIER):
        return resolve_party_account(tenant, party_type, party_name)

    if party_type != OTHER:
        raise PostingRuleError(f"Unknown party type: {party_type!r}")
    if account is None:
        raise PostingRuleError("An account is required for vouchers with party type 'other'")

    if isinstance(account, Account):
        if account.tenant_id != tenant.pk:
            raise PostingRuleError("Voucher account belongs to another tenant")
        return account

    try:
        found = Account.objects.filter(tenant=tenant, pk=account).first()
    except (ValueError, TypeError):
        found = None
    if found is None:
        raise PostingRuleError(f"Account {account} not found for this tenant")
    return found


def post_voucher(
    tenant,
    *,
    voucher_number: str,
    voucher_type: str,
    amount,
    transaction_date,
    party_type: str,
    party_name: str = "",
    account=None,
    description: str = "",
    created_by=None,
) -> PostingResult:
    def build_lines():
        if voucher_type not in (RECEIPT, PAYMENT):
            raise PostingRuleError(f"Unknown voucher type: {voucher_type!r}")
        amt = non_negative(amount, field="amount")
        if amt <= ZERO:
            raise PostingRuleError(f"Voucher {voucher_number}: amount must be greater than zero")

        treasury = get_treasury_account(tenant)
        party = _party_account(tenant, party_type, party_name, account)
        if party.pk == treasury.pk:
            raise PostingRuleError("A voucher cannot post treasury against itself")

        if voucher_type == RECEIPT:
            cash_line = sides.increase(treasury, amt, _("Cash received"))
            party_line = sides.opposite(party, cash_line, _("Received from %(name)s") % {"name": party.name})
            return [cash_line, party_line]

        cash_line = sides.decrease(treasury, amt, _("Cash paid"))
        party_line = sides.opposite(party, cash_line, _("Paid to %(name)s") % {"name": party.name})
        return [party_line, cash_line]

    if voucher_type == RECEIPT:
        header = _("Receipt voucher %(number)s")
    else:
        header = _("Payment voucher %(number)s")
    header = header % {"number": voucher_number}
    if description:
        header = f"{header} - {description.strip()}"

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=header,
        reference=voucher_number,
        source_type=VOUCHER,
        source_id=voucher_number,
        created_by=created_by,
    )
