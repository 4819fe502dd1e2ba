# accounting/services/posting_rules_commission.py

"""
POSTING RULES: SALES REPRESENTATIVE COMMISSION

compute_commission() turns a period's sales figures into an amount;
post_commission_settlement() books it:
- Debit  Commission expense
- Credit Treasury
"""

from __future__ import annotations

from decimal import Decimal

from django.utils.text import slugify
from django.utils.translation import gettext as _

from accounting.services import sides
from accounting.services.account_resolver import (
    get_commission_account,
    get_treasury_account,
)
from accounting.services.exceptions import (
    LedgerValidationError,
    PostingResult,
    PostingRuleError,
)
from accounting.services.money import ZERO, money, to_decimal
from accounting.services.posting import COMMISSION, non_negative, submit_posting

PERCENTAGE = "percentage"
FIXED_PER_INVOICE = "fixed_per_invoice"


def compute_commission(*, total_sales, invoice_count: int, rate, commission_type: str) -> Decimal:
    """
    percentage:         total_sales * rate / 100
    fixed_per_invoice:  invoice_count * rate
    """
    rate_value = to_decimal(rate, field="rate")
    if rate_value < 0:
        raise LedgerValidationError("Commission rate cannot be negative")

    if commission_type == PERCENTAGE:
        sales = to_decimal(total_sales, field="total_sales")
        if sales < 0:
            raise LedgerValidationError("Total sales cannot be negative")
        return money(sales * rate_value / Decimal("100"))

    if commission_type == FIXED_PER_INVOICE:
        if invoice_count is None or int(invoice_count) < 0:
            raise LedgerValidationError("Invoice count cannot be negative")
        return money(Decimal(int(invoice_count)) * rate_value)

    raise LedgerValidationError(f"Unknown commission type: {commission_type!r}")


def post_commission_settlement(
    tenant,
    *,
    representative_name: str,
    amount,
    period: str,
    transaction_date,
    representative_id=None,
    treasury_account=None,
    created_by=None,
) -> PostingResult:
    rep_key = representative_id or slugify(representative_name, allow_unicode=True) or "rep"
    reference = f"COMM-{rep_key}-{period}"

    def build_lines():
        amt = non_negative(amount, field="amount")
        if amt <= ZERO:
            raise PostingRuleError(f"{reference}: commission amount must be greater than zero")

        treasury = treasury_account or get_treasury_account(tenant)
        if treasury.tenant_id != tenant.pk:
            raise PostingRuleError("Treasury account belongs to another tenant")

        return [
            sides.increase(
                get_commission_account(tenant),
                amt,
                _("Commission for %(name)s") % {"name": representative_name},
            ),
            sides.decrease(treasury, amt, _("Commission paid")),
        ]

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Commission settlement %(name)s (%(period)s)")
        % {"name": representative_name, "period": period},
        reference=reference[:100],
        source_type=COMMISSION,
        source_id=f"{rep_key}:{period}"[:100],
        created_by=created_by,
    )
