# accounting/services/posting_rules_sales.py

"""
POSTING RULES: SALES INVOICES & RETURNS (AUTHORITATIVE)

Defines HOW a sales invoice maps to accounting intent.

SALE:
- Credit Sales Revenue       (subtotal, always present)
- Credit Revenue / VAT       (tax)            LEDGER_SEPARATE_TAX_ACCOUNT picks
- Debit  Discount Allowed    (discount)
- Debit  Treasury            (amount paid)
- Debit  Receivables         (subtotal + tax - discount - paid)
  (the customer's own account when customer_name is given)

SALE RETURN: the same lines, sides swapped, using the ORIGINAL invoice's
exchange rate and tax ratio (original_tax / original_subtotal).

Lines carry base-currency amounts; the header keeps the document
currency + rate for audit. The receivables line is the remainder of the
other converted lines, so rounding never unbalances the entry.
Optional lines are only emitted when non-zero.

THIS MODULE DOES NOT:
- Write to the database directly
- Enforce debit == credit (the engine does)
"""

from __future__ import annotations

from django.conf import settings
from django.utils.translation import gettext as _

from accounting.services import sides
from accounting.services.account_resolver import (
    get_customer_account,
    get_discount_allowed_account,
    get_receivables_account,
    get_sales_revenue_account,
    get_sales_tax_account,
    get_treasury_account,
)
from accounting.services.exceptions import PostingResult, PostingRuleError
from accounting.services.money import ZERO, rate
from accounting.services.posting import (
    SALE,
    SALE_RETURN,
    base_amount,
    non_negative,
    prorate,
    split_settlement,
    submit_posting,
)


def _tax_account(tenant, revenue):
    if getattr(settings, "LEDGER_SEPARATE_TAX_ACCOUNT", False):
        return get_sales_tax_account(tenant)
    return revenue


def _receivable_account(tenant, customer_name: str):
    if (customer_name or "").strip():
        return get_customer_account(tenant, customer_name)
    return get_receivables_account(tenant)


def post_sale(
    tenant,
    *,
    invoice_number: str,
    transaction_date,
    subtotal,
    tax=0,
    discount=0,
    amount_paid=0,
    currency: str | None = None,
    exchange_rate=1,
    customer_name: str = "",
    source_id=None,
    created_by=None,
) -> PostingResult:
    def build_lines():
        fx = rate(exchange_rate)
        paid = non_negative(amount_paid, field="amount_paid")
        outstanding = (
            non_negative(subtotal, field="subtotal")
            + non_negative(tax, field="tax")
            - non_negative(discount, field="discount")
            - paid
        )
        if outstanding < ZERO:
            raise PostingRuleError(
                f"Invoice {invoice_number}: amount paid exceeds the invoice total"
            )

        subtotal_b = base_amount(subtotal, fx, field="subtotal")
        tax_b = base_amount(tax, fx, field="tax")
        discount_b = base_amount(discount, fx, field="discount")
        paid_b, outstanding_b = split_settlement(
            subtotal_b + tax_b - discount_b,
            settled=paid,
            outstanding_doc=outstanding,
            exchange_rate=fx,
        )

        revenue = get_sales_revenue_account(tenant)
        lines = [sides.increase(revenue, subtotal_b, _("Sales revenue"))]

        if tax_b > ZERO:
            lines.append(sides.increase(_tax_account(tenant, revenue), tax_b, _("Sales tax")))
        if discount_b > ZERO:
            lines.append(
                sides.increase(get_discount_allowed_account(tenant), discount_b, _("Discount allowed"))
            )
        if paid_b > ZERO:
            lines.append(sides.increase(get_treasury_account(tenant), paid_b, _("Cash collected")))
        if outstanding_b > ZERO:
            lines.append(
                sides.increase(
                    _receivable_account(tenant, customer_name),
                    outstanding_b,
                    _("Amount outstanding"),
                )
            )
        return lines

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Sales invoice %(number)s") % {"number": invoice_number},
        reference=invoice_number,
        source_type=SALE,
        source_id=source_id or invoice_number,
        currency=currency,
        exchange_rate=exchange_rate,
        created_by=created_by,
    )


def post_sale_return(
    tenant,
    *,
    return_number: str,
    original_invoice_number: str,
    transaction_date,
    original_subtotal,
    return_subtotal,
    original_tax=0,
    original_discount=0,
    amount_refunded=0,
    original_exchange_rate=1,
    currency: str | None = None,
    customer_name: str = "",
    source_id=None,
    created_by=None,
) -> PostingResult:
    """
    Tax and discount are prorated by return_subtotal / original_subtotal,
    i.e. the original invoice's tax ratio, never a freshly computed rate.
    """
    def build_lines():
        fx = rate(original_exchange_rate)
        orig_subtotal = non_negative(original_subtotal, field="original_subtotal")
        orig_tax = non_negative(original_tax, field="original_tax")
        orig_discount = non_negative(original_discount, field="original_discount")
        returned = non_negative(return_subtotal, field="return_subtotal")

        if returned > orig_subtotal:
            raise PostingRuleError(
                f"Return {return_number}: returned subtotal exceeds invoice "
                f"{original_invoice_number}"
            )

        returned_tax = prorate(orig_tax, returned, orig_subtotal)
        returned_discount = prorate(orig_discount, returned, orig_subtotal)
        refunded = non_negative(amount_refunded, field="amount_refunded")
        outstanding = returned + returned_tax - returned_discount - refunded
        if outstanding < ZERO:
            raise PostingRuleError(
                f"Return {return_number}: amount refunded exceeds the returned value"
            )

        subtotal_b = base_amount(returned, fx, field="return_subtotal")
        tax_b = base_amount(returned_tax, fx, field="tax")
        discount_b = base_amount(returned_discount, fx, field="discount")
        refunded_b, outstanding_b = split_settlement(
            subtotal_b + tax_b - discount_b,
            settled=refunded,
            outstanding_doc=outstanding,
            exchange_rate=fx,
        )

        revenue = get_sales_revenue_account(tenant)
        lines = [sides.decrease(revenue, subtotal_b, _("Sales return"))]

        if tax_b > ZERO:
            lines.append(sides.decrease(_tax_account(tenant, revenue), tax_b, _("Sales tax reversed")))
        if discount_b > ZERO:
            lines.append(
                sides.decrease(get_discount_allowed_account(tenant), discount_b, _("Discount reversed"))
            )
        if refunded_b > ZERO:
            lines.append(sides.decrease(get_treasury_account(tenant), refunded_b, _("Cash refunded")))
        if outstanding_b > ZERO:
            lines.append(
                sides.decrease(
                    _receivable_account(tenant, customer_name),
                    outstanding_b,
                    _("Outstanding balance reduced"),
                )
            )
        return lines

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Sales return %(number)s (invoice %(invoice)s)")
        % {"number": return_number, "invoice": original_invoice_number},
        reference=return_number,
        source_type=SALE_RETURN,
        source_id=source_id or return_number,
        currency=currency,
        exchange_rate=original_exchange_rate,
        created_by=created_by,
    )
