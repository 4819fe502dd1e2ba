# accounting/services/posting_rules_purchases.py

"""
POSTING RULES: PURCHASE INVOICES & RETURNS

PURCHASE:
- Debit  Purchases              (total)
- Credit Supplier payable       (total)      one account per supplier name
- Debit  Supplier payable       (amount paid, if any)
- Credit Treasury               (amount paid, if any)

PURCHASE RETURN (inverse, same supplier account):
- Debit  Supplier payable       (total)
- Credit Purchases              (total)
- Debit  Treasury               (amount refunded, if any)
- Credit Supplier payable       (amount refunded, if any)
"""

from __future__ import annotations

from django.utils.translation import gettext as _

from accounting.services import sides
from accounting.services.account_resolver import (
    get_purchases_account,
    get_supplier_account,
    get_treasury_account,
)
from accounting.services.exceptions import PostingResult, PostingRuleError
from accounting.services.money import ZERO, rate
from accounting.services.posting import (
    PURCHASE,
    PURCHASE_RETURN,
    base_amount,
    non_negative,
    split_settlement,
    submit_posting,
)


def _amounts(total, settled, fx, *, label: str):
    """(total_b, settled_b) with settled never above total."""
    total_doc = non_negative(total, field="total")
    settled_doc = non_negative(settled, field="amount_paid")
    if total_doc <= ZERO:
        raise PostingRuleError(f"{label}: total must be greater than zero")
    if settled_doc > total_doc:
        raise PostingRuleError(f"{label}: amount paid exceeds the invoice total")

    total_b = base_amount(total_doc, fx, field="total")
    settled_b, _outstanding_b = split_settlement(
        total_b,
        settled=settled_doc,
        outstanding_doc=total_doc - settled_doc,
        exchange_rate=fx,
    )
    return total_b, settled_b


def post_purchase(
    tenant,
    *,
    invoice_number: str,
    supplier_name: str,
    transaction_date,
    total,
    amount_paid=0,
    currency: str | None = None,
    exchange_rate=1,
    source_id=None,
    created_by=None,
) -> PostingResult:
    def build_lines():
        total_b, paid_b = _amounts(
            total, amount_paid, rate(exchange_rate), label=f"Purchase {invoice_number}"
        )
        purchases = get_purchases_account(tenant)
        supplier = get_supplier_account(tenant, supplier_name)

        lines = [
            sides.increase(purchases, total_b, _("Purchases")),
            sides.increase(supplier, total_b, _("Payable to %(name)s") % {"name": supplier.name}),
        ]
        if paid_b > ZERO:
            treasury = get_treasury_account(tenant)
            lines.append(sides.decrease(supplier, paid_b, _("Paid on purchase")))
            lines.append(sides.decrease(treasury, paid_b, _("Cash paid to supplier")))
        return lines

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Purchase invoice %(number)s - %(supplier)s")
        % {"number": invoice_number, "supplier": supplier_name},
        reference=invoice_number,
        source_type=PURCHASE,
        source_id=source_id or invoice_number,
        currency=currency,
        exchange_rate=exchange_rate,
        created_by=created_by,
    )


def post_purchase_return(
    tenant,
    *,
    return_number: str,
    original_invoice_number: str,
    supplier_name: str,
    transaction_date,
    total,
    amount_refunded=0,
    currency: str | None = None,
    exchange_rate=1,
    source_id=None,
    created_by=None,
) -> PostingResult:
    def build_lines():
        total_b, refunded_b = _amounts(
            total, amount_refunded, rate(exchange_rate), label=f"Purchase return {return_number}"
        )
        purchases = get_purchases_account(tenant)
        supplier = get_supplier_account(tenant, supplier_name)

        lines = [
            sides.decrease(supplier, total_b, _("Returned to %(name)s") % {"name": supplier.name}),
            sides.decrease(purchases, total_b, _("Purchase return")),
        ]
        if refunded_b > ZERO:
            treasury = get_treasury_account(tenant)
            lines.append(sides.increase(treasury, refunded_b, _("Cash refunded by supplier")))
            lines.append(sides.increase(supplier, refunded_b, _("Refund received")))
        return lines

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Purchase return %(number)s (invoice %(invoice)s)")
        % {"number": return_number, "invoice": original_invoice_number},
        reference=return_number,
        source_type=PURCHASE_RETURN,
        source_id=source_id or return_number,
        currency=currency,
        exchange_rate=exchange_rate,
        created_by=created_by,
    )
