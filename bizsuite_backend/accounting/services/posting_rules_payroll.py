# accounting/services/posting_rules_payroll.py

"""
POSTING RULES: PAYROLL RUNS & EMPLOYEE ADVANCES

PAYROLL RUN:
- Debit  Salaries expense       (gross)
- Credit Treasury               (net paid)
- Credit Employee advances      (advance deduction, if any)
- Credit Penalties income       (deductions, if any)
  gross == net_paid + advance_deduction + deductions

ADVANCE (cash out):     Debit Employee advances / Credit Treasury
REPAYMENT (cash in):    Debit Treasury / Credit Employee advances

treasury_account lets the caller pay from a specific cash / bank account
instead of the resolved treasury.
"""

from __future__ import annotations

from django.utils.translation import gettext as _

from accounting.services import sides
from accounting.services.account_resolver import (
    get_advances_account,
    get_penalties_account,
    get_salaries_account,
    get_treasury_account,
)
from accounting.services.exceptions import PostingResult, PostingRuleError
from accounting.services.money import ZERO, balance_tolerance
from accounting.services.posting import (
    EMPLOYEE_ADVANCE,
    PAYROLL,
    non_negative,
    submit_posting,
)

ADVANCE = "advance"
REPAYMENT = "repayment"


def _treasury(tenant, treasury_account):
    if treasury_account is None:
        return get_treasury_account(tenant)
    if treasury_account.tenant_id != tenant.pk:
        raise PostingRuleError("Treasury account belongs to another tenant")
    return treasury_account


def post_payroll(
    tenant,
    *,
    payroll_id,
    salary_month: str,
    transaction_date,
    gross,
    net_paid,
    advance_deduction=0,
    deductions=0,
    treasury_account=None,
    created_by=None,
) -> PostingResult:
    reference = f"PAY-{payroll_id}"

    def build_lines():
        gross_amt = non_negative(gross, field="gross")
        net_amt = non_negative(net_paid, field="net_paid")
        advance_amt = non_negative(advance_deduction, field="advance_deduction")
        deduction_amt = non_negative(deductions, field="deductions")

        if gross_amt <= ZERO:
            raise PostingRuleError(f"Payroll {payroll_id}: gross pay must be greater than zero")
        if abs(gross_amt - net_amt - advance_amt - deduction_amt) >= balance_tolerance():
            raise PostingRuleError(
                f"Payroll {payroll_id}: gross {gross_amt} != net {net_amt} "
                f"+ advances {advance_amt} + deductions {deduction_amt}"
            )

        lines = [sides.increase(get_salaries_account(tenant), gross_amt, _("Gross salaries"))]
        if net_amt > ZERO:
            lines.append(
                sides.decrease(_treasury(tenant, treasury_account), net_amt, _("Net salaries paid"))
            )
        if advance_amt > ZERO:
            lines.append(
                sides.decrease(get_advances_account(tenant), advance_amt, _("Advance deduction"))
            )
        if deduction_amt > ZERO:
            lines.append(
                sides.increase(get_penalties_account(tenant), deduction_amt, _("Penalties and deductions"))
            )
        return lines

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=_("Payroll for %(month)s") % {"month": salary_month},
        reference=reference,
        source_type=PAYROLL,
        source_id=payroll_id,
        created_by=created_by,
    )


def post_advance(
    tenant,
    *,
    advance_id,
    kind: str,
    amount,
    transaction_date,
    employee_name: str = "",
    treasury_account=None,
    created_by=None,
) -> PostingResult:
    def build_lines():
        if kind not in (ADVANCE, REPAYMENT):
            raise PostingRuleError(f"Unknown advance kind: {kind!r}")
        amt = non_negative(amount, field="amount")
        if amt <= ZERO:
            raise PostingRuleError(f"Advance {advance_id}: amount must be greater than zero")

        advances = get_advances_account(tenant)
        treasury = _treasury(tenant, treasury_account)
        if kind == ADVANCE:
            return [
                sides.increase(advances, amt, _("Advance granted")),
                sides.decrease(treasury, amt, _("Cash paid out")),
            ]
        return [
            sides.increase(treasury, amt, _("Cash received")),
            sides.decrease(advances, amt, _("Advance repaid")),
        ]

    if kind == ADVANCE:
        description = _("Employee advance %(name)s")
    else:
        description = _("Advance repayment %(name)s")

    return submit_posting(
        tenant,
        build_lines=build_lines,
        transaction_date=transaction_date,
        description=(description % {"name": employee_name}).strip(),
        reference=f"ADV-{advance_id}",
        source_type=EMPLOYEE_ADVANCE,
        source_id=advance_id,
        created_by=created_by,
    )
