# accounting/tests/test_posting_rules.py

from __future__ import annotations

from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal import JournalEntry
from accounting.services.account_resolver import (
    get_advances_account,
    get_commission_account,
    get_customer_account,
    get_discount_allowed_account,
    get_penalties_account,
    get_purchases_account,
    get_receivables_account,
    get_salaries_account,
    get_sales_revenue_account,
    get_sales_tax_account,
    get_supplier_account,
    get_treasury_account,
)
from accounting.services.account_service import (
    create_account,
    natural_balance,
    verify_account_balances,
)
from accounting.services.exceptions import (
    LedgerValidationError,
    PostingRuleError,
)
from accounting.services.posting import SALE, reverse_document_postings
from accounting.services.posting_rules_commission import (
    FIXED_PER_INVOICE,
    PERCENTAGE,
    compute_commission,
    post_commission_settlement,
)
from accounting.services.posting_rules_payroll import (
    ADVANCE,
    REPAYMENT,
    post_advance,
    post_payroll,
)
from accounting.services.posting_rules_purchases import (
    post_purchase,
    post_purchase_return,
)
from accounting.services.posting_rules_sales import post_sale, post_sale_return
from accounting.services.posting_rules_vouchers import (
    OTHER,
    PAYMENT,
    RECEIPT,
    post_voucher,
)
from tenants.models import Tenant


def _balance(account: Account) -> Decimal:
    account.refresh_from_db(fields=["balance"])
    return account.balance


class RecipeTestBase(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Alpha Trading", slug="alpha")
        self.today = timezone.localdate()

    def assertLedgerConsistent(self):
        total = sum(
            Account.objects.filter(tenant=self.tenant).values_list("balance", flat=True),
            Decimal("0.00"),
        )
        self.assertEqual(total, Decimal("0.00"))
        self.assertEqual(verify_account_balances(self.tenant), [])


# -----------------------------
# Sales
# -----------------------------


class SalesPostingTests(RecipeTestBase):
    def test_fully_paid_sale(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-1",
            transaction_date=self.today,
            subtotal="1000.00",
            amount_paid="1000.00",
        )

        self.assertTrue(result.success, result.message)
        revenue = get_sales_revenue_account(self.tenant)
        treasury = get_treasury_account(self.tenant)

        self.assertEqual(_balance(revenue), Decimal("-1000.00"))
        self.assertEqual(natural_balance(revenue), Decimal("1000.00"))
        self.assertEqual(_balance(treasury), Decimal("1000.00"))
        self.assertEqual(result.entry.lines.count(), 2)
        self.assertEqual(result.entry.reference, "INV-1")
        self.assertEqual(result.entry.source_type, SALE)
        self.assertEqual(result.entry.source_id, "INV-1")
        self.assertLedgerConsistent()

    def test_partially_paid_sale_with_tax(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-2",
            transaction_date=self.today,
            subtotal="500.00",
            tax="70.00",
            amount_paid="300.00",
        )

        self.assertTrue(result.success, result.message)
        self.assertEqual(_balance(get_receivables_account(self.tenant)), Decimal("270.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("300.00"))
        self.assertEqual(_balance(get_sales_revenue_account(self.tenant)), Decimal("-570.00"))
        self.assertLedgerConsistent()

    def test_unpaid_sale_uses_customer_account(self):
        post_sale(
            self.tenant,
            invoice_number="INV-3",
            transaction_date=self.today,
            subtotal="250.00",
            customer_name="Hassan Stores",
        )

        customer = get_customer_account(self.tenant, "Hassan Stores")
        self.assertEqual(_balance(customer), Decimal("250.00"))
        self.assertFalse(Account.objects.filter(tenant=self.tenant, role_key="treasury").exists())
        self.assertLedgerConsistent()

    def test_discount_is_booked_gross(self):
        post_sale(
            self.tenant,
            invoice_number="INV-4",
            transaction_date=self.today,
            subtotal="100.00",
            discount="10.00",
            amount_paid="90.00",
        )

        self.assertEqual(_balance(get_sales_revenue_account(self.tenant)), Decimal("-100.00"))
        self.assertEqual(_balance(get_discount_allowed_account(self.tenant)), Decimal("10.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("90.00"))
        self.assertLedgerConsistent()

    @override_settings(LEDGER_SEPARATE_TAX_ACCOUNT=True)
    def test_tax_on_separate_account(self):
        post_sale(
            self.tenant,
            invoice_number="INV-5",
            transaction_date=self.today,
            subtotal="100.00",
            tax="14.00",
            amount_paid="114.00",
        )

        tax = get_sales_tax_account(self.tenant)
        self.assertEqual(tax.account_type, Account.LIABILITY)
        self.assertEqual(_balance(tax), Decimal("-14.00"))
        self.assertEqual(_balance(get_sales_revenue_account(self.tenant)), Decimal("-100.00"))
        self.assertLedgerConsistent()

    def test_foreign_currency_sale_posts_base_amounts(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-6",
            transaction_date=self.today,
            subtotal="100.00",
            amount_paid="100.00",
            currency="USD",
            exchange_rate="30.5",
        )

        self.assertEqual(result.entry.currency, "USD")
        self.assertEqual(result.entry.exchange_rate, Decimal("30.500000"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("3050.00"))
        self.assertEqual(_balance(get_sales_revenue_account(self.tenant)), Decimal("-3050.00"))

    def test_fully_paid_foreign_sale_leaves_nothing_outstanding(self):
        post_sale(
            self.tenant,
            invoice_number="INV-7",
            transaction_date=self.today,
            subtotal="10.01",
            tax="1.40",
            discount="0.33",
            amount_paid="11.08",
            exchange_rate="3.335",
        )

        self.assertFalse(
            Account.objects.filter(tenant=self.tenant, role_key="receivables").exists()
        )
        self.assertLedgerConsistent()

    def test_overpayment_is_refused_without_side_effects(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-8",
            transaction_date=self.today,
            subtotal="100.00",
            amount_paid="150.00",
        )

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, PostingRuleError)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_full_return_restores_every_balance(self):
        post_sale(
            self.tenant,
            invoice_number="INV-9",
            transaction_date=self.today,
            subtotal="500.00",
            tax="70.00",
            amount_paid="300.00",
        )

        result = post_sale_return(
            self.tenant,
            return_number="RET-1",
            original_invoice_number="INV-9",
            transaction_date=self.today,
            original_subtotal="500.00",
            return_subtotal="500.00",
            original_tax="70.00",
            amount_refunded="300.00",
        )

        self.assertTrue(result.success, result.message)
        for account in Account.objects.filter(tenant=self.tenant):
            self.assertEqual(account.balance, Decimal("0.00"), account.code)
        self.assertLedgerConsistent()

    def test_partial_return_prorates_original_tax(self):
        post_sale(
            self.tenant,
            invoice_number="INV-10",
            transaction_date=self.today,
            subtotal="200.00",
            tax="28.00",
            amount_paid="228.00",
        )

        post_sale_return(
            self.tenant,
            return_number="RET-2",
            original_invoice_number="INV-10",
            transaction_date=self.today,
            original_subtotal="200.00",
            return_subtotal="50.00",
            original_tax="28.00",
            amount_refunded="57.00",
        )

        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("171.00"))
        self.assertEqual(_balance(get_sales_revenue_account(self.tenant)), Decimal("-171.00"))
        self.assertLedgerConsistent()

    def test_return_larger_than_invoice_is_refused(self):
        result = post_sale_return(
            self.tenant,
            return_number="RET-3",
            original_invoice_number="INV-11",
            transaction_date=self.today,
            original_subtotal="100.00",
            return_subtotal="120.00",
        )
        self.assertFalse(result.success)

    def test_reverse_document_postings_before_edit(self):
        post_sale(
            self.tenant,
            invoice_number="INV-12",
            transaction_date=self.today,
            subtotal="80.00",
            amount_paid="80.00",
        )

        result = reverse_document_postings(self.tenant, SALE, "INV-12")

        self.assertTrue(result.success)
        self.assertIn("1", result.message)
        self.assertEqual(JournalEntry.objects.count(), 0)
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("0.00"))


# -----------------------------
# Failure policy
# -----------------------------


class FailurePolicyTests(RecipeTestBase):
    def test_failed_posting_rolls_back_created_accounts(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-20",
            transaction_date=self.today,
            subtotal="100.00",
            amount_paid="100.00",
            currency="EURO",
        )

        self.assertFalse(result.success)
        self.assertEqual(Account.objects.filter(tenant=self.tenant).count(), 0)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_warning_message_for_the_caller(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-21",
            transaction_date=self.today,
            subtotal="-5",
        )

        message = result.warning_for("Invoice INV-21 saved")
        self.assertTrue(message.startswith("Invoice INV-21 saved"))
        self.assertIn("journal entry not recorded", message)

    def test_bad_exchange_rate_is_reported_not_raised(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-22",
            transaction_date=self.today,
            subtotal="100.00",
            exchange_rate="abc",
        )
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, LedgerValidationError)

    def test_oversized_amount_is_reported_not_raised(self):
        result = post_sale(
            self.tenant,
            invoice_number="INV-24",
            transaction_date=self.today,
            subtotal="1e40",
            amount_paid="1e40",
        )

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, LedgerValidationError)
        self.assertEqual(JournalEntry.objects.count(), 0)

    @override_settings(LEDGER_STRICT_POSTING=True)
    def test_strict_mode_raises(self):
        with self.assertRaises(PostingRuleError):
            post_sale(
                self.tenant,
                invoice_number="INV-23",
                transaction_date=self.today,
                subtotal="100.00",
                amount_paid="150.00",
            )
        self.assertEqual(JournalEntry.objects.count(), 0)


# -----------------------------
# Purchases
# -----------------------------


class PurchasePostingTests(RecipeTestBase):
    def test_partially_paid_purchase(self):
        result = post_purchase(
            self.tenant,
            invoice_number="PO-1",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="1000.00",
            amount_paid="400.00",
        )

        self.assertTrue(result.success, result.message)
        supplier = get_supplier_account(self.tenant, "Acme Ltd")
        self.assertEqual(_balance(get_purchases_account(self.tenant)), Decimal("1000.00"))
        self.assertEqual(_balance(supplier), Decimal("-600.00"))
        self.assertEqual(natural_balance(supplier), Decimal("600.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-400.00"))
        self.assertLedgerConsistent()

    def test_unpaid_purchase_does_not_touch_treasury(self):
        post_purchase(
            self.tenant,
            invoice_number="PO-2",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="250.00",
        )
        self.assertFalse(Account.objects.filter(tenant=self.tenant, role_key="treasury").exists())

    def test_return_mirrors_purchase(self):
        post_purchase(
            self.tenant,
            invoice_number="PO-3",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="1000.00",
            amount_paid="400.00",
        )

        result = post_purchase_return(
            self.tenant,
            return_number="PR-1",
            original_invoice_number="PO-3",
            supplier_name="acme ltd",
            transaction_date=self.today,
            total="1000.00",
            amount_refunded="400.00",
        )

        self.assertTrue(result.success, result.message)
        for account in Account.objects.filter(tenant=self.tenant):
            self.assertEqual(account.balance, Decimal("0.00"), account.code)

    def test_payment_above_total_is_refused(self):
        result = post_purchase(
            self.tenant,
            invoice_number="PO-4",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="100.00",
            amount_paid="100.01",
        )
        self.assertFalse(result.success)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_zero_total_is_refused(self):
        result = post_purchase(
            self.tenant,
            invoice_number="PO-5",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="0",
        )
        self.assertFalse(result.success)


# -----------------------------
# Payroll + advances
# -----------------------------


class PayrollPostingTests(RecipeTestBase):
    def test_payroll_with_advance_deduction(self):
        result = post_payroll(
            self.tenant,
            payroll_id=7,
            salary_month="2026-09",
            transaction_date=self.today,
            gross="3000.00",
            net_paid="2500.00",
            advance_deduction="500.00",
        )

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.entry.reference, "PAY-7")
        self.assertEqual(result.entry.source_id, "7")
        self.assertEqual(_balance(get_salaries_account(self.tenant)), Decimal("3000.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-2500.00"))
        self.assertEqual(_balance(get_advances_account(self.tenant)), Decimal("-500.00"))
        self.assertLedgerConsistent()

    def test_penalty_deductions_are_income(self):
        post_payroll(
            self.tenant,
            payroll_id=8,
            salary_month="2026-09",
            transaction_date=self.today,
            gross="2000.00",
            net_paid="1900.00",
            deductions="100.00",
        )

        penalties = get_penalties_account(self.tenant)
        self.assertEqual(penalties.account_type, Account.REVENUE)
        self.assertEqual(natural_balance(penalties), Decimal("100.00"))
        self.assertLedgerConsistent()

    def test_components_must_add_up(self):
        result = post_payroll(
            self.tenant,
            payroll_id=9,
            salary_month="2026-09",
            transaction_date=self.today,
            gross="3000.00",
            net_paid="2000.00",
            advance_deduction="500.00",
        )
        self.assertFalse(result.success)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_payroll_from_chosen_cash_account(self):
        bank = create_account(self.tenant, code="1300", name="Bank Misr", account_type="asset")

        post_payroll(
            self.tenant,
            payroll_id=10,
            salary_month="2026-09",
            transaction_date=self.today,
            gross="1000.00",
            net_paid="1000.00",
            treasury_account=bank,
        )

        self.assertEqual(_balance(bank), Decimal("-1000.00"))
        self.assertFalse(Account.objects.filter(tenant=self.tenant, role_key="treasury").exists())

    def test_advance_then_repayment(self):
        granted = post_advance(
            self.tenant,
            advance_id=3,
            kind=ADVANCE,
            amount="1000.00",
            transaction_date=self.today,
            employee_name="Sara",
        )
        repaid = post_advance(
            self.tenant,
            advance_id=4,
            kind=REPAYMENT,
            amount="400.00",
            transaction_date=self.today,
            employee_name="Sara",
        )

        self.assertTrue(granted.success and repaid.success)
        self.assertEqual(granted.entry.reference, "ADV-3")
        self.assertEqual(_balance(get_advances_account(self.tenant)), Decimal("600.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-600.00"))
        self.assertLedgerConsistent()

    def test_unknown_advance_kind(self):
        result = post_advance(
            self.tenant,
            advance_id=5,
            kind="gift",
            amount="10.00",
            transaction_date=self.today,
        )
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, PostingRuleError)


# -----------------------------
# Commission
# -----------------------------


class CommissionTests(RecipeTestBase):
    def test_percentage_commission(self):
        self.assertEqual(
            compute_commission(
                total_sales="10000", invoice_count=40, rate="2.5", commission_type=PERCENTAGE
            ),
            Decimal("250.00"),
        )

    def test_fixed_per_invoice_commission(self):
        self.assertEqual(
            compute_commission(
                total_sales="0", invoice_count=12, rate="15", commission_type=FIXED_PER_INVOICE
            ),
            Decimal("180.00"),
        )

    def test_unknown_commission_type(self):
        with self.assertRaises(LedgerValidationError):
            compute_commission(total_sales="10", invoice_count=1, rate="1", commission_type="tiered")

    def test_negative_rate(self):
        with self.assertRaises(LedgerValidationError):
            compute_commission(total_sales="10", invoice_count=1, rate="-1", commission_type=PERCENTAGE)

    def test_settlement_posts_expense_against_treasury(self):
        result = post_commission_settlement(
            self.tenant,
            representative_name="Omar Nabil",
            representative_id=7,
            amount="250.00",
            period="2026-09",
            transaction_date=self.today,
        )

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.entry.reference, "COMM-7-2026-09")
        self.assertEqual(result.entry.source_id, "7:2026-09")
        self.assertEqual(_balance(get_commission_account(self.tenant)), Decimal("250.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-250.00"))
        self.assertLedgerConsistent()

    def test_settlement_without_id_uses_name(self):
        result = post_commission_settlement(
            self.tenant,
            representative_name="Omar Nabil",
            amount="10.00",
            period="2026-09",
            transaction_date=self.today,
        )
        self.assertEqual(result.entry.reference, "COMM-omar-nabil-2026-09")

    def test_zero_settlement_is_refused(self):
        result = post_commission_settlement(
            self.tenant,
            representative_name="Omar Nabil",
            amount="0",
            period="2026-09",
            transaction_date=self.today,
        )
        self.assertFalse(result.success)


# -----------------------------
# Vouchers
# -----------------------------


class VoucherPostingTests(RecipeTestBase):
    def test_receipt_from_customer(self):
        result = post_voucher(
            self.tenant,
            voucher_number="RV-1",
            voucher_type=RECEIPT,
            amount="200.00",
            transaction_date=self.today,
            party_type="customer",
            party_name="Hassan Stores",
        )

        self.assertTrue(result.success, result.message)
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("200.00"))
        self.assertEqual(
            _balance(get_customer_account(self.tenant, "Hassan Stores")), Decimal("-200.00")
        )
        self.assertLedgerConsistent()

    def test_payment_to_supplier_settles_payable(self):
        post_purchase(
            self.tenant,
            invoice_number="PO-10",
            supplier_name="Acme Ltd",
            transaction_date=self.today,
            total="150.00",
        )

        post_voucher(
            self.tenant,
            voucher_number="PV-1",
            voucher_type=PAYMENT,
            amount="150.00",
            transaction_date=self.today,
            party_type="supplier",
            party_name="Acme Ltd",
        )

        self.assertEqual(_balance(get_supplier_account(self.tenant, "Acme Ltd")), Decimal("0.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-150.00"))
        self.assertLedgerConsistent()

    def test_payment_against_chosen_account(self):
        rent = create_account(self.tenant, code="5300", name="Rent", account_type="expense")

        post_voucher(
            self.tenant,
            voucher_number="PV-2",
            voucher_type=PAYMENT,
            amount="50.00",
            transaction_date=self.today,
            party_type=OTHER,
            account=rent.pk,
        )

        self.assertEqual(_balance(rent), Decimal("50.00"))
        self.assertEqual(_balance(get_treasury_account(self.tenant)), Decimal("-50.00"))

    def test_other_party_requires_account(self):
        result = post_voucher(
            self.tenant,
            voucher_number="PV-3",
            voucher_type=PAYMENT,
            amount="50.00",
            transaction_date=self.today,
            party_type=OTHER,
        )
        self.assertFalse(result.success)

    def test_malformed_account_id_is_reported_not_raised(self):
        result = post_voucher(
            self.tenant,
            voucher_number="PV-5",
            voucher_type=PAYMENT,
            amount="10.00",
            transaction_date=self.today,
            party_type=OTHER,
            account="abc",
        )
        self.assertFalse(result.success)
        self.assertIsInstance(result.error, PostingRuleError)
        self.assertEqual(JournalEntry.objects.count(), 0)

    def test_account_of_another_tenant_is_refused(self):
        other = Tenant.objects.create(name="Beta Trading", slug="beta")
        foreign = create_account(other, code="5300", name="Rent", account_type="expense")

        result = post_voucher(
            self.tenant,
            voucher_number="PV-4",
            voucher_type=PAYMENT,
            amount="50.00",
            transaction_date=self.today,
            party_type=OTHER,
            account=foreign,
        )
        self.assertFalse(result.success)
        self.assertEqual(_balance(foreign), Decimal("0.00"))

    def test_unknown_voucher_type(self):
        result = post_voucher(
            self.tenant,
            voucher_number="XV-1",
            voucher_type="transfer",
            amount="50.00",
            transaction_date=self.today,
            party_type="customer",
            party_name="Hassan Stores",
        )
        self.assertFalse(result.success)
        self.assertEqual(Account.objects.filter(tenant=self.tenant).count(), 0)
