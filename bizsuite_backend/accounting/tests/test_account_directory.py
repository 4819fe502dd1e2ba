# accounting/tests/test_account_directory.py

from __future__ import annotations

from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase
from django.utils import timezone

from accounting.models.account import Account
from accounting.models.journal_line import JournalLine
from accounting.services.account_service import (
    create_account,
    delete_account,
    get_account_tree,
    natural_balance,
    rebuild_account_balances,
    seed_default_accounts,
    unbalanced_entries,
    verify_account_balances,
)
from accounting.services.exceptions import (
    AccountInUseError,
    LedgerValidationError,
)
from accounting.services.journal_entry_service import post_journal_entry
from tenants.models import Tenant


def _post(tenant, debit_account, credit_account, amount="100.00"):
    return post_journal_entry(
        tenant=tenant,
        transaction_date=timezone.localdate(),
        lines=[
            {"account": debit_account, "debit": amount, "credit": "0"},
            {"account": credit_account, "debit": "0", "credit": amount},
        ],
    )


class AccountDirectoryTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Alpha Trading", slug="alpha")
        self.cash = create_account(self.tenant, code="1100", name="Cash", account_type="asset")
        self.sales = create_account(
            self.tenant, code="4100", name="Sales Revenue", account_type="revenue"
        )

    # -----------------------------
    # create
    # -----------------------------

    def test_create_normalizes_input(self):
        account = create_account(
            self.tenant, code=" 1200 ", name="  Bank  ", account_type="ASSET"
        )
        self.assertEqual(account.code, "1200")
        self.assertEqual(account.name, "Bank")
        self.assertEqual(account.account_type, Account.ASSET)
        self.assertEqual(account.balance, Decimal("0.00"))

    def test_invalid_type_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_account(self.tenant, code="9000", name="Misc", account_type="income")

    def test_duplicate_code_is_rejected_per_tenant(self):
        with self.assertRaises(LedgerValidationError):
            create_account(self.tenant, code="1100", name="Other cash", account_type="asset")

        other = Tenant.objects.create(name="Beta Trading", slug="beta")
        self.assertEqual(
            create_account(other, code="1100", name="Cash", account_type="asset").code,
            "1100",
        )

    def test_blank_name_is_rejected(self):
        with self.assertRaises(LedgerValidationError):
            create_account(self.tenant, code="1300", name="   ", account_type="asset")

    def test_parent_from_another_tenant_is_rejected(self):
        other = Tenant.objects.create(name="Beta Trading", slug="beta")
        foreign = create_account(other, code="1000", name="Assets", account_type="asset")

        with self.assertRaises(LedgerValidationError):
            create_account(self.tenant, code="1101", name="Till", account_type="asset", parent=foreign)
        with self.assertRaises(LedgerValidationError):
            create_account(self.tenant, code="1101", name="Till", account_type="asset", parent=foreign.pk)

    def test_save_never_overwrites_balance(self):
        stale = Account.objects.get(pk=self.cash.pk)
        _post(self.tenant, self.cash, self.sales)

        stale.name = "Main Cash"
        stale.save()

        self.cash.refresh_from_db()
        self.assertEqual(self.cash.name, "Main Cash")
        self.assertEqual(self.cash.balance, Decimal("100.00"))

    # -----------------------------
    # delete
    # -----------------------------

    def test_delete_unused_account(self):
        spare = create_account(self.tenant, code="1900", name="Spare", account_type="asset")

        result = delete_account(self.tenant, spare.pk)

        self.assertTrue(result.success)
        self.assertFalse(Account.objects.filter(pk=spare.pk).exists())

    def test_delete_account_with_children_is_refused(self):
        child = create_account(self.tenant, code="1110", name="Till", account_type="asset", parent=self.cash)

        result = delete_account(self.tenant, self.cash.pk)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, AccountInUseError)
        self.assertTrue(Account.objects.filter(pk=self.cash.pk).exists())
        self.assertTrue(Account.objects.filter(pk=child.pk).exists())

    def test_delete_account_with_postings_is_refused(self):
        _post(self.tenant, self.cash, self.sales)

        result = delete_account(self.tenant, self.sales.pk)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, AccountInUseError)
        self.assertTrue(Account.objects.filter(pk=self.sales.pk).exists())

    def test_delete_account_of_another_tenant_is_refused(self):
        other = Tenant.objects.create(name="Beta Trading", slug="beta")

        result = delete_account(other, self.cash.pk)

        self.assertFalse(result.success)
        self.assertTrue(Account.objects.filter(pk=self.cash.pk).exists())

    def test_model_delete_guard(self):
        _post(self.tenant, self.cash, self.sales)
        with self.assertRaises(AccountInUseError):
            self.cash.delete()

    # -----------------------------
    # tree + reporting
    # -----------------------------

    def test_account_tree(self):
        seed_default_accounts(self.tenant)
        assets = Account.objects.get(tenant=self.tenant, code="1000")
        create_account(self.tenant, code="1010", name="Till", account_type="asset", parent=assets)
        create_account(self.tenant, code="1005", name="Safe", account_type="asset", parent=assets)

        tree = get_account_tree(self.tenant)
        by_code = {node["code"]: node for node in tree}

        self.assertIn("1000", by_code)
        self.assertIn("1100", by_code)
        self.assertEqual([c["code"] for c in by_code["1000"]["children"]], ["1005", "1010"])
        self.assertEqual(by_code["5000"]["children"], [])

    def test_natural_balance_by_type(self):
        _post(self.tenant, self.cash, self.sales, "75.00")
        self.cash.refresh_from_db()
        self.sales.refresh_from_db()

        self.assertEqual(natural_balance(self.cash), Decimal("75.00"))
        self.assertEqual(self.sales.balance, Decimal("-75.00"))
        self.assertEqual(natural_balance(self.sales), Decimal("75.00"))

    def test_seed_is_idempotent(self):
        first = seed_default_accounts(self.tenant)
        second = seed_default_accounts(self.tenant)

        self.assertEqual([a.code for a in first], ["1000", "2000", "3000", "4000", "5000"])
        self.assertEqual(second, [])

    # -----------------------------
    # verify / rebuild
    # -----------------------------

    def test_verify_detects_drift_and_rebuild_repairs_it(self):
        _post(self.tenant, self.cash, self.sales)
        Account.objects.filter(pk=self.cash.pk).update(balance=Decimal("999.00"))

        mismatches = verify_account_balances(self.tenant)
        self.assertEqual(len(mismatches), 1)
        self.assertEqual(mismatches[0].code, "1100")
        self.assertEqual(mismatches[0].difference, Decimal("899.00"))

        self.assertEqual(rebuild_account_balances(self.tenant), 1)
        self.assertEqual(verify_account_balances(self.tenant), [])
        self.cash.refresh_from_db()
        self.assertEqual(self.cash.balance, Decimal("100.00"))

    def test_unbalanced_entries_are_reported(self):
        entry = _post(self.tenant, self.cash, self.sales)
        self.assertEqual(unbalanced_entries(self.tenant), [])

        JournalLine.objects.create(
            journal_entry=entry, account=self.cash, debit=Decimal("5.00"), credit=Decimal("0.00")
        )

        bad = unbalanced_entries(self.tenant)
        self.assertEqual([e.pk for e in bad], [entry.pk])
        self.assertEqual(bad[0].total_debit, Decimal("105.00"))


class LedgerCommandTests(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Alpha Trading", slug="alpha")

    def test_seed_command(self):
        out = StringIO()
        call_command("seed_default_accounts", tenant="alpha", stdout=out)
        self.assertIn("[OK] Created 5 account(s)", out.getvalue())

        out = StringIO()
        call_command("seed_default_accounts", tenant=str(self.tenant.pk), stdout=out)
        self.assertIn("[SKIP]", out.getvalue())

    def test_unknown_tenant(self):
        with self.assertRaises(CommandError):
            call_command("seed_default_accounts", tenant="nobody", stdout=StringIO())

    def test_verify_command_passes_on_clean_ledger(self):
        cash = create_account(self.tenant, code="1100", name="Cash", account_type="asset")
        sales = create_account(self.tenant, code="4100", name="Sales", account_type="revenue")
        _post(self.tenant, cash, sales)

        out = StringIO()
        call_command("verify_ledger", tenant="alpha", strict=True, stdout=out, stderr=StringIO())

        self.assertIn("VALIDATION PASSED", out.getvalue())

    def test_verify_command_repairs_drift(self):
        cash = create_account(self.tenant, code="1100", name="Cash", account_type="asset")
        sales = create_account(self.tenant, code="4100", name="Sales", account_type="revenue")
        _post(self.tenant, cash, sales)
        Account.objects.filter(pk=cash.pk).update(balance=Decimal("1.00"))

        out = StringIO()
        call_command("verify_ledger", tenant="alpha", repair=True, stdout=out, stderr=StringIO())

        self.assertIn("[REPAIRED]", out.getvalue())
        self.assertIn("VALIDATION PASSED", out.getvalue())
        cash.refresh_from_db()
        self.assertEqual(cash.balance, Decimal("100.00"))

    def test_verify_command_strict_exit(self):
        cash = create_account(self.tenant, code="1100", name="Cash", account_type="asset")
        sales = create_account(self.tenant, code="4100", name="Sales", account_type="revenue")
        _post(self.tenant, cash, sales)
        Account.objects.filter(pk=cash.pk).update(balance=Decimal("1.00"))

        err = StringIO()
        with self.assertRaises(SystemExit):
            call_command("verify_ledger", tenant="alpha", strict=True, stdout=StringIO(), stderr=err)
        self.assertIn("VALIDATION FOUND ISSUES", err.getvalue())
