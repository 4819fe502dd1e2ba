# accounting/tests/test_journal_reverser.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone

from accounting.models.fiscal_year import FiscalYear
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine
from accounting.services.account_service import (
    create_account,
    verify_account_balances,
)
from accounting.services.exceptions import (
    EntryNotFoundError,
    FiscalYearError,
    LedgerValidationError,
)
from accounting.services.fiscal_year_service import close_fiscal_year
from accounting.services.journal_entry_service import (
    delete_journal_entry,
    post_journal_entry,
    reverse_entries_by_reference,
    reverse_entries_for_source,
    reverse_journal_entry,
    void_journal_entry,
)
from tenants.models import Tenant


def _balance(account) -> Decimal:
    account.refresh_from_db(fields=["balance"])
    return account.balance


class ReverserTestBase(TestCase):
    def setUp(self):
        self.tenant = Tenant.objects.create(name="Alpha Trading", slug="alpha")
        self.cash = create_account(self.tenant, code="1100", name="Cash", account_type="asset")
        self.sales = create_account(
            self.tenant, code="4100", name="Sales Revenue", account_type="revenue"
        )

    def _post(self, amount="100.00", reference=None, source_type=None, source_id=None):
        return post_journal_entry(
            tenant=self.tenant,
            transaction_date=timezone.localdate(),
            lines=[
                {"account": self.cash, "debit": amount, "credit": "0"},
                {"account": self.sales, "debit": "0", "credit": amount},
            ],
            reference=reference,
            source_type=source_type,
            source_id=source_id,
        )


class ReverseJournalEntryTests(ReverserTestBase):
    def test_reversal_is_exact_inverse(self):
        kept = self._post("40.00")
        entry = self._post("100.00")

        reverse_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertFalse(JournalEntry.objects.filter(pk=entry.pk).exists())
        self.assertFalse(JournalLine.objects.filter(journal_entry_id=entry.pk).exists())
        self.assertTrue(JournalEntry.objects.filter(pk=kept.pk).exists())
        self.assertEqual(_balance(self.cash), Decimal("40.00"))
        self.assertEqual(_balance(self.sales), Decimal("-40.00"))
        self.assertEqual(verify_account_balances(self.tenant), [])

    def test_second_reversal_raises_and_changes_nothing(self):
        entry = self._post()
        reverse_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        with self.assertRaises(EntryNotFoundError):
            reverse_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertEqual(_balance(self.cash), Decimal("0.00"))
        self.assertEqual(_balance(self.sales), Decimal("0.00"))

    def test_entry_of_another_tenant_is_not_found(self):
        entry = self._post()
        other = Tenant.objects.create(name="Beta Trading", slug="beta")

        with self.assertRaises(EntryNotFoundError):
            reverse_journal_entry(tenant=other, entry_id=entry.pk)

        self.assertTrue(JournalEntry.objects.filter(pk=entry.pk).exists())
        self.assertEqual(_balance(self.cash), Decimal("100.00"))

    def test_entry_in_closed_year_cannot_be_reversed(self):
        entry = self._post()
        close_fiscal_year(self.tenant, entry.fiscal_year_id)

        with self.assertRaises(FiscalYearError):
            reverse_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertTrue(JournalEntry.objects.filter(pk=entry.pk).exists())
        self.assertEqual(_balance(self.cash), Decimal("100.00"))

    def test_delete_journal_entry_reports_result(self):
        entry = self._post()

        first = delete_journal_entry(tenant=self.tenant, entry_id=entry.pk)
        second = delete_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertTrue(first.success)
        self.assertFalse(second.success)
        self.assertIsInstance(second.error, EntryNotFoundError)


class VoidJournalEntryTests(ReverserTestBase):
    def test_void_restores_balances_and_keeps_rows(self):
        entry = self._post()

        result = void_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertTrue(result.success)
        entry.refresh_from_db()
        self.assertEqual(entry.status, JournalEntry.VOID)
        self.assertEqual(entry.lines.count(), 2)
        self.assertEqual(_balance(self.cash), Decimal("0.00"))
        self.assertEqual(_balance(self.sales), Decimal("0.00"))
        self.assertEqual(verify_account_balances(self.tenant), [])

    def test_void_twice_fails_without_double_effect(self):
        entry = self._post()
        void_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        result = void_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertFalse(result.success)
        self.assertIsInstance(result.error, LedgerValidationError)
        self.assertEqual(_balance(self.cash), Decimal("0.00"))

    def test_reversing_void_entry_only_deletes_it(self):
        entry = self._post()
        void_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        reverse_journal_entry(tenant=self.tenant, entry_id=entry.pk)

        self.assertFalse(JournalEntry.objects.filter(pk=entry.pk).exists())
        self.assertEqual(_balance(self.cash), Decimal("0.00"))
        self.assertEqual(_balance(self.sales), Decimal("0.00"))


class BulkReversalTests(ReverserTestBase):
    def test_exact_reference_does_not_hit_longer_references(self):
        self._post("10.00", reference="INV-1")
        self._post("20.00", reference="INV-100")

        count = reverse_entries_by_reference(tenant=self.tenant, reference="INV-1")

        self.assertEqual(count, 1)
        self.assertEqual(list(JournalEntry.objects.values_list("reference", flat=True)), ["INV-100"])
        self.assertEqual(_balance(self.cash), Decimal("20.00"))

    def test_substring_reference_matches_every_containing_entry(self):
        self._post("10.00", reference="INV-1")
        self._post("20.00", reference="INV-100")
        self._post("30.00", reference="PO-7")

        count = reverse_entries_by_reference(tenant=self.tenant, reference="inv-1", exact=False)

        self.assertEqual(count, 2)
        self.assertEqual(_balance(self.cash), Decimal("30.00"))

    def test_blank_reference_is_rejected(self):
        self._post(reference="INV-1")
        with self.assertRaises(LedgerValidationError):
            reverse_entries_by_reference(tenant=self.tenant, reference="  ")
        self.assertEqual(JournalEntry.objects.count(), 1)

    def test_reference_cleanup_is_tenant_scoped(self):
        self._post("10.00", reference="INV-1")
        other = Tenant.objects.create(name="Beta Trading", slug="beta")

        self.assertEqual(reverse_entries_by_reference(tenant=other, reference="INV-1"), 0)
        self.assertEqual(JournalEntry.objects.count(), 1)

    def test_reverse_by_source_document(self):
        self._post("10.00", source_type="sale", source_id="S-1")
        self._post("15.00", source_type="sale", source_id="S-1")
        self._post("20.00", source_type="sale", source_id="S-2")

        count = reverse_entries_for_source(tenant=self.tenant, source_type="sale", source_id="S-1")

        self.assertEqual(count, 2)
        self.assertEqual(
            list(JournalEntry.objects.values_list("source_id", flat=True)),
            ["S-2"],
        )
        self.assertEqual(_balance(self.cash), Decimal("20.00"))

    def test_reverse_by_source_with_nothing_posted(self):
        self.assertEqual(
            reverse_entries_for_source(tenant=self.tenant, source_type="sale", source_id=99),
            0,
        )

    def test_bulk_reversal_is_all_or_nothing(self):
        today = timezone.localdate()
        old = self._post("10.00", reference="INV-9")

        closed_year = FiscalYear.objects.create(
            tenant=self.tenant,
            name=str(today.year - 1),
            start_date=date(today.year - 1, 1, 1),
            end_date=date(today.year - 1, 12, 31),
            is_closed=True,
        )
        JournalEntry.objects.filter(pk=old.pk).update(fiscal_year=closed_year)
        self._post("20.00", reference="INV-9")

        with self.assertRaises(FiscalYearError):
            reverse_entries_by_reference(tenant=self.tenant, reference="INV-9")

        self.assertEqual(JournalEntry.objects.count(), 2)
        self.assertEqual(_balance(self.cash), Decimal("30.00"))
        self.assertEqual(verify_account_balances(self.tenant), [])
