# accounting/management/commands/verify_ledger.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_service import (
    rebuild_account_balances,
    unbalanced_entries,
    verify_account_balances,
)
from tenants.services import TenantNotFoundError, get_tenant


class Command(BaseCommand):
    help = "Verify ledger integrity for a tenant (entry balance + stored vs derived account balances)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            required=True,
            help="Tenant slug or UUID",
        )
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Rebuild stored balances from posted journal lines.",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail (non-zero exit) if any problem remains.",
        )

    def handle(self, *args, **options):
        try:
            tenant = get_tenant(options["tenant"])
        except TenantNotFoundError as exc:
            raise CommandError(str(exc)) from exc

        repair = bool(options.get("repair"))
        strict = bool(options.get("strict"))

        self.stdout.write(self.style.MIGRATE_HEADING(f"Ledger verification: {tenant.slug}"))

        errors = 0

        # -----------------------------
        # 1) Every posted entry balances
        # -----------------------------
        bad_entries = unbalanced_entries(tenant)
        if bad_entries:
            errors += len(bad_entries)
            self.stderr.write(self.style.ERROR(f"[FAIL] Unbalanced journal entries: {len(bad_entries)}"))
            for entry in bad_entries[:10]:
                self.stderr.write(
                    f"  {entry.entry_number} debits={entry.total_debit} credits={entry.total_credit}"
                )
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Every posted journal entry balances"))

        # -----------------------------
        # 2) Stored balance == SUM(debit - credit)
        # -----------------------------
        mismatches = verify_account_balances(tenant)
        if mismatches and repair:
            changed = rebuild_account_balances(tenant)
            self.stdout.write(self.style.WARNING(f"[REPAIRED] Rebuilt {changed} account balance(s)"))
            mismatches = verify_account_balances(tenant)

        if mismatches:
            errors += len(mismatches)
            self.stderr.write(self.style.ERROR(f"[FAIL] Account balance mismatches: {len(mismatches)}"))
            for m in mismatches[:10]:
                self.stderr.write(f"  {m.code} stored={m.stored} derived={m.derived}")
        else:
            self.stdout.write(self.style.SUCCESS("[OK] Account balances match posted lines"))

        self.stdout.write("")
        if errors == 0:
            self.stdout.write(self.style.SUCCESS("VALIDATION PASSED"))
        else:
            self.stderr.write(self.style.ERROR(f"VALIDATION FOUND ISSUES: {errors} problem(s)"))

        return self._exit(strict and errors > 0)

    def _exit(self, fail: bool):
        if fail:
            raise SystemExit(1)
        return None
