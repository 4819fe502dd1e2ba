# accounting/management/commands/seed_default_accounts.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from accounting.services.account_service import seed_default_accounts
from tenants.services import TenantNotFoundError, get_tenant


class Command(BaseCommand):
    help = "Create the five default root accounts (assets ... expenses) for a tenant. Idempotent."

    def add_arguments(self, parser):
        parser.add_argument(
            "--tenant",
            required=True,
            help="Tenant slug or UUID",
        )

    def handle(self, *args, **options):
        try:
            tenant = get_tenant(options["tenant"])
        except TenantNotFoundError as exc:
            raise CommandError(str(exc)) from exc

        created = seed_default_accounts(tenant)

        if not created:
            self.stdout.write(self.style.WARNING(f"[SKIP] Default accounts already exist for {tenant.slug}"))
            return

        for account in created:
            self.stdout.write(f"  + {account.code}  {account.name}")
        self.stdout.write(self.style.SUCCESS(f"[OK] Created {len(created)} account(s) for {tenant.slug}"))
