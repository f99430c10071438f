# accounting/management/commands/setup_default_accounts.py
"""
Seed the default school chart of accounts for a tenant.

Usage:
    python manage.py setup_default_accounts green-valley
"""

from django.core.management.base import BaseCommand, CommandError

from accounting.exceptions import AlreadyInitialized
from accounting.registry import setup_defaults
from tenant.context import tenant_context
from tenant.models import Tenant


class Command(BaseCommand):
    help = "Seed the default chart of accounts for a tenant"

    def add_arguments(self, parser):
        parser.add_argument("tenant", type=str, help="Tenant slug")

    def handle(self, *args, **options):
        slug = options["tenant"]
        tenant = Tenant.objects.filter(slug=slug, is_active=True).first()
        if tenant is None:
            raise CommandError(f"Tenant not found or inactive: {slug}")

        with tenant_context(tenant):
            try:
                accounts = setup_defaults(tenant)
            except AlreadyInitialized as e:
                raise CommandError(str(e))

        for account in accounts:
            self.stdout.write(f"  {account.code}  {account.name} ({account.account_type})")
        self.stdout.write(
            self.style.SUCCESS(f"Created {len(accounts)} default accounts for {slug}")
        )
