# accounting/admin.py

from django.contrib import admin

from accounting.models.account import Account
from accounting.models.fiscal_year import FiscalYear
from accounting.models.journal import JournalEntry
from accounting.models.journal_line import JournalLine

# ============================================================
# ACCOUNT (balance is engine-owned)
# ============================================================


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "account_type",
        "tenant",
        "balance",
        "is_active",
    )
    list_filter = ("account_type", "is_active", "tenant")
    search_fields = ("code", "name", "role_key")
    ordering = ("tenant", "code")
    readonly_fields = ("balance", "role_key", "created_at", "updated_at")

    fieldsets = (
        (
            "Account Identity",
            {
                "fields": ("tenant", "code", "name", "account_type", "parent"),
            },
        ),
        (
            "Ledger",
            {
                "fields": ("balance", "role_key", "is_active"),
            },
        ),
        (
            "System Fields",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None):
        # Account.delete() refuses accounts in use; bulk queryset deletes would bypass it.
        return obj is not None and request.user.is_superuser


# ============================================================
# FISCAL YEAR
# ============================================================


@admin.register(FiscalYear)
class FiscalYearAdmin(admin.ModelAdmin):
    list_display = ("name", "tenant", "start_date", "end_date", "is_closed")
    list_filter = ("is_closed", "tenant")
    ordering = ("tenant", "-start_date")
    readonly_fields = ("created_at",)

    def has_delete_permission(self, request, obj=None):
        return False


# ============================================================
# JOURNAL ENTRY + LINES (READ-ONLY)
# ============================================================


class JournalLineInline(admin.TabularInline):
    model = JournalLine
    extra = 0
    can_delete = False
    fields = ("account", "description", "debit", "credit")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(JournalEntry)
class JournalEntryAdmin(admin.ModelAdmin):
    list_display = (
        "entry_number",
        "tenant",
        "transaction_date",
        "reference",
        "source_type",
        "status",
        "created_at",
    )
    list_filter = ("status", "source_type", "tenant")
    search_fields = ("entry_number", "description", "reference", "source_id")
    ordering = ("-transaction_date", "-created_at")
    inlines = [JournalLineInline]

    readonly_fields = (
        "tenant",
        "fiscal_year",
        "entry_number",
        "transaction_date",
        "description",
        "reference",
        "currency",
        "exchange_rate",
        "status",
        "source_type",
        "source_id",
        "created_by",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
