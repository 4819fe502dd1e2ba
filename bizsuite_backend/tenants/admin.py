# tenants/admin.py

from django.contrib import admin

from tenants.models import Tenant


@admin.register(Tenant)
class TenantAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "base_currency", "is_active", "created_at")
    list_filter = ("is_active", "base_currency")
    search_fields = ("name", "slug")
    readonly_fields = ("id", "created_at")
    ordering = ("name",)
