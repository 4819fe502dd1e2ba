# tenants/apps.py

"""
TENANTS APP CONFIG

Owns the Tenant record every ledger table is scoped by.
Provisioning (sign-up, billing, licensing) lives outside this project.
"""

from django.apps import AppConfig


class TenantsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "tenants"
    verbose_name = "Tenants"
