# tenants/services.py

"""
TENANT LOOKUP

Callers hand the ledger an already-authorised tenant. This helper is for
management commands and scripts that only know a slug or an id.
"""

from __future__ import annotations

import uuid

from tenants.models import Tenant


class TenantNotFoundError(LookupError):
    """Raised when no active tenant matches the identifier."""


def get_tenant(identifier) -> Tenant:
    if isinstance(identifier, Tenant):
        return identifier

    raw = str(identifier or "").strip()
    if not raw:
        raise TenantNotFoundError("Tenant identifier is required")

    qs = Tenant.objects.filter(is_active=True)

    try:
        tenant_id = uuid.UUID(raw)
    except ValueError:
        tenant = qs.filter(slug=raw).first()
    else:
        tenant = qs.filter(id=tenant_id).first()

    if tenant is None:
        raise TenantNotFoundError(f"No active tenant matches {raw!r}")
    return tenant
