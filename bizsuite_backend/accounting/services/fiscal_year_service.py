# accounting/services/fiscal_year_service.py

"""
======================================================
PATH: accounting/services/fiscal_year_service.py
======================================================
FISCAL YEAR RESOLVER

Answers: "Which fiscal year does a new posting land in?"

Policy:
- The tenant's single open fiscal year is used.
- If none is open, a Jan 1 – Dec 31 year for the current calendar year
  is created (named after the year). This is a convenience default.
- If that calendar year exists but was closed, posting is refused
  (FiscalYearError): a closed year is never silently reopened.

Concurrency:
- The partial unique constraint (one open year per tenant) makes two
  concurrent first postings converge: the loser hits IntegrityError inside
  a savepoint and re-reads the winner's row.
"""

from __future__ import annotations

import logging
from datetime import date

from django.db import IntegrityError, transaction
from django.utils import timezone

from accounting.models.fiscal_year import FiscalYear
from accounting.services.exceptions import FiscalYearError

logger = logging.getLogger(__name__)


def _open_year(tenant) -> FiscalYear | None:
    return (
        FiscalYear.objects.filter(tenant=tenant, is_closed=False)
        .order_by("-start_date")
        .first()
    )


def get_open_fiscal_year(tenant, *, today: date | None = None) -> FiscalYear:
    fiscal_year = _open_year(tenant)
    if fiscal_year is not None:
        return fiscal_year

    year = (today or timezone.localdate()).year
    start, end = date(year, 1, 1), date(year, 12, 31)

    if FiscalYear.objects.filter(
        tenant=tenant, start_date=start, end_date=end, is_closed=True
    ).exists():
        raise FiscalYearError(
            f"Fiscal year {year} is closed and no other fiscal year is open"
        )

    try:
        with transaction.atomic():
            fiscal_year = FiscalYear.objects.create(
                tenant=tenant,
                name=str(year),
                start_date=start,
                end_date=end,
                is_closed=False,
            )
    except IntegrityError as exc:
        fiscal_year = _open_year(tenant)
        if fiscal_year is None:
            raise FiscalYearError(
                f"Could not create fiscal year {year}: {exc}"
            ) from exc
        logger.info(
            "Fiscal year created concurrently; using existing row",
            extra={"tenant_id": str(tenant.pk), "fiscal_year_id": fiscal_year.pk},
        )
        return fiscal_year

    logger.info(
        "Bootstrapped fiscal year %s",
        fiscal_year.name,
        extra={"tenant_id": str(tenant.pk), "fiscal_year_id": fiscal_year.pk},
    )
    return fiscal_year


@transaction.atomic
def close_fiscal_year(tenant, fiscal_year_id) -> FiscalYear:
    """
    Mark a fiscal year closed. Closing is one-way; the next posting
    after closing bootstraps the next calendar year if needed.
    """
    try:
        fiscal_year = FiscalYear.objects.select_for_update().get(
            tenant=tenant, pk=fiscal_year_id
        )
    except FiscalYear.DoesNotExist as exc:
        raise FiscalYearError(f"Fiscal year {fiscal_year_id} not found") from exc

    if fiscal_year.is_closed:
        raise FiscalYearError(f"Fiscal year {fiscal_year.name} is already closed")

    fiscal_year.is_closed = True
    fiscal_year.save(update_fields=["is_closed"])

    logger.info(
        "Closed fiscal year %s",
        fiscal_year.name,
        extra={"tenant_id": str(tenant.pk), "fiscal_year_id": fiscal_year.pk},
    )
    return fiscal_year
