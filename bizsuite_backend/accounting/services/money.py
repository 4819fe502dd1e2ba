# accounting/services/money.py

"""
Money helpers shared by the ledger engine and the posting recipes.

All persisted amounts are Decimal quantized to 2 places (ROUND_HALF_UP).
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.conf import settings

from accounting.services.exceptions import LedgerValidationError

TWOPLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.000001")
ZERO = Decimal("0.00")


def to_decimal(value, *, field: str = "amount") -> Decimal:
    if value is None or value == "":
        return Decimal("0")

    if isinstance(value, Decimal):
        amt = value
    elif isinstance(value, float):
        # str() keeps the short repr (0.1 -> "0.1") instead of the binary expansion
        amt = Decimal(str(value))
    else:
        try:
            amt = Decimal(str(value).strip())
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise LedgerValidationError(f"Invalid {field}: {value!r}") from exc

    if not amt.is_finite():
        raise LedgerValidationError(f"Invalid {field}: {value!r}")
    return amt


def _quantize(amt: Decimal, places: Decimal, value, field: str) -> Decimal:
    # values too large for the decimal context cannot be quantized
    try:
        return amt.quantize(places, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise LedgerValidationError(f"Invalid {field}: {value!r}") from exc


def money(value, *, field: str = "amount") -> Decimal:
    return _quantize(to_decimal(value, field=field), TWOPLACES, value, field)


def rate(value, *, field: str = "exchange_rate") -> Decimal:
    if value is None or value == "":
        return Decimal("1.000000")
    return _quantize(to_decimal(value, field=field), RATE_PLACES, value, field)


def to_base(amount, exchange_rate) -> Decimal:
    """Document-currency amount → base-currency amount, 2dp."""
    return money(to_decimal(amount) * rate(exchange_rate))


def balance_tolerance() -> Decimal:
    return to_decimal(getattr(settings, "LEDGER_BALANCE_TOLERANCE", "0.01"), field="tolerance")
