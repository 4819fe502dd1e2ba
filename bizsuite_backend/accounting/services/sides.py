# accounting/services/sides.py

"""
======================================================
PATH: accounting/services/sides.py
======================================================
NORMAL BALANCE TABLE

The ledger stores every balance as SUM(debit - credit), whatever the
account type. Posting recipes are the only place that decide which side
a line goes on, and they decide it here:

- asset / expense            increase on the DEBIT side
- liability / equity / revenue increase on the CREDIT side

Recipes build lines with increase() / decrease() instead of choosing
debit or credit by hand.
"""

from __future__ import annotations

from decimal import Decimal

from accounting.models.account import Account

DEBIT = "debit"
CREDIT = "credit"

NORMAL_BALANCE = {
    Account.ASSET: DEBIT,
    Account.EXPENSE: DEBIT,
    Account.LIABILITY: CREDIT,
    Account.EQUITY: CREDIT,
    Account.REVENUE: CREDIT,
}

ZERO = Decimal("0.00")


def normal_side(account_type: str) -> str:
    try:
        return NORMAL_BALANCE[account_type]
    except KeyError as exc:
        raise ValueError(f"Unknown account type: {account_type!r}") from exc


def _line(account: Account, side: str, amount: Decimal, description: str) -> dict:
    return {
        "account_id": account.id,
        "description": description,
        "debit": amount if side == DEBIT else ZERO,
        "credit": amount if side == CREDIT else ZERO,
    }


def increase(account: Account, amount: Decimal, description: str = "") -> dict:
    """Line that moves the account's natural balance up by amount."""
    return _line(account, normal_side(account.account_type), amount, description)


def decrease(account: Account, amount: Decimal, description: str = "") -> dict:
    """Line that moves the account's natural balance down by amount."""
    side = CREDIT if normal_side(account.account_type) == DEBIT else DEBIT
    return _line(account, side, amount, description)


def opposite(account: Account, line: dict, description: str = "") -> dict:
    """Line on account mirroring line's side (same amount, other side)."""
    if line["debit"]:
        return _line(account, CREDIT, line["debit"], description)
    return _line(account, DEBIT, line["credit"], description)
