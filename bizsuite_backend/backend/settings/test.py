# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory sqlite, fast password hashing
- Ledger toggles pinned to their documented defaults so tests do not
  depend on the developer's .env
"""

from __future__ import annotations

from .base import *  # noqa: F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

LEDGER_BASE_CURRENCY = "EGP"
LEDGER_STRICT_POSTING = False
LEDGER_SEPARATE_TAX_ACCOUNT = False
LEDGER_BALANCE_TOLERANCE = "0.01"
