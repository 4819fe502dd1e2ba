# backend/urls.py
"""
PROJECT URLS

The ledger engine has no HTTP API of its own; originators call it in-process.
Only the Django admin is mounted, at a configurable path (ADMIN_PATH).
"""

from __future__ import annotations

from django.conf import settings
from django.contrib import admin
from django.urls import path

ADMIN_PATH = getattr(settings, "ADMIN_PATH", "admin/")
if not ADMIN_PATH.endswith("/"):
    ADMIN_PATH = f"{ADMIN_PATH}/"

urlpatterns = [
    path(ADMIN_PATH, admin.site.urls),
]
