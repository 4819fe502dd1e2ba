# accounting/serializers.py

"""
JOURNAL ENTRY INPUT SERIALIZERS

Validate the payload an originator hands to the ledger poster.

Notes:
- DRF is used purely as a validation layer (no HTTP views).
- Amounts arrive already quantized to 2dp by the service.
- The balance check (debits == credits) is NOT done here: it has its own
  error (UnbalancedEntryError) and lives in the journal entry service.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

ZERO = Decimal("0.00")


class JournalLineInputSerializer(serializers.Serializer):
    account_id = serializers.IntegerField(min_value=1)
    description = serializers.CharField(
        max_length=255,
        allow_blank=True,
        default="",
    )
    debit = serializers.DecimalField(
        max_digits=20,
        decimal_places=2,
        min_value=ZERO,
        default=ZERO,
    )
    credit = serializers.DecimalField(
        max_digits=20,
        decimal_places=2,
        min_value=ZERO,
        default=ZERO,
    )

    def validate(self, attrs):
        if attrs.get("debit", ZERO) > 0 and attrs.get("credit", ZERO) > 0:
            raise serializers.ValidationError(
                "A line cannot carry both a debit and a credit"
            )
        return attrs


class JournalEntryInputSerializer(serializers.Serializer):
    transaction_date = serializers.DateField()
    description = serializers.CharField(allow_blank=True, default="")
    reference = serializers.CharField(
        max_length=100,
        allow_blank=True,
        allow_null=True,
        default=None,
    )
    currency = serializers.CharField(min_length=3, max_length=3)
    exchange_rate = serializers.DecimalField(max_digits=10, decimal_places=6)
    source_type = serializers.CharField(
        max_length=50,
        allow_blank=True,
        allow_null=True,
        default=None,
    )
    source_id = serializers.CharField(
        max_length=100,
        allow_blank=True,
        allow_null=True,
        default=None,
    )
    lines = JournalLineInputSerializer(many=True)

    def validate_currency(self, value):
        value = value.strip().upper()
        if not value.isalpha():
            raise serializers.ValidationError("Currency must be a 3-letter code")
        return value

    def validate_exchange_rate(self, value):
        if value <= 0:
            raise serializers.ValidationError("Exchange rate must be greater than zero")
        return value

    def validate_lines(self, value):
        if len(value) < 2:
            raise serializers.ValidationError(
                "A journal entry needs at least two lines"
            )
        return value

    def validate(self, attrs):
        for key in ("reference", "source_type", "source_id"):
            raw = attrs.get(key)
            if raw is not None:
                attrs[key] = str(raw).strip() or None
        attrs["description"] = (attrs.get("description") or "").strip()
        return attrs
