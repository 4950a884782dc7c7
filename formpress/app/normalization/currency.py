"""
Currency cleaning and extraction.

Intake forms carry money as free text (``"$1,200"``, ``"1200.00"``,
``"USD 300"``). Printed forms want bare numbers, and coverage rules want
comparable values. Nothing here raises: unusable input becomes ``"0"``.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any


# ISO codes accepted as a currency marker in free text.
CURRENCY_CODES = frozenset(
    {"USD", "CAD", "EUR", "GBP", "AUD", "NZD", "MXN", "JPY", "CHF", "CNY", "INR"}
)
CURRENCY_SYMBOLS = "$€£¥"

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")

_MARKED_AMOUNT = re.compile(
    r"(?:[" + re.escape(CURRENCY_SYMBOLS) + r"]|(?<![A-Za-z])(?:"
    + "|".join(sorted(CURRENCY_CODES))
    + r")(?![A-Za-z]))"
    r"\s*"
    r"(\d[\d,]*(?:\.\d{1,2})?)",
    re.IGNORECASE,
)


def clean_currency(value: Any) -> str:
    """
    Strip currency signs, separators and other non-numeric symbols.

    ``None``/empty (and anything with no digits left) cleans to ``"0"``.
    Idempotent: ``clean_currency(clean_currency(x)) == clean_currency(x)``.
    """
    if value is None or value is False or value is True:
        return "0"
    cleaned = _NON_NUMERIC.sub("", str(value))
    if not any(ch.isdigit() for ch in cleaned):
        return "0"
    return cleaned


def currency_amount(value: Any) -> Decimal:
    """Numeric value of a currency field; malformed input is zero."""
    try:
        return Decimal(clean_currency(value))
    except InvalidOperation:
        return Decimal(0)


def sum_currency_from_text(text: Any) -> str:
    """
    Sum amounts in free text that carry an explicit currency marker.

    Only numbers immediately preceded by a currency symbol or a
    three-letter currency code count, so years and counts are ignored::

        >>> sum_currency_from_text("Loss in 2023 of $1,200 and USD 300")
        '1500'
        >>> sum_currency_from_text("Born in 1999")
        '0'

    The total is rounded half-up to whole units.
    """
    if not text:
        return "0"

    total = Decimal(0)
    for match in _MARKED_AMOUNT.finditer(str(text)):
        try:
            total += Decimal(match.group(1).replace(",", ""))
        except InvalidOperation:
            continue
    return str(total.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def format_money(value: Any, *, symbol: str = "") -> str:
    """``1234.5`` -> ``"1,234.50"``; blank or non-numeric input -> ``""``."""
    if value is None or value == "" or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float, Decimal)):
        amount = Decimal(str(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            return ""
    if not amount.is_finite():
        return ""
    return f"{symbol}{amount:,.2f}"
