"""
Free-Text Value Parsing

Amounts, percentages and dates arrive as whatever the user typed into a
form or a CSV cell ("100,000", "5%", "Sep 8 2023"). These helpers turn
that text into values the calculators can use without ever raising:
malformed numbers become zero and unknown dates become None.

Copyright (c) 2026 Andreas Wagner. All rights reserved.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from core.config import DATE_FORMATS

AmountInput = Union[str, int, float, Decimal, None]


def parse_amount(value: AmountInput) -> Decimal:
    """
    Parse a free-text amount.

    Thousands separators, surrounding whitespace and a trailing '%' are
    removed. Empty, malformed or non-finite input yields Decimal(0).
    """
    if value is None:
        return Decimal(0)

    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal(0)

    if isinstance(value, bool):
        return Decimal(0)

    if isinstance(value, (int, float)):
        # str() keeps floats at their shortest repr (0.1 -> "0.1")
        value = str(value)

    cleaned = value.replace(",", "").replace("，", "").strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1].strip()

    if not cleaned:
        return Decimal(0)

    try:
        result = Decimal(cleaned)
    except InvalidOperation:
        return Decimal(0)

    if not result.is_finite():
        return Decimal(0)

    return result


def parse_percent(value: AmountInput) -> Decimal:
    """Parse a percentage such as '5%' or '5.25' into its number (5, 5.25)."""
    return parse_amount(value)


def parse_flexible_date(value: Union[str, date, datetime, None]) -> Optional[date]:
    """
    Parse a date typed in any of the accepted formats.

    Returns None when the text matches none of DATE_FORMATS.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    trimmed = value.strip()
    if not trimmed:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(trimmed, fmt).date()
        except ValueError:
            continue

    return None
