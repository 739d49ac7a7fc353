"""
Values -- Coercion helpers for quantities, calendar dates and period keys.

Responsibility:
    Normalizes the loosely typed fields found in batch documents into the
    two primitive types the engines compute with: ``Decimal`` kilograms and
    ``datetime.date`` calendar dates.  Also owns the calendar-month period
    key used by the ledger.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Quantities are always ``Decimal`` (never float); garbage becomes zero.
    - Dates never carry a time-of-day component.
    - Coercion never raises: malformed input degrades to ``ZERO`` / ``None``.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")


def to_quantity(value: Any) -> Decimal:
    """
    Coerce a document value into a ``Decimal`` quantity.

    ``None``, empty strings, booleans, non-numeric strings and non-finite
    numbers all become ``ZERO``.  Floats go through ``str`` so ``0.1``
    stays ``Decimal("0.1")``.
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    if isinstance(value, (int, float, str)):
        text = str(value).strip()
        if not text:
            return ZERO
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return ZERO
        return result if result.is_finite() else ZERO
    return ZERO


def parse_calendar_date(value: Any) -> date | None:
    """
    Parse a calendar date from a ``date``, ``datetime`` or ISO-8601 string.

    Strings may carry a time component (``2025-01-10T08:30:00Z``); only the
    calendar date is kept.  Anything unparseable returns ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()[:10]
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def month_key(value: date | None) -> str | None:
    """Calendar-month period key (``YYYY-MM``) for a date, or None."""
    if value is None:
        return None
    return f"{value.year:04d}-{value.month:02d}"


def month_label(key: str) -> str:
    """Human label for a period key: ``2025-03`` -> ``Mar 2025``."""
    year, month = key.split("-")
    return f"{calendar.month_abbr[int(month)]} {int(year)}"
