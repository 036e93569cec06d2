"""Utility functions for cashflow-calc.

This module provides helpers for turning user input into ``Decimal`` and
``date`` values and for month arithmetic. Month offsets are computed with
the ``calendar`` module so that day-of-month overflow is clamped.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, getcontext
from typing import Optional, Union

from .exceptions import InvalidInputError

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.split("-")
        if len(parts) < 2:
            raise ValueError
        return date(int(parts[0]), int(parts[1]), 1)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD string; a bare YYYY-MM means the first of the month."""
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return parse_year_month(value)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def first_of_next_month(today: Optional[date] = None) -> date:
    today = today or date.today()
    return add_months(today.replace(day=1), 1)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``InvalidInputError`` (a ``ValueError``) if conversion
    fails.
    """
    try:
        cleaned = value.replace(",", "").strip()
        return Decimal(cleaned)
    except (AttributeError, InvalidOperation) as exc:
        raise InvalidInputError(f"Invalid numeric value: {value}") from exc


def to_decimal(value: Number) -> Decimal:
    """Coerce an int, float, str or Decimal into a ``Decimal``.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid numeric value: {value!r}")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    return decimal_from_str(value)


def round_money(value: Decimal) -> Decimal:
    """Round to cents, half away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
