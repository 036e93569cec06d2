"""Frequency conversions.

Maps named payment/compounding frequencies to periods per year and converts
rates, payments and dates between them. All functions are pure.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from .data_models import Frequency
from .exceptions import InvalidInputError
from .utils import Number, add_months, to_decimal

FrequencyLike = Union[Frequency, str]

_MONTH_STEPS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.ANNUALLY: 12,
}
_DAY_STEPS = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}


def periods_per_year(freq: FrequencyLike) -> int:
    """Return the number of periods in a year; unknown names raise ``InvalidFrequencyError``."""
    return Frequency.parse(freq).periods_per_year


def to_periodic_rate(annual_rate_percent: Number, freq: FrequencyLike) -> Decimal:
    """Convert a nominal annual percentage into a per-period decimal rate."""
    return to_decimal(annual_rate_percent) / Decimal(100) / Decimal(periods_per_year(freq))


def convert_payment(amount: Number, from_freq: FrequencyLike, to_freq: FrequencyLike) -> Decimal:
    """Scale a per-period amount linearly to another frequency.

    A biweekly payment of 500 is 500 * 26 / 12 per month.
    """
    return to_decimal(amount) * Decimal(periods_per_year(from_freq)) / Decimal(periods_per_year(to_freq))


def equivalent_periodic_rate(
    annual_rate_percent: Number,
    compounding: FrequencyLike,
    payment: FrequencyLike,
) -> Decimal:
    """Return the per-payment rate for a rate compounded at another frequency.

    With matching frequencies this is ``to_periodic_rate``. Otherwise the rate
    per compounding period is converted as ``(1 + r/m) ** (m/p) - 1``.
    """
    m = periods_per_year(compounding)
    p = periods_per_year(payment)
    if m == p:
        return to_periodic_rate(annual_rate_percent, payment)
    per_compounding = to_periodic_rate(annual_rate_percent, compounding)
    if per_compounding == 0:
        return Decimal("0")
    return (1 + per_compounding) ** (Decimal(m) / Decimal(p)) - 1


def effective_annual_rate(annual_rate_percent: Number, compounding: FrequencyLike) -> Decimal:
    """Effective annual rate as a decimal fraction, ``(1 + r/m) ** m - 1``."""
    m = periods_per_year(compounding)
    return (1 + to_periodic_rate(annual_rate_percent, compounding)) ** m - 1


def number_of_periods(term_years: Number, freq: FrequencyLike) -> int:
    """Whole number of payment periods in ``term_years`` (at least one)."""
    years = to_decimal(term_years)
    if years <= 0:
        raise InvalidInputError("Term must be positive")
    count = int((years * periods_per_year(freq)).to_integral_value(rounding=ROUND_HALF_UP))
    return max(count, 1)


def advance(start: date, freq: FrequencyLike, periods: int) -> date:
    """Return the date ``periods`` payment periods after ``start``."""
    freq = Frequency.parse(freq)
    if freq in _MONTH_STEPS:
        return add_months(start, _MONTH_STEPS[freq] * periods)
    return start + timedelta(days=_DAY_STEPS[freq] * periods)
