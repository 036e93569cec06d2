"""Lump sum versus monthly pension."""

from __future__ import annotations

from decimal import Decimal

from .amortizer import compute_payment
from .data_models import PensionComparison, ZERO
from .exceptions import InvalidInputError
from .utils import Number, to_decimal

DEFAULT_LIFE_EXPECTANCY = 85


def present_value_of_pension(monthly_pension: Number, annual_return_percent: Number, years: int) -> Decimal:
    """Present value of ``years`` of pension payments, discounted annually."""
    annual_payment = to_decimal(monthly_pension) * 12
    rate = to_decimal(annual_return_percent) / 100
    if annual_payment <= 0:
        return ZERO
    if rate == 0:
        return annual_payment * years
    return annual_payment * (1 - (1 + rate) ** -years) / rate


def compare_lump_sum(
    lump_sum: Number,
    annual_return_percent: Number,
    monthly_pension: Number,
    cola_percent: Number = ZERO,
    retirement_age: int = 65,
    life_expectancy: int = DEFAULT_LIFE_EXPECTANCY,
) -> PensionComparison:
    """Compare taking a lump sum with taking a monthly pension.

    The lump sum is assumed invested at ``annual_return_percent`` and drawn
    down in level monthly withdrawals until ``life_expectancy``; the pension
    grows by ``cola_percent`` each year. The option with the larger present
    value wins.
    """
    lump_sum = to_decimal(lump_sum)
    monthly_pension = to_decimal(monthly_pension)
    rate_percent = to_decimal(annual_return_percent)
    cola = to_decimal(cola_percent) / 100
    years = life_expectancy - retirement_age
    if years <= 0:
        raise InvalidInputError("Life expectancy must be after the retirement age")
    if lump_sum < 0 or monthly_pension < 0 or rate_percent < 0:
        raise InvalidInputError("Amounts and rates cannot be negative")

    rate = rate_percent / 100
    withdrawal = compute_payment(lump_sum, rate / 12, years * 12) if lump_sum > 0 else ZERO

    total_pension = ZERO
    payment = monthly_pension
    for _ in range(years):
        total_pension += payment * 12
        payment *= 1 + cola

    present_value = present_value_of_pension(monthly_pension, rate_percent, years)
    advantage = lump_sum - present_value
    return PensionComparison(
        years_in_retirement=years,
        lump_sum_future_value=lump_sum * (1 + rate) ** years,
        lump_sum_monthly_withdrawal=withdrawal,
        total_pension_value=total_pension,
        present_value_pension=present_value,
        better_option="lump_sum" if advantage > 0 else "monthly_pension",
        advantage=abs(advantage),
    )
