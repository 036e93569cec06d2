"""Schedule summaries and annual rollups."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Sequence

from .data_models import AnnualSummary, GrowthPeriod, GrowthYear, Schedule, Summary, ZERO
from .utils import Number, to_decimal


def summarize(schedule: Schedule, fees: Number = ZERO) -> Summary:
    """Roll a schedule into totals.

    ``effective_annual_rate`` is the nominal rate unless ``fees`` (closing
    costs and the like) are given, in which case it is the simplified
    ``(interest + fees) / principal / term_years`` figure in percent. That is
    an approximation, not a Regulation Z APR.
    """
    fees = to_decimal(fees)
    total_payments = sum((p.payment_amount for p in schedule), ZERO)
    total_interest = sum((p.interest_portion for p in schedule), ZERO)
    total_principal = sum((p.principal_portion for p in schedule), ZERO)
    total_extra = sum((p.extra_principal for p in schedule), ZERO)

    if fees > 0 and schedule.principal > 0 and schedule.term_years > 0:
        effective = (total_interest + fees) / schedule.principal / schedule.term_years * 100
    else:
        effective = schedule.annual_rate_percent

    return Summary(
        total_payments=total_payments,
        total_interest=total_interest,
        total_principal=total_principal,
        effective_annual_rate=effective,
        payoff_date=schedule.payoff_date,
        number_of_payments=len(schedule),
        total_extra_principal=total_extra,
    )


def roll_up_annual(schedule: Schedule) -> List[AnnualSummary]:
    """Group consecutive periods into years of ``periods_per_year`` periods.

    The last year may be partial. Its ``ending_balance`` is the balance after
    the last period of the block.
    """
    block = schedule.periods_per_year
    periods = schedule.periods
    years: List[AnnualSummary] = []
    for year, start in enumerate(range(0, len(periods), block), start=1):
        chunk = periods[start : start + block]
        years.append(
            AnnualSummary(
                year=year,
                payment=sum((p.payment_amount for p in chunk), ZERO),
                principal=sum((p.principal_portion for p in chunk), ZERO),
                interest=sum((p.interest_portion for p in chunk), ZERO),
                ending_balance=chunk[-1].remaining_balance,
                payments_in_year=len(chunk),
            )
        )
    return years


def roll_up_growth(
    periods: Sequence[GrowthPeriod],
    periods_per_year: int,
    starting_amount: Decimal = ZERO,
) -> List[GrowthYear]:
    """Annual view of an investment projection with running totals."""
    years: List[GrowthYear] = []
    contributions = to_decimal(starting_amount)
    earned = ZERO
    for year, start in enumerate(range(0, len(periods), periods_per_year), start=1):
        chunk = periods[start : start + periods_per_year]
        deposits = sum((p.deposit for p in chunk), ZERO)
        interest = sum((p.interest for p in chunk), ZERO)
        contributions += deposits
        earned += interest
        years.append(
            GrowthYear(
                year=year,
                deposits=deposits,
                interest=interest,
                ending_balance=chunk[-1].balance,
                cumulative_contributions=contributions,
                cumulative_interest=earned,
            )
        )
    return years
