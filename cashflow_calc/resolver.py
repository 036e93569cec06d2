"""Solving for unknowns.

Given all but one of principal, contribution, rate, term and future value,
find the missing one:

* rate: Newton-Raphson on the net present value of the cash flows. The same
  iteration serves regular contribution streams (integer period times) and
  irregular dated flows (XIRR, fractional years of 365.25 days);
* term: logarithms when there is no contribution, otherwise a bounded
  period-by-period search;
* principal, contribution and future value: closed forms of

      FV = P * (1 + r)^n + C * ((1 + r)^n - 1) / r

  with the annuity factor multiplied by ``(1 + r)`` for contributions made
  at the beginning of each period.

Root finding runs in binary floating point; results are returned as
``Decimal``.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from typing import List, NamedTuple, Optional, Sequence, Tuple

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import (
    Activity,
    CashFlowEvent,
    CashFlowKind,
    CashFlowReturn,
    ContributionTiming,
    CumulativeReturn,
    Frequency,
    GrowthPeriod,
    RateSolution,
    ReturnPeriod,
    TermSolution,
    ZERO,
)
from .exceptions import InvalidInputError, UnreachableTargetError
from .frequency import FrequencyLike, advance
from .logging import get_logger
from .utils import Number, first_of_next_month, to_decimal

logger = get_logger(__name__)

DAYS_PER_YEAR = 365.25
XIRR_GUESS = 0.1
GROWTH_RATE_GUESS = 0.05


class _Root(NamedTuple):
    rate: float
    iterations: int
    converged: bool


def _newton(flows: Sequence[Tuple[float, float]], guess: float, limits: EngineLimits) -> _Root:
    """Find the rate at which the NPV of ``(time, amount)`` flows is zero.

    NPV = sum(amount / (1 + rate) ** t), derivative
    sum(-amount * t / ((1 + rate) ** t * (1 + rate))). The iterate is clamped
    to ``[rate_floor, rate_ceiling]`` after every step.
    """
    rate = guess
    for iteration in range(1, limits.max_newton_iterations + 1):
        npv = 0.0
        dnpv = 0.0
        try:
            for t, amount in flows:
                factor = (1 + rate) ** t
                npv += amount / factor
                dnpv -= amount * t / (factor * (1 + rate))
            if dnpv == 0 or not math.isfinite(dnpv):
                return _Root(rate, iteration, False)
            new_rate = rate - npv / dnpv
        except (OverflowError, ZeroDivisionError):
            return _Root(rate, iteration, False)
        if not math.isfinite(new_rate):
            return _Root(rate, iteration, False)
        converged = abs(new_rate - rate) < limits.rate_tolerance
        rate = min(max(new_rate, limits.rate_floor), limits.rate_ceiling)
        if converged:
            logger.debug("Newton-Raphson converged after %d iterations: %.8f", iteration, rate)
            return _Root(rate, iteration, True)
    return _Root(rate, limits.max_newton_iterations, False)


def annuity_factor(
    periodic_rate: Number,
    periods: int,
    timing: ContributionTiming = ContributionTiming.END,
) -> Decimal:
    """Future value of one unit contributed every period for ``periods`` periods."""
    rate = to_decimal(periodic_rate)
    if rate == 0:
        return Decimal(periods)
    factor = ((1 + rate) ** periods - 1) / rate
    if timing == ContributionTiming.BEGINNING:
        factor *= 1 + rate
    return factor


def future_value(
    principal: Number,
    contribution: Number,
    periodic_rate: Number,
    periods: int,
    timing: ContributionTiming = ContributionTiming.END,
) -> Decimal:
    rate = to_decimal(periodic_rate)
    growth = (1 + rate) ** periods
    return to_decimal(principal) * growth + to_decimal(contribution) * annuity_factor(rate, periods, timing)


def _check_periods(periods: int) -> None:
    if periods <= 0:
        raise InvalidInputError("Number of periods must be positive")


def solve_principal(
    target: Number,
    contribution: Number,
    periodic_rate: Number,
    periods: int,
    timing: ContributionTiming = ContributionTiming.END,
) -> Decimal:
    """Starting amount needed to reach ``target``; zero if contributions alone suffice."""
    _check_periods(periods)
    rate = to_decimal(periodic_rate)
    from_contributions = to_decimal(contribution) * annuity_factor(rate, periods, timing)
    required = (to_decimal(target) - from_contributions) / (1 + rate) ** periods
    return max(ZERO, required)


def solve_contribution(
    target: Number,
    principal: Number,
    periodic_rate: Number,
    periods: int,
    timing: ContributionTiming = ContributionTiming.END,
) -> Decimal:
    """Per-period contribution needed to reach ``target``; zero if growth alone suffices."""
    _check_periods(periods)
    rate = to_decimal(periodic_rate)
    grown = to_decimal(principal) * (1 + rate) ** periods
    required = (to_decimal(target) - grown) / annuity_factor(rate, periods, timing)
    return max(ZERO, required)


def solve_rate(
    principal: Number,
    contribution: Number,
    periods: int,
    target: Number,
    *,
    timing: ContributionTiming = ContributionTiming.END,
    guess: float = GROWTH_RATE_GUESS,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> RateSolution:
    """Periodic growth rate that turns ``principal`` plus contributions into ``target``.

    Raises
    ------
    UnreachableTargetError
        When Newton-Raphson does not converge; ``best_estimate`` carries the
        last (clamped) iterate.
    """
    _check_periods(periods)
    principal = to_decimal(principal)
    contribution = to_decimal(contribution)
    target = to_decimal(target)
    if principal < 0 or contribution < 0:
        raise InvalidInputError("Starting amount and contribution cannot be negative")
    if principal == 0 and contribution == 0:
        raise InvalidInputError("Nothing is invested")
    if target <= 0:
        raise InvalidInputError("Target amount must be positive")

    first_deposit = 0 if timing == ContributionTiming.BEGINNING else 1
    flows: List[Tuple[float, float]] = [(0.0, -float(principal))]
    flows.extend((float(t), -float(contribution)) for t in range(first_deposit, first_deposit + periods))
    flows.append((float(periods), float(target)))

    root = _newton(flows, guess, limits)
    if not root.converged:
        estimate = min(max(root.rate, limits.rate_floor), limits.rate_ceiling)
        raise UnreachableTargetError(
            f"Rate search did not converge after {root.iterations} iterations",
            best_estimate=Decimal(str(estimate)),
        )
    return RateSolution(rate=Decimal(str(root.rate)), iterations=root.iterations, converged=True)


def solve_term(
    principal: Number,
    contribution: Number,
    periodic_rate: Number,
    target: Number,
    *,
    periods_per_year: int = 1,
    timing: ContributionTiming = ContributionTiming.END,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> TermSolution:
    """Number of periods until the balance reaches ``target``.

    Without contributions this is ``ln(target / principal) / ln(1 + r)``
    (fractional). With contributions the balance is stepped forward one
    period at a time for at most ``limits.max_term_years`` years.
    """
    principal = to_decimal(principal)
    contribution = to_decimal(contribution)
    rate = to_decimal(periodic_rate)
    target = to_decimal(target)
    ppy = Decimal(periods_per_year)
    if principal < 0 or contribution < 0 or rate < 0:
        raise InvalidInputError("Amounts and rate cannot be negative")
    if target <= principal:
        return TermSolution(periods=ZERO, years=ZERO)

    if contribution == 0:
        if principal == 0 or rate == 0:
            raise UnreachableTargetError("The balance never grows without a rate and a starting amount")
        periods = (target / principal).ln() / (1 + rate).ln()
        return TermSolution(periods=periods, years=periods / ppy)

    cap = limits.max_term_years * periods_per_year
    balance = principal
    count = 0
    while balance < target:
        if count >= cap:
            raise UnreachableTargetError(
                f"Target not reached within {limits.max_term_years} years",
                best_estimate=Decimal(cap),
            )
        if timing == ContributionTiming.BEGINNING:
            balance = (balance + contribution) * (1 + rate)
        else:
            balance = balance * (1 + rate) + contribution
        count += 1
    return TermSolution(periods=Decimal(count), years=Decimal(count) / ppy)


def project_growth(
    principal: Number,
    contribution: Number,
    periodic_rate: Number,
    periods: int,
    *,
    timing: ContributionTiming = ContributionTiming.END,
    start_date: Optional[date] = None,
    frequency: FrequencyLike = Frequency.ANNUALLY,
) -> List[GrowthPeriod]:
    """Step an investment forward period by period."""
    balance = to_decimal(principal)
    contribution = to_decimal(contribution)
    rate = to_decimal(periodic_rate)
    start = start_date or first_of_next_month()
    rows: List[GrowthPeriod] = []
    for index in range(1, periods + 1):
        if timing == ContributionTiming.BEGINNING:
            balance += contribution
            interest = balance * rate
            balance += interest
        else:
            interest = balance * rate
            balance += interest + contribution
        rows.append(
            GrowthPeriod(
                period_index=index,
                date=advance(start, frequency, index - 1),
                deposit=contribution,
                interest=interest,
                balance=balance,
            )
        )
    return rows


def simple_annualized_return(
    starting_value: Number,
    ending_value: Number,
    net_contributions: Number,
    total_years: Number,
) -> Decimal:
    """Gain over the average balance, per year. A degraded stand-in for XIRR."""
    starting_value = to_decimal(starting_value)
    ending_value = to_decimal(ending_value)
    years = to_decimal(total_years)
    average_balance = (starting_value + ending_value) / 2
    if average_balance <= 0 or years <= 0:
        raise UnreachableTargetError("No return rate can be estimated for these cash flows")
    gain = ending_value - starting_value - to_decimal(net_contributions)
    return gain / average_balance / years


def xirr(
    events: Sequence[CashFlowEvent],
    guess: float = XIRR_GUESS,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> RateSolution:
    """Annual internal rate of return of irregularly dated cash flows.

    Times are measured in years of 365.25 days from the earliest event. When
    Newton-Raphson breaks down the simple annualized return is used instead
    and the result is flagged ``approximate``.
    """
    if len(events) < 2:
        raise InvalidInputError("At least two cash flows are required")
    ordered = sorted(events, key=lambda e: e.date)
    base = ordered[0].date
    span_days = (ordered[-1].date - base).days
    if span_days <= 0:
        raise InvalidInputError("Cash flows must span a positive period of time")

    flows = [((e.date - base).days / DAYS_PER_YEAR, float(e.amount)) for e in ordered]
    root = _newton(flows, guess, limits)
    if root.converged:
        return RateSolution(rate=Decimal(str(root.rate)), iterations=root.iterations, converged=True)

    starting = -sum((e.amount for e in ordered if e.kind == CashFlowKind.STARTING), ZERO)
    ending = sum((e.amount for e in ordered if e.kind == CashFlowKind.ENDING), ZERO)
    net_contributions = -sum(
        (e.amount for e in ordered if e.kind in (CashFlowKind.DEPOSIT, CashFlowKind.WITHDRAWAL)),
        ZERO,
    )
    years = Decimal(span_days) / Decimal(str(DAYS_PER_YEAR))
    logger.warning(
        "XIRR did not converge after %d iterations; using simple annualized return",
        root.iterations,
    )
    rate = simple_annualized_return(starting, ending, net_contributions, years)
    return RateSolution(rate=rate, iterations=root.iterations, converged=False, approximate=True)


def build_cash_flows(
    starting_balance: Number,
    start_date: date,
    ending_balance: Number,
    end_date: date,
    activities: Sequence[Activity],
) -> List[CashFlowEvent]:
    """Turn balances and deposit/withdrawal activity into signed cash flows.

    Activities with a non-positive amount or dated outside
    ``[start_date, end_date]`` are ignored.
    """
    events = [CashFlowEvent(start_date, -to_decimal(starting_balance), CashFlowKind.STARTING)]
    for activity in activities:
        amount = to_decimal(activity.amount)
        if amount <= 0 or not start_date <= activity.date <= end_date:
            continue
        if activity.kind == CashFlowKind.DEPOSIT:
            events.append(CashFlowEvent(activity.date, -amount, CashFlowKind.DEPOSIT))
        elif activity.kind == CashFlowKind.WITHDRAWAL:
            events.append(CashFlowEvent(activity.date, amount, CashFlowKind.WITHDRAWAL))
        else:
            raise InvalidInputError(f"Activity must be a deposit or withdrawal, not {activity.kind.value}")
    events.append(CashFlowEvent(end_date, to_decimal(ending_balance), CashFlowKind.ENDING))
    return events


def average_annual_return(
    starting_balance: Number,
    start_date: date,
    ending_balance: Number,
    end_date: date,
    activities: Sequence[Activity] = (),
    guess: float = XIRR_GUESS,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> CashFlowReturn:
    """Average annual return of an account between two dated balances."""
    starting_balance = to_decimal(starting_balance)
    ending_balance = to_decimal(ending_balance)
    if starting_balance <= 0 or ending_balance <= 0:
        raise InvalidInputError("Starting and ending balances must be positive")
    if end_date <= start_date:
        raise InvalidInputError("Ending date must be after the starting date")

    events = build_cash_flows(starting_balance, start_date, ending_balance, end_date, activities)
    # deposits are negative flows, withdrawals positive
    net_cash_flow = -sum(
        (e.amount for e in events if e.kind in (CashFlowKind.DEPOSIT, CashFlowKind.WITHDRAWAL)),
        ZERO,
    )
    total_days = (end_date - start_date).days
    total_years = Decimal(total_days) / Decimal(str(DAYS_PER_YEAR))

    solution = xirr(events, guess, limits)
    gain = ending_balance - starting_balance - net_cash_flow
    average_balance = (starting_balance + ending_balance) / 2
    return CashFlowReturn(
        annual_return=solution.rate,
        total_days=total_days,
        total_years=total_years,
        net_cash_flow=net_cash_flow,
        time_weighted_return=gain / average_balance * 100,
        approximate=solution.approximate,
    )


def cumulative_return(periods: Sequence[ReturnPeriod]) -> CumulativeReturn:
    """Arithmetic, cumulative and annualized return over consecutive holding periods.

    Entries with a zero return and zero length are ignored.
    """
    valid = [
        p for p in periods
        if to_decimal(p.return_percent) != 0 or p.years > 0 or p.months > 0
    ]
    if not valid:
        raise InvalidInputError("At least one holding period is required")

    total_years = ZERO
    multiplier = Decimal(1)
    for p in valid:
        total_years += Decimal(p.years) + Decimal(p.months) / Decimal(12)
        multiplier *= 1 + to_decimal(p.return_percent) / Decimal(100)

    average = sum((to_decimal(p.return_percent) for p in valid), ZERO) / Decimal(len(valid))
    if total_years <= 0:
        annualized = ZERO
    elif multiplier <= 0:
        annualized = Decimal(-100)
    else:
        annualized = (multiplier ** (Decimal(1) / total_years) - 1) * 100
    return CumulativeReturn(
        average_return=average,
        cumulative_return=(multiplier - 1) * 100,
        total_years=total_years,
        annualized_return=annualized,
    )
