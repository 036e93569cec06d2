"""Calculator-level operations.

This module assembles the frequency, amortization, resolver and aggregation
pieces into the calculations behind the individual calculators: a general
loan with closing costs and prepayments, home-equity loans and lines of
credit, credit-card payoff plans and investment problems solved for any one
unknown. ``safe_calculate`` is the engine boundary: engine errors come back
as ``CalculationError`` data instead of propagating.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from .aggregator import roll_up_annual, roll_up_growth, summarize
from .amortizer import amortize, compute_payment, generate_schedule, loan_parameters
from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import (
    CalculationError,
    CalculationResult,
    ContributionTiming,
    Frequency,
    HelocPaymentType,
    HomeEquityAnalysis,
    HomeEquityRequest,
    HomeEquityType,
    InvestmentProblem,
    InvestmentResult,
    LoanAnalysis,
    LoanRequest,
    Schedule,
    SolveFor,
    Summary,
    ZERO,
)
from .exceptions import (
    CalcError,
    ConfigurationError,
    InsufficientPaymentError,
    InvalidFrequencyError,
    InvalidInputError,
    UnreachableTargetError,
)
from .frequency import convert_payment, number_of_periods, to_periodic_rate
from .logging import get_logger
from .phased import PaymentPolicy, compare_prepayment, generate_phased_schedule, payoff_schedule
from .resolver import (
    future_value,
    project_growth,
    solve_contribution,
    solve_principal,
    solve_rate,
    solve_term,
)
from .utils import Number, to_decimal

logger = get_logger(__name__)

# Home-equity lenders rarely lend past 85% of the owner's equity.
MAX_EQUITY_SHARE = Decimal("0.85")


def default_closing_costs(loan_amount: Number) -> Decimal:
    """Typical closing costs for a loan of ``loan_amount``.

    2 % below 10,000; 3 % (at least 200) below 100,000; otherwise 2 % (at
    least 1,000).
    """
    amount = to_decimal(loan_amount)
    if amount < 10000:
        return max(ZERO, amount * Decimal("0.02"))
    if amount < 100000:
        return max(Decimal("200"), amount * Decimal("0.03"))
    return max(Decimal("1000"), amount * Decimal("0.02"))


def analyze_loan(request: LoanRequest, limits: EngineLimits = DEFAULT_LIMITS) -> LoanAnalysis:
    """Payment, schedule and cost figures for a fixed-rate loan.

    The prepayment is only applied to monthly schedules. ``effective_apr``
    folds the closing costs into the interest; it is an approximation, not a
    regulatory APR.
    """
    terms = request.terms
    rate, n = loan_parameters(terms)
    principal = to_decimal(terms.principal)
    payment = compute_payment(principal, rate, n)

    down_payment = to_decimal(request.down_payment)
    if request.closing_costs is None:
        closing_costs = default_closing_costs(principal)
    else:
        closing_costs = to_decimal(request.closing_costs)
    if down_payment < 0 or closing_costs < 0:
        raise InvalidInputError("Down payment and closing costs cannot be negative")

    prepayment = to_decimal(request.prepayment)
    if prepayment > 0 and terms.payment_frequency != Frequency.MONTHLY:
        logger.info("Prepayment ignored for %s payments", terms.payment_frequency.value)
        prepayment = ZERO

    if prepayment > 0:
        comparison = compare_prepayment(terms, prepayment, limits)
        schedule = comparison.accelerated
        interest_savings = comparison.interest_savings
        periods_saved = comparison.periods_saved
    else:
        schedule = amortize(terms, limits=limits)
        interest_savings = ZERO
        periods_saved = 0

    summary = summarize(schedule, fees=closing_costs)
    return LoanAnalysis(
        payment=payment,
        monthly_equivalent_payment=convert_payment(payment, terms.payment_frequency, Frequency.MONTHLY),
        schedule=schedule,
        summary=summary,
        annual=roll_up_annual(schedule),
        closing_costs=closing_costs,
        total_cost=principal + summary.total_interest + closing_costs + down_payment,
        loan_to_value=principal / (principal + down_payment) * 100,
        effective_apr=summary.effective_annual_rate,
        interest_savings=interest_savings,
        periods_saved=periods_saved,
    )


def analyze_home_equity(
    request: HomeEquityRequest,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> HomeEquityAnalysis:
    """Schedule and equity figures for a home-equity loan or line of credit."""
    home_value = to_decimal(request.home_value)
    mortgage_balance = to_decimal(request.mortgage_balance)
    loan_amount = to_decimal(request.loan_amount)
    annual_rate = to_decimal(request.annual_rate_percent)
    closing_costs = to_decimal(request.closing_costs)
    if home_value <= 0 or loan_amount <= 0:
        raise InvalidInputError("Home value and loan amount must be positive")
    if annual_rate < 0 or mortgage_balance < 0 or closing_costs < 0:
        raise InvalidInputError("Rate, mortgage balance and closing costs cannot be negative")

    available_equity = home_value - mortgage_balance
    if loan_amount > available_equity * MAX_EQUITY_SHARE:
        raise InvalidInputError("Loan amount exceeds 85% of available equity")

    rate = to_periodic_rate(annual_rate, Frequency.MONTHLY)
    if request.loan_type == HomeEquityType.FIXED:
        n = number_of_periods(request.term_years, Frequency.MONTHLY)
        schedule = generate_schedule(
            loan_amount,
            rate,
            n,
            compute_payment(loan_amount, rate, n),
            start_date=request.start_date,
            annual_rate_percent=annual_rate,
            limits=limits,
        )
    else:
        if request.payment_type == HelocPaymentType.INTEREST_ONLY:
            draw_periods = request.draw_years * 12
        else:
            draw_periods = 0
        schedule = generate_phased_schedule(
            loan_amount,
            rate,
            draw_periods,
            request.repay_years * 12,
            start_date=request.start_date,
            annual_rate_percent=annual_rate,
            limits=limits,
        )

    summary = summarize(schedule, fees=closing_costs)
    return HomeEquityAnalysis(
        payment=schedule[0].payment_amount,
        schedule=schedule,
        summary=summary,
        annual=roll_up_annual(schedule),
        available_equity=available_equity,
        loan_to_value=loan_amount / home_value * 100,
        combined_loan_to_value=(mortgage_balance + loan_amount) / home_value * 100,
        tax_deductible_interest=summary.total_interest,
        total_cost=summary.total_payments + closing_costs,
        equity_by_period=[available_equity - p.remaining_balance for p in schedule],
    )


def plan_credit_card_payoff(
    balance: Number,
    annual_rate_percent: Number,
    policy: PaymentPolicy,
    limits: EngineLimits = DEFAULT_LIMITS,
    **schedule_options: Any,
) -> Tuple[Schedule, Summary]:
    """Monthly payoff schedule and summary for a card balance."""
    schedule = payoff_schedule(balance, annual_rate_percent, policy, limits=limits, **schedule_options)
    return schedule, summarize(schedule)


class _Problem(NamedTuple):
    principal: Decimal
    contribution: Decimal  # per compounding period
    rate: Decimal  # per compounding period
    periods: int
    target: Decimal
    periods_per_year: int
    problem: InvestmentProblem


class _Solved(NamedTuple):
    value: Decimal
    principal: Decimal
    contribution: Decimal
    rate: Decimal
    periods: int
    end_balance: Decimal


def _solve_future_value(p: _Problem, limits: EngineLimits) -> _Solved:
    fv = future_value(p.principal, p.contribution, p.rate, p.periods, p.problem.timing)
    return _Solved(fv, p.principal, p.contribution, p.rate, p.periods, fv)


def _solve_rate(p: _Problem, limits: EngineLimits) -> _Solved:
    solution = solve_rate(
        p.principal, p.contribution, p.periods, p.target, timing=p.problem.timing, limits=limits
    )
    annual_percent = solution.rate * p.periods_per_year * 100
    return _Solved(annual_percent, p.principal, p.contribution, solution.rate, p.periods, p.target)


def _solve_principal(p: _Problem, limits: EngineLimits) -> _Solved:
    principal = solve_principal(p.target, p.contribution, p.rate, p.periods, p.problem.timing)
    return _Solved(principal, principal, p.contribution, p.rate, p.periods, p.target)


def _solve_term(p: _Problem, limits: EngineLimits) -> _Solved:
    term = solve_term(
        p.principal,
        p.contribution,
        p.rate,
        p.target,
        periods_per_year=p.periods_per_year,
        timing=p.problem.timing,
        limits=limits,
    )
    periods = int(math.ceil(term.periods))
    return _Solved(term.years, p.principal, p.contribution, p.rate, periods, p.target)


def _solve_contribution(p: _Problem, limits: EngineLimits) -> _Solved:
    per_period = solve_contribution(p.target, p.principal, p.rate, p.periods, p.problem.timing)
    per_contribution_period = convert_payment(
        per_period, p.problem.compounding_frequency, p.problem.contribution_frequency
    )
    return _Solved(per_contribution_period, p.principal, per_period, p.rate, p.periods, p.target)


def _solve_payment(p: _Problem, limits: EngineLimits) -> _Solved:
    # Level withdrawal that draws the starting amount down to zero; withdrawals
    # at the start of a period come out before that period earns interest.
    payment = compute_payment(p.principal, p.rate, p.periods)
    if p.problem.timing == ContributionTiming.BEGINNING:
        payment /= 1 + p.rate
    return _Solved(payment, p.principal, -payment, p.rate, p.periods, ZERO)


_SOLVERS: Dict[SolveFor, Callable[[_Problem, EngineLimits], _Solved]] = {
    SolveFor.FUTURE_VALUE: _solve_future_value,
    SolveFor.RATE: _solve_rate,
    SolveFor.PRINCIPAL: _solve_principal,
    SolveFor.TERM: _solve_term,
    SolveFor.CONTRIBUTION: _solve_contribution,
    SolveFor.PAYMENT: _solve_payment,
}


def solve_investment(
    solve_for: SolveFor,
    problem: InvestmentProblem,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> InvestmentResult:
    """Solve ``problem`` for the ``solve_for`` unknown and project the balance.

    ``solved_value`` is in the unit of the unknown: an amount for
    principal/contribution/payment/future value, a percent per year for
    rate, years for term.
    """
    solve_for = SolveFor.parse(solve_for)
    compounding = Frequency.parse(problem.compounding_frequency)
    principal = to_decimal(problem.starting_amount)
    contribution = to_decimal(problem.contribution)
    annual_rate = to_decimal(problem.annual_rate_percent)
    if principal < 0 or contribution < 0 or annual_rate < 0:
        raise InvalidInputError("Amounts and rate cannot be negative")
    if solve_for != SolveFor.TERM:
        periods = number_of_periods(problem.term_years, compounding)
    else:
        periods = 0

    p = _Problem(
        principal=principal,
        contribution=convert_payment(contribution, problem.contribution_frequency, compounding),
        rate=to_periodic_rate(annual_rate, compounding),
        periods=periods,
        target=to_decimal(problem.target_amount),
        periods_per_year=compounding.periods_per_year,
        problem=problem,
    )
    if solve_for not in (SolveFor.FUTURE_VALUE, SolveFor.PAYMENT) and p.target <= 0:
        raise InvalidInputError("Target amount must be positive")
    if solve_for == SolveFor.PAYMENT and principal <= 0:
        raise InvalidInputError("Starting amount must be positive")

    solved = _SOLVERS[solve_for](p, limits)
    logger.debug("Solved %s: %s", solve_for.value, solved.value)

    growth = project_growth(
        solved.principal,
        solved.contribution,
        solved.rate,
        solved.periods,
        timing=problem.timing,
        start_date=problem.start_date,
        frequency=compounding,
    )
    end_balance = solved.end_balance
    if solve_for == SolveFor.PAYMENT:
        if growth:
            end_balance = growth[-1].balance
        total_contributions = solved.principal
        total_interest = -solved.contribution * solved.periods + end_balance - solved.principal
    else:
        total_contributions = solved.principal + solved.contribution * solved.periods
        total_interest = end_balance - total_contributions
    return InvestmentResult(
        solve_for=solve_for,
        solved_value=solved.value,
        end_balance=end_balance,
        total_contributions=total_contributions,
        total_interest=total_interest,
        growth=growth,
        annual=roll_up_growth(growth, compounding.periods_per_year, solved.principal),
    )


_ERROR_KINDS: List[Tuple[type, str]] = [
    (InvalidFrequencyError, "invalid_frequency"),
    (InvalidInputError, "invalid_input"),
    (InsufficientPaymentError, "insufficient_payment"),
    (UnreachableTargetError, "unreachable_target"),
    (ConfigurationError, "configuration"),
    (CalcError, "calculation"),
]


def _error_kind(exc: CalcError) -> str:
    for cls, kind in _ERROR_KINDS:
        if isinstance(exc, cls):
            return kind
    return "calculation"


def safe_calculate(func: Callable[..., Any], *args: Any, **kwargs: Any) -> CalculationResult:
    """Call an engine operation and return its outcome as data.

    Engine errors become ``CalculationError`` records (with the suggested
    minimum payment or best estimate where one exists). Anything else raised
    below the boundary is logged with its traceback and reported as an
    ``internal`` error. Results flagged ``approximate`` carry a warning.
    """
    try:
        value = func(*args, **kwargs)
    except CalcError as exc:
        logger.info("Calculation failed: %s", exc)
        return CalculationResult(
            error=CalculationError(
                kind=_error_kind(exc),
                message=str(exc),
                minimum_payment=getattr(exc, "minimum_payment", None),
                best_estimate=getattr(exc, "best_estimate", None),
            )
        )
    except Exception as exc:
        logger.exception("Unexpected error in %s", getattr(func, "__name__", func))
        return CalculationResult(error=CalculationError(kind="internal", message=str(exc) or type(exc).__name__))
    warnings: List[str] = []
    if getattr(value, "approximate", False):
        warnings.append("Result is an approximation; the rate search did not converge")
    return CalculationResult(value=value, warnings=warnings)


def calculate(
    solve_for: SolveFor,
    problem: InvestmentProblem,
    limits: Optional[EngineLimits] = None,
) -> CalculationResult:
    """``solve_investment`` behind the engine boundary."""
    return safe_calculate(solve_investment, solve_for, problem, limits or DEFAULT_LIMITS)
