"""Data models for cashflow-calc.

This module defines the dataclasses passed in and out of the engine: loan
terms, dated cash flows, schedule rows, schedules and the summaries derived
from them. Inputs are frozen; the engine never mutates what a caller hands
it, and every result is built fresh per call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterator, List, Optional

from .exceptions import InvalidFrequencyError, InvalidInputError

ZERO = Decimal("0")


class Frequency(str, Enum):
    """Payment or compounding frequency."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]

    @classmethod
    def parse(cls, value: "Frequency | str") -> "Frequency":
        """Return the member for ``value`` (case-insensitive name or value)."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidFrequencyError(f"Unknown frequency: {value!r}") from None


_PERIODS_PER_YEAR = {
    Frequency.MONTHLY: 12,
    Frequency.QUARTERLY: 4,
    Frequency.ANNUALLY: 1,
    Frequency.WEEKLY: 52,
    Frequency.BIWEEKLY: 26,
}


class CashFlowKind(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    STARTING = "starting"
    ENDING = "ending"


class ContributionTiming(str, Enum):
    BEGINNING = "beginning"
    END = "end"


class SolveFor(str, Enum):
    """The unknown a time-value-of-money problem is solved for."""

    PAYMENT = "payment"
    RATE = "rate"
    PRINCIPAL = "principal"
    TERM = "term"
    CONTRIBUTION = "contribution"
    FUTURE_VALUE = "future_value"

    @classmethod
    def parse(cls, value: "SolveFor | str") -> "SolveFor":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(f"Unknown quantity to solve for: {value!r}") from None


class Phase(str, Enum):
    DRAW = "draw"
    AMORTIZING = "amortizing"


@dataclass(frozen=True)
class LoanTerms:
    """Immutable description of a fixed-rate loan.

    Attributes
    ----------
    principal: Decimal
        Amount financed.
    annual_rate_percent: Decimal
        Nominal annual rate in percent (``6.5`` means 6.5 %).
    term_years: Decimal
        Loan term in years; fractional terms are rounded to whole periods.
    compounding_frequency, payment_frequency: Frequency
        When they differ, the periodic rate is the equivalent compounded rate.
    start_date: date, optional
        First payment date. When omitted the first day of next month is used.
    """

    principal: Decimal
    annual_rate_percent: Decimal
    term_years: Decimal
    compounding_frequency: Frequency = Frequency.MONTHLY
    payment_frequency: Frequency = Frequency.MONTHLY
    start_date: Optional[date] = None

    def validate(self) -> None:
        if self.principal <= 0:
            raise InvalidInputError("Principal must be positive")
        if self.annual_rate_percent < 0:
            raise InvalidInputError("Interest rate cannot be negative")
        if self.term_years <= 0:
            raise InvalidInputError("Term must be positive")


@dataclass(frozen=True)
class CashFlowEvent:
    """A dated cash flow from the holder's point of view.

    Money put into the investment (starting balance, deposits) is negative,
    money taken out (withdrawals, ending balance) is positive.
    """

    date: date
    amount: Decimal
    kind: CashFlowKind


@dataclass
class PaymentPeriod:
    """One row of an amortization schedule.

    ``principal_portion`` includes ``extra_principal``; the identity
    ``principal_portion + interest_portion == payment_amount`` always holds.
    """

    period_index: int
    date: date
    payment_amount: Decimal
    principal_portion: Decimal
    interest_portion: Decimal
    remaining_balance: Decimal
    extra_principal: Decimal = ZERO
    phase: Phase = Phase.AMORTIZING


@dataclass
class Schedule:
    """An ordered, finite sequence of payment periods plus its loan context."""

    periods: List[PaymentPeriod]
    principal: Decimal
    annual_rate_percent: Decimal
    periods_per_year: int
    term_years: Decimal
    payment_frequency: Frequency = Frequency.MONTHLY

    def __iter__(self) -> Iterator[PaymentPeriod]:
        return iter(self.periods)

    def __len__(self) -> int:
        return len(self.periods)

    def __getitem__(self, index: int) -> PaymentPeriod:
        return self.periods[index]

    @property
    def payoff_date(self) -> Optional[date]:
        return self.periods[-1].date if self.periods else None


@dataclass
class Summary:
    total_payments: Decimal
    total_interest: Decimal
    total_principal: Decimal
    effective_annual_rate: Decimal  # percent
    payoff_date: Optional[date]
    number_of_payments: int
    total_extra_principal: Decimal = ZERO


@dataclass
class AnnualSummary:
    year: int
    payment: Decimal
    principal: Decimal
    interest: Decimal
    ending_balance: Decimal
    payments_in_year: int


@dataclass
class PrepaymentComparison:
    """A schedule with and without a constant extra principal payment."""

    base: Schedule
    accelerated: Schedule
    interest_savings: Decimal
    periods_saved: int


@dataclass
class RateSolution:
    """Result of a rate search.

    ``rate`` is a decimal fraction (0.07 == 7 %) per period of the problem
    solved; XIRR periods are years. ``approximate`` is set when
    Newton-Raphson failed and the simple annualized-return fallback was used
    instead.
    """

    rate: Decimal
    iterations: int
    converged: bool
    approximate: bool = False


@dataclass
class TermSolution:
    periods: Decimal
    years: Decimal


@dataclass
class GrowthPeriod:
    """One compounding period of an investment projection."""

    period_index: int
    date: date
    deposit: Decimal
    interest: Decimal
    balance: Decimal


@dataclass
class GrowthYear:
    year: int
    deposits: Decimal
    interest: Decimal
    ending_balance: Decimal
    cumulative_contributions: Decimal
    cumulative_interest: Decimal


@dataclass
class CashFlowReturn:
    """Average annual return of an account with irregular deposits/withdrawals."""

    annual_return: Decimal  # fraction per year
    total_days: int
    total_years: Decimal
    net_cash_flow: Decimal
    time_weighted_return: Decimal  # percent
    approximate: bool = False


@dataclass
class ReturnPeriod:
    """A holding period with a known total return, used by ``cumulative_return``."""

    return_percent: Decimal
    years: int = 0
    months: int = 0


@dataclass
class CumulativeReturn:
    average_return: Decimal  # percent, arithmetic mean
    cumulative_return: Decimal  # percent
    total_years: Decimal
    annualized_return: Decimal  # percent, geometric mean


@dataclass
class Activity:
    """A dated deposit or withdrawal entered as a positive amount."""

    kind: CashFlowKind
    amount: Decimal
    date: date


@dataclass
class CalculationError:
    """An engine error converted to data at the engine boundary."""

    kind: str
    message: str
    minimum_payment: Optional[Decimal] = None
    best_estimate: Optional[Decimal] = None


@dataclass
class CalculationResult:
    value: object = None
    error: Optional[CalculationError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class LoanRequest:
    """Inputs of the general loan calculator.

    ``closing_costs`` of ``None`` means "estimate from the loan amount".
    ``prepayment`` is an extra amount per payment, applied only to monthly
    schedules.
    """

    terms: LoanTerms
    prepayment: Decimal = ZERO
    down_payment: Decimal = ZERO
    closing_costs: Optional[Decimal] = None


@dataclass
class LoanAnalysis:
    payment: Decimal
    monthly_equivalent_payment: Decimal
    schedule: Schedule
    summary: Summary
    annual: List[AnnualSummary]
    closing_costs: Decimal
    total_cost: Decimal
    loan_to_value: Decimal  # percent
    effective_apr: Decimal  # percent
    interest_savings: Decimal
    periods_saved: int


class HomeEquityType(str, Enum):
    FIXED = "fixed"
    HELOC = "heloc"


class HelocPaymentType(str, Enum):
    INTEREST_ONLY = "interest_only"
    PRINCIPAL_INTEREST = "principal_interest"


@dataclass(frozen=True)
class HomeEquityRequest:
    """A fixed home-equity loan or a line of credit against a home.

    ``term_years`` applies to fixed loans; lines of credit use
    ``draw_years`` and ``repay_years``.
    """

    home_value: Decimal
    mortgage_balance: Decimal
    loan_amount: Decimal
    annual_rate_percent: Decimal
    term_years: Decimal = Decimal("15")
    loan_type: HomeEquityType = HomeEquityType.FIXED
    payment_type: HelocPaymentType = HelocPaymentType.INTEREST_ONLY
    draw_years: int = 10
    repay_years: int = 20
    closing_costs: Decimal = ZERO
    start_date: Optional[date] = None


@dataclass
class HomeEquityAnalysis:
    payment: Decimal  # first scheduled payment
    schedule: Schedule
    summary: Summary
    annual: List[AnnualSummary]
    available_equity: Decimal
    loan_to_value: Decimal  # percent
    combined_loan_to_value: Decimal  # percent
    tax_deductible_interest: Decimal
    total_cost: Decimal
    equity_by_period: List[Decimal]


@dataclass(frozen=True)
class InvestmentProblem:
    """A time-value-of-money problem; the field being solved for is ignored.

    ``contribution`` is per ``contribution_frequency`` period and is spread
    linearly over compounding periods.
    """

    starting_amount: Decimal = ZERO
    contribution: Decimal = ZERO
    annual_rate_percent: Decimal = ZERO
    term_years: Decimal = Decimal("10")
    target_amount: Decimal = ZERO
    compounding_frequency: Frequency = Frequency.ANNUALLY
    contribution_frequency: Frequency = Frequency.ANNUALLY
    timing: ContributionTiming = ContributionTiming.END
    start_date: Optional[date] = None


@dataclass
class InvestmentResult:
    solve_for: SolveFor
    solved_value: Decimal
    end_balance: Decimal
    total_contributions: Decimal
    total_interest: Decimal
    growth: List[GrowthPeriod]
    annual: List[GrowthYear]


@dataclass
class PensionComparison:
    years_in_retirement: int
    lump_sum_future_value: Decimal
    lump_sum_monthly_withdrawal: Decimal
    total_pension_value: Decimal
    present_value_pension: Decimal
    better_option: str
    advantage: Decimal
