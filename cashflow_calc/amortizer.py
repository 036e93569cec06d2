"""Level-payment amortization.

This module computes the fixed periodic payment of an ordinary annuity and
builds period-by-period schedules for it. The period loop in
``amortize_balance`` is shared with the phased and credit-card schedules in
``phased``: each period charges ``balance * rate`` interest, applies the
rest of the payment (plus any extra principal) to the balance, and truncates
the final payment so the balance lands exactly on zero.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, getcontext
from typing import Callable, List, Optional, Tuple

from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import Frequency, LoanTerms, PaymentPeriod, Phase, Schedule, ZERO
from .exceptions import InsufficientPaymentError, InvalidInputError
from .frequency import FrequencyLike, advance, equivalent_periodic_rate, number_of_periods
from .logging import get_logger
from .utils import Number, first_of_next_month, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

logger = get_logger(__name__)

# Added to the periodic interest when suggesting a payment that amortizes.
MIN_PAYMENT_INCREMENT = Decimal("1.00")

PaymentRule = Callable[[Decimal, Decimal], Decimal]


def compute_payment(principal: Number, periodic_rate: Number, num_periods: int) -> Decimal:
    """Return the level payment that retires ``principal`` in ``num_periods``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` the periodic rate and ``n`` the
    number of payments. When the rate is zero the payment is ``P / n``.
    """
    principal = to_decimal(principal)
    periodic_rate = to_decimal(periodic_rate)
    if num_periods <= 0:
        raise InvalidInputError("Number of periods must be positive")
    if periodic_rate < 0:
        raise InvalidInputError("Interest rate cannot be negative")
    if periodic_rate == 0:
        return principal / Decimal(num_periods)
    factor = (1 + periodic_rate) ** num_periods
    return principal * (periodic_rate * factor) / (factor - 1)


def minimum_payment(balance: Decimal, periodic_rate: Decimal) -> Decimal:
    """Smallest payment worth suggesting: one period's interest plus an increment."""
    return balance * periodic_rate + MIN_PAYMENT_INCREMENT


def amortize_balance(
    balance: Decimal,
    periodic_rate: Decimal,
    payment_rule: PaymentRule,
    *,
    start_date: date,
    frequency: Frequency,
    max_periods: int,
    extra_principal: Decimal = ZERO,
    first_index: int = 1,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> List[PaymentPeriod]:
    """Run the period loop until ``balance`` is retired.

    ``payment_rule(balance, interest)`` returns the scheduled payment for a
    period. Raises ``InsufficientPaymentError`` when a period would not reduce
    the balance or when ``max_periods`` pass without payoff.
    """
    rows: List[PaymentPeriod] = []
    opening = balance
    index = first_index
    while balance > limits.balance_epsilon:
        if len(rows) >= max_periods:
            raise InsufficientPaymentError(
                f"Balance of {balance:.2f} remains after {max_periods} periods",
                minimum_payment=minimum_payment(opening, periodic_rate),
            )
        interest = balance * periodic_rate
        regular = payment_rule(balance, interest) - interest
        if regular + extra_principal <= 0:
            raise InsufficientPaymentError(
                "Payment does not exceed the periodic interest charge",
                minimum_payment=minimum_payment(balance, periodic_rate),
            )
        extra = extra_principal
        principal_part = regular + extra
        # Final payment adjustment: never overpay, never leave a sub-cent residue.
        if balance - principal_part < limits.balance_epsilon:
            principal_part = balance
            extra = max(ZERO, min(extra_principal, balance - regular))
        balance -= principal_part
        rows.append(
            PaymentPeriod(
                period_index=index,
                date=advance(start_date, frequency, index - 1),
                payment_amount=principal_part + interest,
                principal_portion=principal_part,
                interest_portion=interest,
                remaining_balance=balance,
                extra_principal=extra,
                phase=Phase.AMORTIZING,
            )
        )
        index += 1
    return rows


def schedule_cap(num_periods: int, periods_per_year: int, limits: EngineLimits = DEFAULT_LIMITS) -> int:
    """Runaway guard for a schedule: 50 years of periods, never below the term."""
    return max(num_periods, limits.max_schedule_years * periods_per_year)


def generate_schedule(
    principal: Number,
    periodic_rate: Number,
    num_periods: int,
    payment: Number,
    *,
    extra_principal: Number = ZERO,
    start_date: Optional[date] = None,
    frequency: FrequencyLike = Frequency.MONTHLY,
    annual_rate_percent: Optional[Number] = None,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Schedule:
    """Build the schedule for ``principal`` repaid with a fixed ``payment``.

    Parameters
    ----------
    principal, periodic_rate, num_periods, payment:
        Loan amount, rate per period (0.005 == 0.5 %), nominal number of
        periods and the scheduled payment per period.
    extra_principal:
        Constant prepayment added to every period's principal portion.
    start_date:
        Date of the first payment; defaults to the first of next month.
    frequency:
        Payment frequency, used for dates and annual rollups.

    Raises
    ------
    InvalidInputError
        For a non-positive principal, payment or period count or a negative rate.
    InsufficientPaymentError
        When the payment does not exceed the interest on ``principal``, or the
        runaway guard is reached before payoff.
    """
    principal = to_decimal(principal)
    periodic_rate = to_decimal(periodic_rate)
    payment = to_decimal(payment)
    extra_principal = to_decimal(extra_principal)
    frequency = Frequency.parse(frequency)
    if principal <= 0:
        raise InvalidInputError("Principal must be positive")
    if periodic_rate < 0:
        raise InvalidInputError("Interest rate cannot be negative")
    if num_periods <= 0:
        raise InvalidInputError("Number of periods must be positive")
    if payment <= 0:
        raise InvalidInputError("Payment must be positive")
    if extra_principal < 0:
        raise InvalidInputError("Extra principal cannot be negative")

    ppy = frequency.periods_per_year
    if payment + extra_principal <= principal * periodic_rate:
        raise InsufficientPaymentError(
            f"Payment of {payment:.2f} does not exceed the periodic interest of "
            f"{principal * periodic_rate:.2f}",
            minimum_payment=minimum_payment(principal, periodic_rate),
        )

    rows = amortize_balance(
        principal,
        periodic_rate,
        lambda _balance, _interest: payment,
        start_date=start_date or first_of_next_month(),
        frequency=frequency,
        max_periods=schedule_cap(num_periods, ppy, limits),
        extra_principal=extra_principal,
        limits=limits,
    )
    if annual_rate_percent is None:
        annual_rate = periodic_rate * ppy * 100
    else:
        annual_rate = to_decimal(annual_rate_percent)
    logger.debug("Generated %d-period schedule for principal %s", len(rows), principal)
    return Schedule(
        periods=rows,
        principal=principal,
        annual_rate_percent=annual_rate,
        periods_per_year=ppy,
        term_years=Decimal(num_periods) / Decimal(ppy),
        payment_frequency=frequency,
    )


def loan_parameters(terms: LoanTerms) -> Tuple[Decimal, int]:
    """Validate ``terms`` and return ``(periodic_rate, num_periods)``."""
    terms.validate()
    rate = equivalent_periodic_rate(
        terms.annual_rate_percent, terms.compounding_frequency, terms.payment_frequency
    )
    return rate, number_of_periods(terms.term_years, terms.payment_frequency)


def amortize(
    terms: LoanTerms,
    extra_principal: Number = ZERO,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Schedule:
    """Compute the level payment for ``terms`` and generate its schedule."""
    rate, n = loan_parameters(terms)
    payment = compute_payment(terms.principal, rate, n)
    schedule = generate_schedule(
        terms.principal,
        rate,
        n,
        payment,
        extra_principal=extra_principal,
        start_date=terms.start_date,
        frequency=terms.payment_frequency,
        annual_rate_percent=terms.annual_rate_percent,
        limits=limits,
    )
    schedule.term_years = to_decimal(terms.term_years)
    return schedule
