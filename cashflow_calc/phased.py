"""Variable-structure schedules.

Layers on top of the level-payment loop in ``amortizer``:

* draw/repayment phasing for lines of credit: interest-only periods during
  which the balance is intentionally static, then a level payment recomputed
  over the repayment periods on whatever balance is outstanding;
* a constant prepayment overlay and the comparison against the plain
  schedule (interest saved, periods saved);
* payment policies for revolving balances (a fixed amount, or interest plus
  a percentage of the balance).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional, Union

from .amortizer import (
    amortize,
    amortize_balance,
    compute_payment,
    minimum_payment,
    schedule_cap,
)
from .config import DEFAULT_LIMITS, EngineLimits
from .data_models import (
    Frequency,
    LoanTerms,
    PaymentPeriod,
    Phase,
    PrepaymentComparison,
    Schedule,
    ZERO,
)
from .exceptions import InsufficientPaymentError, InvalidInputError
from .frequency import FrequencyLike, advance, to_periodic_rate
from .logging import get_logger
from .utils import Number, first_of_next_month, to_decimal

logger = get_logger(__name__)

DEFAULT_PAYMENT_FLOOR = Decimal("25")


def generate_phased_schedule(
    principal: Number,
    periodic_rate: Number,
    draw_periods: int,
    repay_periods: int,
    *,
    start_date: Optional[date] = None,
    frequency: FrequencyLike = Frequency.MONTHLY,
    annual_rate_percent: Optional[Number] = None,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Schedule:
    """Interest-only draw periods followed by a fully amortizing repayment phase.

    The repayment payment is computed when the draw phase ends, against the
    balance outstanding at that point, over ``repay_periods``.
    """
    balance = to_decimal(principal)
    rate = to_decimal(periodic_rate)
    frequency = Frequency.parse(frequency)
    if balance <= 0:
        raise InvalidInputError("Principal must be positive")
    if rate < 0:
        raise InvalidInputError("Interest rate cannot be negative")
    if draw_periods < 0:
        raise InvalidInputError("Draw period cannot be negative")
    if repay_periods <= 0:
        raise InvalidInputError("Repayment period must be positive")

    start = start_date or first_of_next_month()
    rows: List[PaymentPeriod] = []
    for index in range(1, draw_periods + 1):
        interest = balance * rate
        rows.append(
            PaymentPeriod(
                period_index=index,
                date=advance(start, frequency, index - 1),
                payment_amount=interest,
                principal_portion=ZERO,
                interest_portion=interest,
                remaining_balance=balance,
                phase=Phase.DRAW,
            )
        )

    repay_payment = compute_payment(balance, rate, repay_periods)
    rows.extend(
        amortize_balance(
            balance,
            rate,
            lambda _balance, _interest: repay_payment,
            start_date=start,
            frequency=frequency,
            max_periods=schedule_cap(repay_periods, frequency.periods_per_year, limits),
            first_index=draw_periods + 1,
            limits=limits,
        )
    )
    ppy = frequency.periods_per_year
    logger.debug(
        "Phased schedule: %d draw periods, %d repayment periods at %s",
        draw_periods,
        len(rows) - draw_periods,
        repay_payment,
    )
    return Schedule(
        periods=rows,
        principal=to_decimal(principal),
        annual_rate_percent=(
            rate * ppy * 100 if annual_rate_percent is None else to_decimal(annual_rate_percent)
        ),
        periods_per_year=ppy,
        term_years=Decimal(draw_periods + repay_periods) / Decimal(ppy),
        payment_frequency=frequency,
    )


def compare_prepayment(
    terms: LoanTerms,
    extra_principal: Number,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> PrepaymentComparison:
    """Amortize ``terms`` with and without a constant extra principal payment."""
    extra = to_decimal(extra_principal)
    if extra < 0:
        raise InvalidInputError("Prepayment cannot be negative")
    base = amortize(terms, limits=limits)
    accelerated = amortize(terms, extra_principal=extra, limits=limits)
    base_interest = sum((p.interest_portion for p in base), ZERO)
    accelerated_interest = sum((p.interest_portion for p in accelerated), ZERO)
    return PrepaymentComparison(
        base=base,
        accelerated=accelerated,
        interest_savings=max(ZERO, base_interest - accelerated_interest),
        periods_saved=len(base) - len(accelerated),
    )


@dataclass(frozen=True)
class FixedPayment:
    """Pay the same amount every period."""

    amount: Decimal

    def payment_for(self, balance: Decimal, interest: Decimal) -> Decimal:
        return to_decimal(self.amount)


@dataclass(frozen=True)
class InterestPlusPercent:
    """Pay the period's interest plus ``percent`` % of the balance, at least ``floor``."""

    percent: Decimal
    floor: Decimal = DEFAULT_PAYMENT_FLOOR

    def payment_for(self, balance: Decimal, interest: Decimal) -> Decimal:
        payment = interest + balance * to_decimal(self.percent) / Decimal(100)
        return max(payment, to_decimal(self.floor))


PaymentPolicy = Union[FixedPayment, InterestPlusPercent]


def payoff_schedule(
    balance: Number,
    annual_rate_percent: Number,
    policy: PaymentPolicy,
    *,
    frequency: FrequencyLike = Frequency.MONTHLY,
    start_date: Optional[date] = None,
    limits: EngineLimits = DEFAULT_LIMITS,
) -> Schedule:
    """Pay down a revolving balance under ``policy`` until it is retired.

    Raises ``InsufficientPaymentError`` (with the suggested minimum payment)
    when the first payment does not exceed the interest charge, or when the
    balance is still outstanding after ``limits.max_schedule_years``.
    """
    balance = to_decimal(balance)
    annual_rate = to_decimal(annual_rate_percent)
    frequency = Frequency.parse(frequency)
    if balance <= 0:
        raise InvalidInputError("Balance must be positive")
    if annual_rate < 0:
        raise InvalidInputError("Interest rate cannot be negative")
    rate = to_periodic_rate(annual_rate, frequency)
    first_interest = balance * rate
    if policy.payment_for(balance, first_interest) <= first_interest:
        raise InsufficientPaymentError(
            "Payment does not exceed the periodic interest charge",
            minimum_payment=minimum_payment(balance, rate),
        )
    ppy = frequency.periods_per_year
    rows = amortize_balance(
        balance,
        rate,
        policy.payment_for,
        start_date=start_date or first_of_next_month(),
        frequency=frequency,
        max_periods=limits.max_schedule_years * ppy,
        limits=limits,
    )
    return Schedule(
        periods=rows,
        principal=balance,
        annual_rate_percent=annual_rate,
        periods_per_year=ppy,
        term_years=Decimal(len(rows)) / Decimal(ppy),
        payment_frequency=frequency,
    )
