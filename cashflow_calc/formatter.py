"""Output helpers for cashflow-calc.

This module renders schedules, summaries and solver results as plain text
tables. The engine returns unrounded ``Decimal`` values; rounding to cents
happens here, at display time only.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional, Sequence

from .data_models import (
    AnnualSummary,
    CashFlowReturn,
    GrowthYear,
    InvestmentResult,
    PaymentPeriod,
    PensionComparison,
    Summary,
)
from .utils import Number, round_money, to_decimal


def format_currency(value: Number) -> str:
    """``1234.5`` -> ``"$1,234.50"``; negatives keep their sign in front."""
    amount = round_money(to_decimal(value))
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def format_signed_percent(value: Number, places: int = 2) -> str:
    """Percent with an explicit sign for non-negative values (``+7.18%``)."""
    amount = to_decimal(value)
    sign = "+" if amount >= 0 else ""
    return f"{sign}{amount:.{places}f}%"


def print_summary(summary: Summary, payment: Optional[Decimal] = None) -> None:
    """Print loan totals in a human-readable format."""
    print("Summary")
    print("-" * 72)
    if payment is not None:
        print(f"Payment            : {format_currency(payment)}")
    print(f"Total payments     : {format_currency(summary.total_payments)}")
    print(f"Total principal    : {format_currency(summary.total_principal)}")
    print(f"Total interest     : {format_currency(summary.total_interest)}")
    if summary.total_extra_principal:
        print(f"Extra principal    : {format_currency(summary.total_extra_principal)}")
    print(f"Effective rate     : {summary.effective_annual_rate:.3f}%")
    print(f"Payoff date        : {summary.payoff_date}")
    print(f"Payments made      : {summary.number_of_payments}")
    print("-" * 72)


def print_schedule(schedule: Iterable[PaymentPeriod], show_phase: bool = False) -> None:
    """Print the amortization schedule as a simple table.

    Parameters
    ----------
    schedule: Iterable[PaymentPeriod]
        The rows to print.
    show_phase: bool
        Whether to include the draw/amortizing column; only phased schedules
        need it.
    """
    headers = ["Period", "Date", "Payment", "Principal", "Interest", "Extra", "Balance"]
    if show_phase:
        headers.append("Phase")
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period_index),
            entry.date.isoformat(),
            f"{round_money(entry.payment_amount):.2f}",
            f"{round_money(entry.principal_portion):.2f}",
            f"{round_money(entry.interest_portion):.2f}",
            f"{round_money(entry.extra_principal):.2f}",
            f"{round_money(entry.remaining_balance):.2f}",
        ]
        if show_phase:
            row.append(entry.phase.value)
        print("\t".join(row))


def print_annual(years: Sequence[AnnualSummary]) -> None:
    print("\t".join(["Year", "Payments", "Principal", "Interest", "Balance"]))
    for year in years:
        print(
            "\t".join(
                [
                    str(year.year),
                    f"{round_money(year.payment):.2f}",
                    f"{round_money(year.principal):.2f}",
                    f"{round_money(year.interest):.2f}",
                    f"{round_money(year.ending_balance):.2f}",
                ]
            )
        )


def print_comparison(s1: Summary, s2: Summary) -> None:
    """Print two loan summaries side by side.

    The difference column is scenario2 - scenario1; a negative difference
    means the second scenario is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    keys = ["total_payments", "total_interest", "number_of_payments"]
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in keys:
        v1 = getattr(s1, key)
        v2 = getattr(s2, key)
        diff = v2 - v1
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print("=" * 72)


def print_investment(result: InvestmentResult) -> None:
    print("Investment")
    print("-" * 72)
    print(f"Solved for         : {result.solve_for.value}")
    if result.solve_for.value == "rate":
        print(f"Annual rate        : {result.solved_value:.4f}%")
    elif result.solve_for.value == "term":
        print(f"Years              : {result.solved_value:.2f}")
    else:
        print(f"Amount             : {format_currency(result.solved_value)}")
    print(f"End balance        : {format_currency(result.end_balance)}")
    print(f"Total contributions: {format_currency(result.total_contributions)}")
    print(f"Total interest     : {format_currency(result.total_interest)}")
    print("-" * 72)
    print_growth(result.annual)


def print_growth(years: Sequence[GrowthYear]) -> None:
    print("\t".join(["Year", "Deposits", "Interest", "Balance"]))
    for year in years:
        print(
            "\t".join(
                [
                    str(year.year),
                    f"{round_money(year.deposits):.2f}",
                    f"{round_money(year.interest):.2f}",
                    f"{round_money(year.ending_balance):.2f}",
                ]
            )
        )


def print_return(result: CashFlowReturn) -> None:
    print("Average annual return")
    print("-" * 72)
    suffix = " (approximate)" if result.approximate else ""
    print(f"Annual return      : {format_signed_percent(result.annual_return * 100)}{suffix}")
    print(f"Simple return      : {format_signed_percent(result.time_weighted_return)}")
    print(f"Net cash flow      : {format_currency(result.net_cash_flow)}")
    print(f"Period             : {result.total_days} days ({result.total_years:.2f} years)")
    print("-" * 72)


def print_pension(result: PensionComparison) -> None:
    print("Lump sum vs pension")
    print("-" * 72)
    print(f"Years in retirement: {result.years_in_retirement}")
    print(f"Lump sum grown     : {format_currency(result.lump_sum_future_value)}")
    print(f"Monthly withdrawal : {format_currency(result.lump_sum_monthly_withdrawal)}")
    print(f"Total pension      : {format_currency(result.total_pension_value)}")
    print(f"Pension today      : {format_currency(result.present_value_pension)}")
    label = "Lump sum" if result.better_option == "lump_sum" else "Monthly pension"
    print(f"Better option      : {label} by {format_currency(result.advantage)}")
    print("-" * 72)
