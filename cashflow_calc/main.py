"""Command-line interface for cashflow-calc.

This module uses the ``click`` library to implement a multi-command
interface over the engine: loan schedules and summaries, scenario
comparison, home-equity loans and lines of credit, credit-card payoff,
investment problems solved for any unknown, the average annual return of an
account with dated activity, and the lump-sum versus pension comparison.
Schedules can be printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import shlex
from dataclasses import asdict
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import click

from .config import EngineConfig
from .data_models import (
    Activity,
    CashFlowKind,
    ContributionTiming,
    Frequency,
    HelocPaymentType,
    HomeEquityRequest,
    HomeEquityType,
    InvestmentProblem,
    LoanRequest,
    LoanTerms,
    PaymentPeriod,
    SolveFor,
    Summary,
)
from .engine import (
    analyze_home_equity,
    analyze_loan,
    plan_credit_card_payoff,
    safe_calculate,
    solve_investment,
)
from .exceptions import ConfigurationError
from .formatter import (
    format_currency,
    print_annual,
    print_comparison,
    print_investment,
    print_pension,
    print_return,
    print_schedule,
    print_summary,
)
from .logging import setup_logging
from .pension import compare_lump_sum
from .phased import FixedPayment, InterestPlusPercent
from .resolver import average_annual_return
from .utils import decimal_from_str, parse_date

FREQUENCIES = [f.value for f in Frequency]
MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("250000") and shorthand with ``k``/``m`` suffixes
    (e.g., "250k" meaning 250_000).
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    elif value.endswith("m"):
        factor = Decimal(1_000_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_start_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def parse_activity_strings(values: Tuple[str, ...], kind: CashFlowKind) -> List[Activity]:
    activities: List[Activity] = []
    for item in values:
        parts = item.rsplit(":", 1)
        if len(parts) != 2:
            raise click.BadParameter(f"Activity must be in YYYY-MM-DD:AMOUNT format; got {item}")
        when, amount = parts
        activities.append(Activity(kind=kind, amount=parse_amount(amount), date=parse_start_date(when)))
    return activities


def run(func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call an engine operation, turning a calculation error into a CLI error."""
    result = safe_calculate(func, *args, **kwargs)
    if not result.ok:
        error = result.error
        message = error.message
        if error.minimum_payment is not None:
            message += f" (minimum payment: {format_currency(error.minimum_payment)})"
        if error.best_estimate is not None:
            message += f" (best estimate: {error.best_estimate})"
        raise click.ClickException(message)
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    return result.value


def build_loan_request(
    principal: str,
    rate: float,
    term: float,
    frequency: str,
    compounding: Optional[str],
    start_date: Optional[str],
    prepayment: Optional[str] = None,
    down_payment: Optional[str] = None,
    closing_costs: Optional[str] = None,
) -> LoanRequest:
    terms = LoanTerms(
        principal=parse_amount(principal),
        annual_rate_percent=decimal_from_str(str(rate)),
        term_years=decimal_from_str(str(term)),
        compounding_frequency=Frequency.parse(compounding or frequency),
        payment_frequency=Frequency.parse(frequency),
        start_date=parse_start_date(start_date),
    )
    return LoanRequest(
        terms=terms,
        prepayment=parse_amount(prepayment) if prepayment else Decimal(0),
        down_payment=parse_amount(down_payment) if down_payment else Decimal(0),
        closing_costs=parse_amount(closing_costs) if closing_costs else None,
    )


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, "value"):
        return value.value
    return value


def export_to_json(path: Path, schedule: List[PaymentPeriod], summary: Summary) -> None:
    """Export schedule and summary to a JSON file."""
    data = {
        "summary": _jsonable(asdict(summary)),
        "schedule": [_jsonable(asdict(p)) for p in schedule],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[PaymentPeriod]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Payment",
        "Principal",
        "Interest",
        "Extra_Principal",
        "Remaining_Balance",
        "Phase",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for p in schedule:
            writer.writerow(
                [
                    p.period_index,
                    p.date.isoformat(),
                    float(p.payment_amount),
                    float(p.principal_portion),
                    float(p.interest_portion),
                    float(p.extra_principal),
                    float(p.remaining_balance),
                    p.phase.value,
                ]
            )


def emit_schedule(
    schedule: List[PaymentPeriod],
    summary: Summary,
    output: Optional[str],
    payment: Optional[Decimal] = None,
    show_phase: bool = False,
) -> None:
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule, summary)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(summary, payment)
    # Limit schedule length printed to avoid flooding the terminal
    if len(schedule) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(schedule)} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(schedule[:MAX_PRINTED_ROWS], show_phase)
    else:
        print_schedule(schedule, show_phase)


def loan_options(func: Callable) -> Callable:
    """Options shared by the loan commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount (e.g. 250k)"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=float, help="Loan term in years"),
        click.option("--frequency", "-f", "frequency", type=click.Choice(FREQUENCIES), default="monthly", help="Payment frequency"),
        click.option("--compounding", "compounding", type=click.Choice(FREQUENCIES), help="Compounding frequency (defaults to the payment frequency)"),
        click.option("--start-date", "-s", "start_date", help="First payment date (YYYY-MM-DD or YYYY-MM)"),
        click.option("--prepayment", "prepayment", help="Extra principal paid with every monthly payment"),
        click.option("--down-payment", "-d", "down_payment", help="Down payment amount"),
        click.option("--closing-costs", "closing_costs", help="Closing costs (estimated from the amount if omitted)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--log-level", "log_level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False), help="Log level (default from CASHFLOW_CALC_LOG_LEVEL)")
@click.option("--log-format", "log_format", type=click.Choice(["standard", "json"]), help="Log format (default from CASHFLOW_CALC_LOG_FORMAT)")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], log_format: Optional[str]) -> None:
    """Loan amortization, investment and cash-flow calculators."""
    try:
        config = EngineConfig.from_env()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc))
    setup_logging(log_level or config.log_level, log_format or config.log_format)
    ctx.obj = config


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_obj
def schedule(config: EngineConfig, output: Optional[str], **options: Any) -> None:
    """Compute and print the full amortization schedule."""
    request = build_loan_request(**options)
    analysis = run(analyze_loan, request, config.limits)
    emit_schedule(analysis.schedule.periods, analysis.summary, output, analysis.payment)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
@click.pass_obj
def summary(config: EngineConfig, output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary metrics and annual totals for a loan."""
    request = build_loan_request(**options)
    analysis = run(analyze_loan, request, config.limits)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": _jsonable(asdict(analysis.summary))}, f, indent=2)
        click.echo(f"Summary exported to {path}")
        return
    print_summary(analysis.summary, analysis.payment)
    click.echo(f"Closing costs      : {format_currency(analysis.closing_costs)}")
    click.echo(f"Total cost         : {format_currency(analysis.total_cost)}")
    click.echo(f"Loan to value      : {analysis.loan_to_value:.2f}%")
    if analysis.periods_saved:
        click.echo(f"Interest saved     : {format_currency(analysis.interest_savings)}")
        click.echo(f"Payments saved     : {analysis.periods_saved}")
    print_annual(analysis.annual)


_SCENARIO_FLAGS: Dict[str, str] = {
    "-p": "principal",
    "--principal": "principal",
    "-r": "rate",
    "--rate": "rate",
    "-t": "term",
    "--term": "term",
    "-f": "frequency",
    "--frequency": "frequency",
    "--compounding": "compounding",
    "-s": "start_date",
    "--start-date": "start_date",
    "--prepayment": "prepayment",
    "-d": "down_payment",
    "--down-payment": "down_payment",
    "--closing-costs": "closing_costs",
}


def parse_scenario_opts(opts: str) -> Dict[str, Any]:
    """Map a quoted option string onto ``build_loan_request`` arguments."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "principal": None,
        "rate": None,
        "term": None,
        "frequency": "monthly",
        "compounding": None,
        "start_date": None,
        "prepayment": None,
        "down_payment": None,
        "closing_costs": None,
    }
    i = 0
    while i < len(tokens):
        name = _SCENARIO_FLAGS.get(tokens[i])
        if name is None or i + 1 >= len(tokens):
            raise click.BadParameter(f"Unknown option in scenario: {tokens[i]}")
        params[name] = tokens[i + 1]
        i += 2
    for required in ("principal", "rate", "term"):
        if params[required] is None:
            raise click.BadParameter(f"Scenario missing required option {required}")
    try:
        params["rate"] = float(params["rate"])
        params["term"] = float(params["term"])
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    return params


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
@click.pass_obj
def compare(config: EngineConfig, scenario1: str, scenario2: str) -> None:
    """Compare two loan scenarios.

    Scenarios are provided as quoted option strings, for example:

        cashflow-calc compare --scenario1 "-p 250k -r 6.5 -t 30" --scenario2 "-p 250k -r 6.5 -t 30 --prepayment 200"
    """
    first = run(analyze_loan, build_loan_request(**parse_scenario_opts(scenario1)), config.limits)
    second = run(analyze_loan, build_loan_request(**parse_scenario_opts(scenario2)), config.limits)
    print_comparison(first.summary, second.summary)


@cli.command()
@click.option("--home-value", "home_value", required=True, help="Current home value")
@click.option("--mortgage-balance", "mortgage_balance", default="0", help="Outstanding mortgage balance")
@click.option("--amount", "-a", "amount", required=True, help="Loan or credit line amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--type", "loan_type", type=click.Choice([t.value for t in HomeEquityType]), default="heloc", help="Fixed loan or line of credit")
@click.option("--payment-type", "payment_type", type=click.Choice([t.value for t in HelocPaymentType]), default="interest_only", help="Line of credit payments during the draw period")
@click.option("--term", "-t", "term", type=float, default=15, help="Fixed loan term in years")
@click.option("--draw-years", "draw_years", type=int, default=10, help="Line of credit draw period")
@click.option("--repay-years", "repay_years", type=int, default=20, help="Line of credit repayment period")
@click.option("--closing-costs", "closing_costs", default="0", help="Closing costs")
@click.option("--start-date", "-s", "start_date", help="First payment date (YYYY-MM-DD or YYYY-MM)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_obj
def heloc(
    config: EngineConfig,
    home_value: str,
    mortgage_balance: str,
    amount: str,
    rate: float,
    loan_type: str,
    payment_type: str,
    term: float,
    draw_years: int,
    repay_years: int,
    closing_costs: str,
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Home-equity loan or line of credit schedule."""
    request = HomeEquityRequest(
        home_value=parse_amount(home_value),
        mortgage_balance=parse_amount(mortgage_balance),
        loan_amount=parse_amount(amount),
        annual_rate_percent=decimal_from_str(str(rate)),
        term_years=decimal_from_str(str(term)),
        loan_type=HomeEquityType(loan_type),
        payment_type=HelocPaymentType(payment_type),
        draw_years=draw_years,
        repay_years=repay_years,
        closing_costs=parse_amount(closing_costs),
        start_date=parse_start_date(start_date),
    )
    analysis = run(analyze_home_equity, request, config.limits)
    if not output:
        click.echo(f"Available equity   : {format_currency(analysis.available_equity)}")
        click.echo(f"Loan to value      : {analysis.loan_to_value:.2f}%")
        click.echo(f"Combined LTV       : {analysis.combined_loan_to_value:.2f}%")
        click.echo(f"Total cost         : {format_currency(analysis.total_cost)}")
    emit_schedule(
        analysis.schedule.periods,
        analysis.summary,
        output,
        analysis.payment,
        show_phase=request.loan_type == HomeEquityType.HELOC,
    )


@cli.command()
@click.option("--balance", "-b", "balance", required=True, help="Card balance")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--payment", "payment", help="Fixed monthly payment")
@click.option("--percent", "percent", type=float, help="Pay interest plus this percent of the balance")
@click.option("--floor", "floor", default="25", help="Smallest payment under --percent")
@click.option("--start-date", "-s", "start_date", help="First payment date (YYYY-MM-DD or YYYY-MM)")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.pass_obj
def payoff(
    config: EngineConfig,
    balance: str,
    rate: float,
    payment: Optional[str],
    percent: Optional[float],
    floor: str,
    start_date: Optional[str],
    output: Optional[str],
) -> None:
    """Credit card payoff plan."""
    if (payment is None) == (percent is None):
        raise click.UsageError("Give exactly one of --payment or --percent")
    if payment is not None:
        policy = FixedPayment(parse_amount(payment))
    else:
        policy = InterestPlusPercent(decimal_from_str(str(percent)), parse_amount(floor))
    schedule_, summary_ = run(
        plan_credit_card_payoff,
        parse_amount(balance),
        decimal_from_str(str(rate)),
        policy,
        config.limits,
        start_date=parse_start_date(start_date),
    )
    emit_schedule(schedule_.periods, summary_, output, schedule_[0].payment_amount)


@cli.command()
@click.option("--solve-for", "solve_for", type=click.Choice([s.value for s in SolveFor]), required=True, help="The unknown to solve for")
@click.option("--starting-amount", "starting_amount", default="0", help="Starting amount")
@click.option("--contribution", "-c", "contribution", default="0", help="Contribution per contribution period")
@click.option("--rate", "-r", "rate", type=float, default=0.0, help="Annual return (percent)")
@click.option("--term", "-t", "term", type=float, default=10, help="Years")
@click.option("--target", "target", default="0", help="Target amount")
@click.option("--compounding", "compounding", type=click.Choice(FREQUENCIES), default="annually", help="Compounding frequency")
@click.option("--contribution-frequency", "contribution_frequency", type=click.Choice(FREQUENCIES), default="annually", help="Contribution frequency")
@click.option("--timing", "timing", type=click.Choice([t.value for t in ContributionTiming]), default="end", help="Contributions at the beginning or end of each period")
@click.pass_obj
def solve(
    config: EngineConfig,
    solve_for: str,
    starting_amount: str,
    contribution: str,
    rate: float,
    term: float,
    target: str,
    compounding: str,
    contribution_frequency: str,
    timing: str,
) -> None:
    """Solve an investment problem for one unknown."""
    problem = InvestmentProblem(
        starting_amount=parse_amount(starting_amount),
        contribution=parse_amount(contribution),
        annual_rate_percent=decimal_from_str(str(rate)),
        term_years=decimal_from_str(str(term)),
        target_amount=parse_amount(target),
        compounding_frequency=Frequency.parse(compounding),
        contribution_frequency=Frequency.parse(contribution_frequency),
        timing=ContributionTiming(timing),
    )
    print_investment(run(solve_investment, SolveFor(solve_for), problem, config.limits))


@cli.command()
@click.option("--start-balance", "start_balance", required=True, help="Balance on the starting date")
@click.option("--start-date", "start_date", required=True, help="Starting date (YYYY-MM-DD)")
@click.option("--end-balance", "end_balance", required=True, help="Balance on the ending date")
@click.option("--end-date", "end_date", required=True, help="Ending date (YYYY-MM-DD)")
@click.option("--deposit", "deposit", multiple=True, help="Deposit in YYYY-MM-DD:AMOUNT format")
@click.option("--withdrawal", "withdrawal", multiple=True, help="Withdrawal in YYYY-MM-DD:AMOUNT format")
@click.pass_obj
def xirr(
    config: EngineConfig,
    start_balance: str,
    start_date: str,
    end_balance: str,
    end_date: str,
    deposit: Tuple[str, ...],
    withdrawal: Tuple[str, ...],
) -> None:
    """Average annual return of an account with dated deposits and withdrawals."""
    activities = parse_activity_strings(deposit, CashFlowKind.DEPOSIT)
    activities += parse_activity_strings(withdrawal, CashFlowKind.WITHDRAWAL)
    result = run(
        average_annual_return,
        parse_amount(start_balance),
        parse_start_date(start_date),
        parse_amount(end_balance),
        parse_start_date(end_date),
        activities,
        limits=config.limits,
    )
    print_return(result)


@cli.command()
@click.option("--lump-sum", "lump_sum", required=True, help="Lump sum offered")
@click.option("--return", "annual_return", type=float, required=True, help="Expected annual return (percent)")
@click.option("--monthly-pension", "monthly_pension", required=True, help="Monthly pension offered")
@click.option("--cola", "cola", type=float, default=0.0, help="Annual cost-of-living increase (percent)")
@click.option("--retirement-age", "retirement_age", type=int, default=65)
@click.option("--life-expectancy", "life_expectancy", type=int, default=85)
def pension(
    lump_sum: str,
    annual_return: float,
    monthly_pension: str,
    cola: float,
    retirement_age: int,
    life_expectancy: int,
) -> None:
    """Compare a lump sum with a monthly pension."""
    result = run(
        compare_lump_sum,
        parse_amount(lump_sum),
        decimal_from_str(str(annual_return)),
        parse_amount(monthly_pension),
        decimal_from_str(str(cola)),
        retirement_age,
        life_expectancy,
    )
    print_pension(result)


if __name__ == "__main__":
    cli()
