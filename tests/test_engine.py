"""Tests for calculator-level operations and the error boundary."""

from datetime import date
from decimal import Decimal

import pytest

from cashflow_calc.config import EngineLimits
from cashflow_calc.data_models import (
    ContributionTiming,
    Frequency,
    HelocPaymentType,
    HomeEquityRequest,
    HomeEquityType,
    InvestmentProblem,
    LoanRequest,
    LoanTerms,
    Phase,
    RateSolution,
    SolveFor,
)
from cashflow_calc.engine import (
    analyze_home_equity,
    analyze_loan,
    calculate,
    default_closing_costs,
    plan_credit_card_payoff,
    safe_calculate,
    solve_investment,
)
from cashflow_calc.exceptions import InsufficientPaymentError, InvalidInputError
from cashflow_calc.phased import FixedPayment
from cashflow_calc.resolver import future_value
from cashflow_calc.utils import round_money

CENT = Decimal("0.01")


class TestClosingCosts:
    """Tests for default_closing_costs."""

    @pytest.mark.parametrize(
        "amount, expected",
        [
            ("5000", "100"),
            ("5000.00", "100"),
            ("20000", "600"),
            ("5000000", "100000"),
            ("10000", "300"),
            ("100000", "2000"),
        ],
    )
    def test_tiers(self, amount: str, expected: str) -> None:
        assert default_closing_costs(Decimal(amount)) == Decimal(expected)

    def test_minimums(self) -> None:
        assert default_closing_costs(Decimal("10000")) >= Decimal("200")
        assert default_closing_costs(Decimal("100000")) >= Decimal("1000")


class TestAnalyzeLoan:
    """Tests for analyze_loan."""

    def test_basic_loan(self, mortgage_terms: LoanTerms) -> None:
        analysis = analyze_loan(LoanRequest(terms=mortgage_terms, closing_costs=Decimal("0")))
        assert round_money(analysis.payment) == Decimal("1580.17")
        assert round_money(analysis.monthly_equivalent_payment) == round_money(analysis.payment)
        assert len(analysis.schedule) == 360
        assert len(analysis.annual) == 30
        assert analysis.effective_apr == Decimal("6.5")
        assert analysis.loan_to_value == Decimal("100")
        assert analysis.periods_saved == 0
        assert analysis.total_cost == Decimal("250000") + analysis.summary.total_interest

    def test_default_closing_costs_and_down_payment(self, mortgage_terms: LoanTerms) -> None:
        analysis = analyze_loan(LoanRequest(terms=mortgage_terms, down_payment=Decimal("50000")))
        assert analysis.closing_costs == Decimal("5000")
        assert abs(analysis.loan_to_value - Decimal("83.3333")) < Decimal("0.0001")
        assert analysis.effective_apr == (
            (analysis.summary.total_interest + Decimal("5000")) / Decimal("250000") / Decimal("30") * 100
        )
        assert analysis.total_cost == (
            Decimal("250000") + analysis.summary.total_interest + Decimal("5000") + Decimal("50000")
        )

    def test_prepayment_saves_interest(self, mortgage_terms: LoanTerms) -> None:
        analysis = analyze_loan(LoanRequest(terms=mortgage_terms, prepayment=Decimal("200")))
        assert analysis.periods_saved > 0
        assert analysis.interest_savings > 0
        assert len(analysis.schedule) == 360 - analysis.periods_saved

    def test_prepayment_ignored_for_biweekly(self, start: date) -> None:
        terms = LoanTerms(
            principal=Decimal("100000"),
            annual_rate_percent=Decimal("5"),
            term_years=Decimal("10"),
            compounding_frequency=Frequency.BIWEEKLY,
            payment_frequency=Frequency.BIWEEKLY,
            start_date=start,
        )
        analysis = analyze_loan(LoanRequest(terms=terms, prepayment=Decimal("100")))
        assert analysis.periods_saved == 0
        assert len(analysis.schedule) == 260
        assert analysis.monthly_equivalent_payment == analysis.payment * 26 / 12

    def test_negative_down_payment(self, mortgage_terms: LoanTerms) -> None:
        with pytest.raises(InvalidInputError):
            analyze_loan(LoanRequest(terms=mortgage_terms, down_payment=Decimal("-1")))


class TestAnalyzeHomeEquity:
    """Tests for analyze_home_equity."""

    def test_fixed_loan(self, start: date) -> None:
        request = HomeEquityRequest(
            home_value=Decimal("400000"),
            mortgage_balance=Decimal("200000"),
            loan_amount=Decimal("50000"),
            annual_rate_percent=Decimal("7.5"),
            term_years=Decimal("15"),
            start_date=start,
        )
        analysis = analyze_home_equity(request)
        assert round_money(analysis.payment) == Decimal("463.51")
        assert analysis.available_equity == Decimal("200000")
        assert analysis.loan_to_value == Decimal("12.5")
        assert analysis.combined_loan_to_value == Decimal("62.5")
        assert analysis.tax_deductible_interest == analysis.summary.total_interest
        assert len(analysis.equity_by_period) == 180
        assert abs(analysis.equity_by_period[-1] - Decimal("200000")) <= CENT

    def test_heloc_interest_only(self, start: date) -> None:
        request = HomeEquityRequest(
            home_value=Decimal("400000"),
            mortgage_balance=Decimal("100000"),
            loan_amount=Decimal("60000"),
            annual_rate_percent=Decimal("6"),
            loan_type=HomeEquityType.HELOC,
            payment_type=HelocPaymentType.INTEREST_ONLY,
            draw_years=10,
            repay_years=20,
            start_date=start,
        )
        analysis = analyze_home_equity(request)
        assert analysis.payment == Decimal("300.000")
        assert len(analysis.schedule) == 360
        assert analysis.schedule[119].phase == Phase.DRAW
        assert analysis.schedule[120].phase == Phase.AMORTIZING
        assert analysis.equity_by_period[0] == Decimal("240000")

    def test_heloc_principal_and_interest(self, start: date) -> None:
        request = HomeEquityRequest(
            home_value=Decimal("400000"),
            mortgage_balance=Decimal("100000"),
            loan_amount=Decimal("60000"),
            annual_rate_percent=Decimal("6"),
            loan_type=HomeEquityType.HELOC,
            payment_type=HelocPaymentType.PRINCIPAL_INTEREST,
            repay_years=20,
            start_date=start,
        )
        analysis = analyze_home_equity(request)
        assert len(analysis.schedule) == 240
        assert all(p.phase == Phase.AMORTIZING for p in analysis.schedule)

    def test_loan_above_equity_share(self) -> None:
        request = HomeEquityRequest(
            home_value=Decimal("300000"),
            mortgage_balance=Decimal("200000"),
            loan_amount=Decimal("90000"),
            annual_rate_percent=Decimal("7"),
        )
        with pytest.raises(InvalidInputError):
            analyze_home_equity(request)


class TestCreditCardPayoff:
    """Tests for plan_credit_card_payoff."""

    def test_returns_schedule_and_summary(self, start: date) -> None:
        schedule, summary = plan_credit_card_payoff(
            Decimal("3000"), Decimal("20"), FixedPayment(Decimal("150")), start_date=start
        )
        assert summary.number_of_payments == len(schedule)
        assert summary.total_interest > 0
        assert abs(summary.total_principal - Decimal("3000")) <= CENT

    def test_insufficient_payment(self) -> None:
        with pytest.raises(InsufficientPaymentError):
            plan_credit_card_payoff(Decimal("3000"), Decimal("20"), FixedPayment(Decimal("40")))


class TestSolveInvestment:
    """Tests for solve_investment."""

    def _problem(self, **overrides) -> InvestmentProblem:
        values = dict(
            starting_amount=Decimal("20000"),
            contribution=Decimal("1000"),
            annual_rate_percent=Decimal("7"),
            term_years=Decimal("10"),
            target_amount=Decimal("200000"),
            start_date=date(2025, 1, 1),
        )
        values.update(overrides)
        return InvestmentProblem(**values)

    def test_future_value(self) -> None:
        result = solve_investment(SolveFor.FUTURE_VALUE, self._problem())
        expected = future_value(Decimal("20000"), Decimal("1000"), Decimal("0.07"), 10)
        assert result.solved_value == expected
        assert result.end_balance == expected
        assert result.total_contributions == Decimal("30000")
        assert result.total_interest == expected - Decimal("30000")
        assert len(result.growth) == 10
        assert abs(result.growth[-1].balance - expected) <= CENT
        assert len(result.annual) == 10

    def test_rate(self) -> None:
        result = solve_investment(SolveFor.RATE, self._problem())
        periodic = result.solved_value / 100
        fv = future_value(Decimal("20000"), Decimal("1000"), periodic, 10)
        assert abs(fv - Decimal("200000")) / Decimal("200000") < Decimal("0.0001")
        assert abs(result.growth[-1].balance - Decimal("200000")) / Decimal("200000") < Decimal("0.0001")

    def test_principal(self) -> None:
        result = solve_investment(SolveFor.PRINCIPAL, self._problem())
        fv = future_value(result.solved_value, Decimal("1000"), Decimal("0.07"), 10)
        assert abs(fv - Decimal("200000")) <= CENT

    def test_contribution_in_contribution_periods(self) -> None:
        problem = self._problem(
            starting_amount=Decimal("0"),
            compounding_frequency=Frequency.MONTHLY,
            contribution_frequency=Frequency.ANNUALLY,
        )
        result = solve_investment(SolveFor.CONTRIBUTION, problem)
        per_month = result.solved_value / 12
        fv = future_value(Decimal("0"), per_month, Decimal("0.07") / 12, 120)
        assert abs(fv - Decimal("200000")) <= CENT

    def test_term(self) -> None:
        result = solve_investment(SolveFor.TERM, self._problem(contribution=Decimal("0"), target_amount=Decimal("40000")))
        assert abs(result.solved_value - Decimal("10.245")) < Decimal("0.001")
        assert len(result.growth) == 11

    def test_payment_draws_down_to_zero(self) -> None:
        problem = self._problem(
            starting_amount=Decimal("100000"),
            contribution=Decimal("0"),
            annual_rate_percent=Decimal("6"),
            term_years=Decimal("20"),
            compounding_frequency=Frequency.MONTHLY,
        )
        result = solve_investment(SolveFor.PAYMENT, problem)
        assert round_money(result.solved_value) == Decimal("716.43")
        assert abs(result.end_balance) <= CENT
        assert result.end_balance == result.growth[-1].balance

    def test_payment_at_period_start_draws_down_to_zero(self) -> None:
        problem = self._problem(
            starting_amount=Decimal("100000"),
            contribution=Decimal("0"),
            annual_rate_percent=Decimal("6"),
            term_years=Decimal("20"),
            compounding_frequency=Frequency.MONTHLY,
            timing=ContributionTiming.BEGINNING,
        )
        result = solve_investment(SolveFor.PAYMENT, problem)
        assert round_money(result.solved_value) == Decimal("712.87")
        assert abs(result.growth[-1].balance) <= CENT
        assert abs(result.growth[-1].balance - result.end_balance) <= CENT
        assert all(row.balance > -CENT for row in result.growth)

    def test_beginning_timing_grows_more(self) -> None:
        end = solve_investment(SolveFor.FUTURE_VALUE, self._problem())
        beginning = solve_investment(
            SolveFor.FUTURE_VALUE, self._problem(timing=ContributionTiming.BEGINNING)
        )
        assert beginning.end_balance > end.end_balance

    def test_target_required(self) -> None:
        with pytest.raises(InvalidInputError):
            solve_investment(SolveFor.RATE, self._problem(target_amount=Decimal("0")))

    def test_accepts_string_solve_for(self) -> None:
        assert solve_investment("future_value", self._problem()).solve_for == SolveFor.FUTURE_VALUE


class TestSafeCalculate:
    """Tests for safe_calculate and calculate."""

    def test_success(self) -> None:
        result = safe_calculate(default_closing_costs, Decimal("5000"))
        assert result.ok
        assert result.value == Decimal("100")
        assert result.warnings == []

    def test_insufficient_payment_becomes_data(self) -> None:
        result = safe_calculate(
            plan_credit_card_payoff, Decimal("3000"), Decimal("20"), FixedPayment(Decimal("40"))
        )
        assert not result.ok
        assert result.error.kind == "insufficient_payment"
        assert round_money(result.error.minimum_payment) == Decimal("51.00")

    def test_invalid_frequency_kind(self) -> None:
        problem = InvestmentProblem(target_amount=Decimal("1"), compounding_frequency="hourly")
        result = safe_calculate(solve_investment, SolveFor.FUTURE_VALUE, problem)
        assert result.error.kind == "invalid_frequency"

    def test_unreachable_target_carries_estimate(self) -> None:
        problem = InvestmentProblem(
            starting_amount=Decimal("20000"),
            contribution=Decimal("1000"),
            term_years=Decimal("10"),
            target_amount=Decimal("200000"),
        )
        result = calculate(SolveFor.RATE, problem, EngineLimits(max_newton_iterations=1))
        assert result.error.kind == "unreachable_target"
        assert result.error.best_estimate is not None

    def test_approximate_result_warns(self) -> None:
        result = safe_calculate(lambda: RateSolution(Decimal("0.1"), 5, False, approximate=True))
        assert result.ok
        assert len(result.warnings) == 1

    def test_unknown_solve_for_becomes_data(self) -> None:
        result = calculate("bogus", InvestmentProblem(target_amount=Decimal("1000")))
        assert not result.ok
        assert result.error.kind == "invalid_input"
        assert "bogus" in result.error.message

    def test_malformed_amount_becomes_data(self) -> None:
        problem = InvestmentProblem(starting_amount="abc", annual_rate_percent=Decimal("5"), term_years=Decimal("10"))
        result = calculate(SolveFor.FUTURE_VALUE, problem)
        assert not result.ok
        assert result.error.kind == "invalid_input"
        assert "abc" in result.error.message

    def test_unexpected_errors_become_data(self) -> None:
        def broken() -> None:
            raise KeyError("boom")

        result = safe_calculate(broken)
        assert not result.ok
        assert result.error.kind == "internal"
        assert "boom" in result.error.message
