"""Tests for frequency conversions."""

from datetime import date
from decimal import Decimal

import pytest

from cashflow_calc.data_models import Frequency
from cashflow_calc.exceptions import InvalidFrequencyError, InvalidInputError
from cashflow_calc.frequency import (
    advance,
    convert_payment,
    effective_annual_rate,
    equivalent_periodic_rate,
    number_of_periods,
    periods_per_year,
    to_periodic_rate,
)


class TestPeriodsPerYear:
    """Tests for periods_per_year and Frequency.parse."""

    @pytest.mark.parametrize(
        "freq, expected",
        [("monthly", 12), ("quarterly", 4), ("annually", 1), ("weekly", 52), ("biweekly", 26)],
    )
    def test_known_frequencies(self, freq: str, expected: int) -> None:
        assert periods_per_year(freq) == expected

    def test_case_insensitive(self) -> None:
        assert periods_per_year(" Monthly ") == 12
        assert Frequency.parse("BIWEEKLY") is Frequency.BIWEEKLY

    def test_unknown_frequency(self) -> None:
        with pytest.raises(InvalidFrequencyError):
            periods_per_year("fortnightly")

    def test_invalid_frequency_is_invalid_input(self) -> None:
        with pytest.raises(InvalidInputError):
            Frequency.parse("daily")


class TestRates:
    """Tests for rate conversions."""

    def test_periodic_rate(self) -> None:
        assert to_periodic_rate(Decimal("6"), Frequency.MONTHLY) == Decimal("0.005")

    def test_equivalent_rate_matches_periodic_when_same(self) -> None:
        assert equivalent_periodic_rate(6, "monthly", "monthly") == to_periodic_rate(6, "monthly")

    def test_equivalent_rate_compounds(self) -> None:
        # 12% compounded monthly, paid quarterly: (1.01)^3 - 1
        rate = equivalent_periodic_rate(12, "monthly", "quarterly")
        assert abs(rate - Decimal("0.030301")) < Decimal("1e-12")

    def test_equivalent_rate_zero(self) -> None:
        assert equivalent_periodic_rate(0, "monthly", "annually") == 0

    def test_effective_annual_rate(self) -> None:
        ear = effective_annual_rate(12, "monthly")
        assert abs(ear - Decimal("0.126825030131969720661201")) < Decimal("1e-12")


class TestConversions:
    """Tests for payment and period conversions."""

    def test_convert_payment_biweekly_to_monthly(self) -> None:
        assert convert_payment(Decimal("500"), "biweekly", "monthly") == Decimal("500") * 26 / 12

    def test_convert_payment_annual_to_monthly(self) -> None:
        assert convert_payment(1200, "annually", "monthly") == Decimal("100")

    def test_number_of_periods(self) -> None:
        assert number_of_periods(30, "monthly") == 360
        assert number_of_periods(Decimal("2.5"), "quarterly") == 10
        assert number_of_periods(Decimal("0.01"), "annually") == 1

    def test_number_of_periods_rejects_zero_term(self) -> None:
        with pytest.raises(InvalidInputError):
            number_of_periods(0, "monthly")


class TestAdvance:
    """Tests for advance."""

    def test_monthly_clamps_day(self) -> None:
        assert advance(date(2024, 1, 31), "monthly", 1) == date(2024, 2, 29)

    def test_quarterly(self) -> None:
        assert advance(date(2024, 1, 15), "quarterly", 2) == date(2024, 7, 15)

    def test_annually(self) -> None:
        assert advance(date(2024, 3, 1), "annually", 3) == date(2027, 3, 1)

    def test_biweekly(self) -> None:
        assert advance(date(2024, 1, 1), "biweekly", 2) == date(2024, 1, 29)

    def test_zero_periods(self) -> None:
        assert advance(date(2024, 1, 1), "weekly", 0) == date(2024, 1, 1)
