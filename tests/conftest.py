"""Pytest configuration and fixtures."""

from datetime import date
from decimal import Decimal

import pytest

from cashflow_calc.data_models import Frequency, LoanTerms


@pytest.fixture
def start() -> date:
    """Fixed first payment date so schedules are reproducible."""
    return date(2025, 1, 1)


@pytest.fixture
def mortgage_terms(start: date) -> LoanTerms:
    """250,000 at 6.5% over 30 years, paid monthly."""
    return LoanTerms(
        principal=Decimal("250000"),
        annual_rate_percent=Decimal("6.5"),
        term_years=Decimal("30"),
        start_date=start,
    )


@pytest.fixture
def auto_terms(start: date) -> LoanTerms:
    """50,000 at 7.5% over 15 years, paid monthly."""
    return LoanTerms(
        principal=Decimal("50000"),
        annual_rate_percent=Decimal("7.5"),
        term_years=Decimal("15"),
        payment_frequency=Frequency.MONTHLY,
        start_date=start,
    )


@pytest.fixture
def small_terms(start: date) -> LoanTerms:
    """12,000 at 6% over one year; short enough to inspect row by row."""
    return LoanTerms(
        principal=Decimal("12000"),
        annual_rate_percent=Decimal("6"),
        term_years=Decimal("1"),
        start_date=start,
    )
