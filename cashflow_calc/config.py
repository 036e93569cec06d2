"""Configuration management for cashflow-calc.

The engine's loops are all bounded. The bounds live here as named limits so
that pathological inputs (near-zero or negative effective rates, payments that
barely exceed interest) always terminate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .exceptions import ConfigurationError

# Schedule runaway guard: 50 years of periods (600 monthly payments).
MAX_SCHEDULE_YEARS = 50
# Newton-Raphson iteration cap and step tolerance.
MAX_NEWTON_ITERATIONS = 100
RATE_TOLERANCE = 0.0001
# Rates at or below -1 make (1 + rate) ** years undefined for fractional years.
RATE_FLOOR = -0.99
RATE_CEILING = 10.0
# Period-by-period term search gives up after 100 years.
MAX_TERM_YEARS = 100
# Balances below half a cent are treated as paid off.
BALANCE_EPSILON = Decimal("0.005")


@dataclass(frozen=True)
class EngineLimits:
    """Iteration caps and tolerances shared by every calculation."""

    max_schedule_years: int = MAX_SCHEDULE_YEARS
    max_newton_iterations: int = MAX_NEWTON_ITERATIONS
    rate_tolerance: float = RATE_TOLERANCE
    rate_floor: float = RATE_FLOOR
    rate_ceiling: float = RATE_CEILING
    max_term_years: int = MAX_TERM_YEARS
    balance_epsilon: Decimal = BALANCE_EPSILON

    def __post_init__(self) -> None:
        if self.max_schedule_years <= 0 or self.max_term_years <= 0:
            raise ConfigurationError("Year limits must be positive")
        if self.max_newton_iterations <= 0:
            raise ConfigurationError("max_newton_iterations must be positive")
        if self.rate_tolerance <= 0:
            raise ConfigurationError("rate_tolerance must be positive")
        if not -1.0 < self.rate_floor < self.rate_ceiling:
            raise ConfigurationError("Rate bounds must satisfy -1 < floor < ceiling")
        if self.balance_epsilon <= 0:
            raise ConfigurationError("balance_epsilon must be positive")


DEFAULT_LIMITS = EngineLimits()


@dataclass
class EngineConfig:
    """Main configuration for cashflow-calc."""

    limits: EngineLimits = field(default_factory=EngineLimits)
    log_level: str = "WARNING"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables."""
        import os

        def _read(name: str, cast, default):
            raw: Optional[str] = os.getenv(name)
            if raw is None or raw == "":
                return default
            try:
                return cast(raw)
            except (ValueError, ArithmeticError) as exc:
                raise ConfigurationError(f"Invalid value for {name}: {raw}") from exc

        limits = EngineLimits(
            max_schedule_years=_read("CASHFLOW_CALC_MAX_SCHEDULE_YEARS", int, MAX_SCHEDULE_YEARS),
            max_newton_iterations=_read("CASHFLOW_CALC_MAX_ITERATIONS", int, MAX_NEWTON_ITERATIONS),
            rate_tolerance=_read("CASHFLOW_CALC_RATE_TOLERANCE", float, RATE_TOLERANCE),
            max_term_years=_read("CASHFLOW_CALC_MAX_TERM_YEARS", int, MAX_TERM_YEARS),
        )

        log_format = os.getenv("CASHFLOW_CALC_LOG_FORMAT", "standard").lower()
        if log_format not in ("standard", "json"):
            raise ConfigurationError(f"Unknown log format: {log_format}")

        return cls(
            limits=limits,
            log_level=os.getenv("CASHFLOW_CALC_LOG_LEVEL", "WARNING"),
            log_format=log_format,
        )
