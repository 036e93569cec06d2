"""Custom exception hierarchy for cashflow-calc."""

from decimal import Decimal
from typing import Optional


class CalcError(Exception):
    """Base exception for all cashflow-calc errors."""


class InvalidInputError(CalcError, ValueError):
    """Raised when calculation inputs are out of range."""


class InvalidFrequencyError(InvalidInputError):
    """Raised when a payment or compounding frequency is not recognised."""


class InsufficientPaymentError(CalcError):
    """Raised when a payment does not cover the periodic interest charge.

    ``minimum_payment`` is the smallest payment that would start reducing the
    balance (periodic interest plus a small increment).
    """

    def __init__(self, message: str, minimum_payment: Optional[Decimal] = None) -> None:
        super().__init__(message)
        self.minimum_payment = minimum_payment


class UnreachableTargetError(CalcError):
    """Raised when a rate or term search does not converge.

    ``best_estimate`` holds the last iterate, clamped to the engine bounds.
    It is not a precise answer.
    """

    def __init__(self, message: str, best_estimate: Optional[Decimal] = None) -> None:
        super().__init__(message)
        self.best_estimate = best_estimate


class ConfigurationError(CalcError):
    """Raised when configuration is invalid or missing."""
