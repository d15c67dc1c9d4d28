"""
Validation utilities for core domain models.

Provides consistent validation across the application.
"""

import math
from typing import Any

from quantlab.core.exceptions.backtest import ValidationError


def validate_symbol(symbol: Any, param_name: str = "symbol") -> str:
    """Validate that a value is a usable asset symbol.

    Args:
        symbol: Value to validate
        param_name: Parameter name for error messages

    Returns:
        The validated symbol

    Raises:
        ValidationError: If symbol is not a non-empty string
    """
    if not isinstance(symbol, str) or not symbol.strip():
        raise ValidationError(f"{param_name} must be a non-empty string, got {symbol!r}")
    return symbol


def validate_finite(value: float, param_name: str) -> float:
    """Validate that a numeric value is finite."""
    if not isinstance(value, int | float) or not math.isfinite(value):
        raise ValidationError(f"{param_name} must be a finite number, got {value!r}")
    return value


def validate_positive(value: float, param_name: str) -> float:
    """Validate that a numeric value is positive.

    Args:
        value: Value to validate
        param_name: Parameter name for error messages

    Returns:
        The validated value

    Raises:
        ValidationError: If value is not positive
    """
    validate_finite(value, param_name)
    if value <= 0:
        raise ValidationError(f"{param_name} must be positive, got {value}")
    return value


def validate_non_negative(value: float, param_name: str) -> float:
    """Validate that a numeric value is zero or positive."""
    validate_finite(value, param_name)
    if value < 0:
        raise ValidationError(f"{param_name} must be non-negative, got {value}")
    return value


def validate_fraction(value: float, param_name: str, allow_zero: bool = False) -> float:
    """Validate that a value is a fraction in (0, 1], or [0, 1] with allow_zero.

    Args:
        value: Value to validate
        param_name: Parameter name for error messages
        allow_zero: Accept 0 as a valid fraction

    Returns:
        The validated fraction

    Raises:
        ValidationError: If value is outside the allowed range
    """
    validate_finite(value, param_name)
    lower_ok = value >= 0 if allow_zero else value > 0
    if not lower_ok or value > 1:
        bounds = "[0, 1]" if allow_zero else "(0, 1]"
        raise ValidationError(f"{param_name} must be in {bounds}, got {value}")
    return value


def validate_period(value: int, param_name: str = "period") -> int:
    """Validate that an indicator window is a positive integer."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"{param_name} must be a positive integer, got {value!r}")
    return value
