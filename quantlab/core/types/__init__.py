"""
Core type definitions and utilities.
"""

# Re-export financial utilities for easy access
from .financial import (
    HUNDRED,
    ONE,
    ZERO,
    blend_average_price,
    calculate_fee,
    calculate_realized_pnl,
    floor_quantity,
    percent_change,
    safe_float_comparison,
)

__all__ = [
    # Utility functions
    "floor_quantity",
    "calculate_fee",
    "calculate_realized_pnl",
    "blend_average_price",
    "percent_change",
    "safe_float_comparison",
    # Constants
    "ZERO",
    "ONE",
    "HUNDRED",
]
