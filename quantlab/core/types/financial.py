"""
Financial arithmetic helpers for backtesting calculations.

All money and quantity values are plain floats. Quantities are whole units:
sizing results are floored so a ledger never holds fractional lots created
by rounding noise.

Precision Trade-offs:
- Float64 provides ~15-16 significant decimal digits
- Comparisons against thresholds go through the tolerance helpers below
- Values are never rounded for display inside the engine
"""

import math

from quantlab.core.constants import QUANTITY_EPSILON

# Common financial values as float constants
ZERO = 0.0
ONE = 1.0
HUNDRED = 100.0


def floor_quantity(value: float, tolerance: float = QUANTITY_EPSILON) -> float:
    """Floor a quantity to whole units, absorbing float noise just below an integer.

    Args:
        value: Raw quantity
        tolerance: Amount added before flooring

    Returns:
        Whole-unit quantity as float (0.0 for non-finite or negative input)

    Examples:
        >>> floor_quantity(99.9)
        99.0
        >>> floor_quantity(29.999999999999996)
        30.0
    """
    if not math.isfinite(value) or value <= ZERO:
        return ZERO
    return float(math.floor(value + tolerance))


def calculate_fee(trade_value: float, fixed_fee: float, percentage_fee: float) -> float:
    """Calculate commission for a fill.

    Args:
        trade_value: price * quantity of the fill
        fixed_fee: Flat fee charged per fill
        percentage_fee: Fraction of trade value charged

    Returns:
        Total fee
    """
    return trade_value * percentage_fee + fixed_fee


def calculate_realized_pnl(total_credit: float, average_price: float, quantity: float) -> float:
    """Calculate realized PnL of a closing fill against its fee-inclusive cost basis."""
    return total_credit - average_price * quantity


def blend_average_price(
    old_average: float, old_quantity: float, added_cost: float, new_quantity: float
) -> float:
    """Blend a fill's total cost into an existing cost basis.

    Args:
        old_average: Current average price (fees included)
        old_quantity: Quantity held before the fill
        added_cost: Total cost of the fill (fees included)
        new_quantity: Quantity held after the fill

    Returns:
        New average price per unit
    """
    return (old_average * old_quantity + added_cost) / new_quantity


def percent_change(start: float, end: float) -> float:
    """Percentage change from start to end, 0 when start is 0."""
    if start == ZERO:
        return ZERO
    return (end - start) / start * HUNDRED


def safe_float_comparison(a: float, b: float, tolerance: float = 1e-9) -> bool:
    """Compare floats with tolerance for precision issues.

    Examples:
        >>> safe_float_comparison(0.1 + 0.2, 0.3)
        True
    """
    return abs(a - b) < tolerance
