"""
Slippage models.

A slippage model turns an ideal signal price into the price actually
achievable at execution. Buys fill higher and sells fill lower; HOLD
signals are never adjusted.
"""

from quantlab.core.enums import SignalAction
from quantlab.core.interfaces.execution import ISlippageModel
from quantlab.core.models.candle import Candle
from quantlab.core.utils.validation import validate_non_negative


class ZeroSlippage(ISlippageModel):
    """Fills exactly at the requested price."""

    def price_after_slippage(
        self, base_price: float, quantity: float, candle: Candle, action: SignalAction
    ) -> float:
        return base_price


class FixedPercentageSlippage(ISlippageModel):
    """Moves the price against the order by a fixed fraction.

    Examples:
        >>> model = FixedPercentageSlippage(0.01)
        >>> model.price_after_slippage(100.0, 1, candle, SignalAction.BUY)
        101.0
    """

    def __init__(self, percentage: float = 0.001):
        validate_non_negative(percentage, "percentage")
        self.percentage = percentage

    def price_after_slippage(
        self, base_price: float, quantity: float, candle: Candle, action: SignalAction
    ) -> float:
        if action == SignalAction.BUY:
            return base_price * (1 + self.percentage)
        if action == SignalAction.SELL:
            return base_price * (1 - self.percentage)
        return base_price


class VolatilitySlippage(ISlippageModel):
    """Moves the price against the order by a fraction of the bar's range."""

    def __init__(self, factor: float = 0.1):
        validate_non_negative(factor, "factor")
        self.factor = factor

    def price_after_slippage(
        self, base_price: float, quantity: float, candle: Candle, action: SignalAction
    ) -> float:
        adjustment = candle.range * self.factor
        if action == SignalAction.BUY:
            return base_price + adjustment
        if action == SignalAction.SELL:
            return max(base_price - adjustment, 0.0)
        return base_price
