"""
Buy & Hold strategy.
"""

from collections.abc import Sequence

from quantlab.core.enums import SignalAction
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal


class BuyAndHoldStrategy(IStrategy):
    """Requests a BUY on every candle.

    The ledger turns repeated BUYs into a single entry once cash is spent,
    so the strategy buys on the first candle and holds to the end.
    """

    name = "Buy & Hold"

    def analyze(self, history: Sequence[Candle]) -> Signal:
        if not history:
            return Signal.hold(None, "No data")
        return Signal.from_candle(SignalAction.BUY, history[-1], "Buy and hold")
