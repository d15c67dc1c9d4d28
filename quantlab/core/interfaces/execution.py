"""
Execution model interfaces.
"""

from abc import ABC, abstractmethod

from quantlab.core.enums import SignalAction
from quantlab.core.models.candle import Candle


class ISlippageModel(ABC):
    """Abstract interface for execution price adjustment."""

    @abstractmethod
    def price_after_slippage(
        self, base_price: float, quantity: float, candle: Candle, action: SignalAction
    ) -> float:
        """Return the achievable price for an order at base_price."""
        pass
