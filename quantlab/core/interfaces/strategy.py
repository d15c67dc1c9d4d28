"""
Strategy interface definition.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Self

from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal


class IStrategy(ABC):
    """Abstract interface for trading strategies.

    A strategy is a deterministic decision function: given the causally
    visible history of one asset it returns a Signal for the last candle.
    """

    name: str = "Strategy"

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> Self:
        """Build the strategy from a parameter mapping (parameterless by default)."""
        return cls()

    @abstractmethod
    def analyze(self, history: Sequence[Candle]) -> Signal:
        """Decide on the latest candle of history (candles up to and including now)."""
        pass
