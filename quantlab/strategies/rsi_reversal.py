"""
RSI Reversal strategy.

Buys oversold markets and sells overbought ones.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal
from quantlab.infrastructure.data.technical_indicators import calculate_rsi

from .base import StrategyConfig


@dataclass(frozen=True)
class RsiReversalConfig(StrategyConfig):
    """RSI window and the oversold/overbought levels."""

    rsi_period: int = 14
    buy_threshold: float = 30.0
    sell_threshold: float = 70.0

    def __post_init__(self) -> None:
        self._validate_periods("rsi_period")
        if not 0 <= self.buy_threshold < self.sell_threshold <= 100:
            raise ConfigurationError(
                f"RSI thresholds must satisfy 0 <= buy < sell <= 100, "
                f"got {self.buy_threshold}/{self.sell_threshold}"
            )


class RsiReversalStrategy(IStrategy):
    """BUY when RSI drops below buy_threshold, SELL when it rises above sell_threshold."""

    name = "RSI Reversal"

    def __init__(self, config: RsiReversalConfig | None = None):
        self.config = config or RsiReversalConfig()

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> "RsiReversalStrategy":
        return cls(RsiReversalConfig.from_params(params))

    def analyze(self, history: Sequence[Candle]) -> Signal:
        if not history:
            return Signal.hold(None, "No data")

        candle = history[-1]
        rsi = calculate_rsi([c.close for c in history], self.config.rsi_period)[-1]
        if rsi is None:
            return Signal.hold(candle, "Insufficient data for RSI")

        if rsi < self.config.buy_threshold:
            return Signal.from_candle(SignalAction.BUY, candle, f"RSI {rsi:.2f} oversold")
        if rsi > self.config.sell_threshold:
            return Signal.from_candle(SignalAction.SELL, candle, f"RSI {rsi:.2f} overbought")
        return Signal.hold(candle, f"RSI {rsi:.2f} neutral")
