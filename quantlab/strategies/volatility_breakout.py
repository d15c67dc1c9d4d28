"""
Volatility breakout strategy.

Buys a close above the previous Donchian high on expanding volume and
sells a close below the previous Donchian low.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal
from quantlab.infrastructure.data.technical_indicators import (
    calculate_donchian_channels,
    calculate_sma,
)

from .base import StrategyConfig


@dataclass(frozen=True)
class VolatilityBreakoutConfig(StrategyConfig):
    donchian_period: int = 20
    volume_sma_period: int = 20
    volume_multiplier: float = 1.5

    def __post_init__(self) -> None:
        self._validate_periods("donchian_period", "volume_sma_period")
        if self.volume_multiplier <= 0:
            raise ConfigurationError(
                f"volume_multiplier must be positive, got {self.volume_multiplier}"
            )


class VolatilityBreakoutStrategy(IStrategy):
    """Donchian channel breakout confirmed by volume."""

    name = "Volatility Breakout"

    def __init__(self, config: VolatilityBreakoutConfig | None = None):
        self.config = config or VolatilityBreakoutConfig()

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> "VolatilityBreakoutStrategy":
        return cls(VolatilityBreakoutConfig.from_params(params))

    def analyze(self, history: Sequence[Candle]) -> Signal:
        config = self.config
        if not history:
            return Signal.hold(None, "No data")

        candle = history[-1]
        if len(history) < max(config.donchian_period, config.volume_sma_period) + 1:
            return Signal.hold(candle, "Insufficient data")

        # Compare against the channel and volume average before this bar
        channels = calculate_donchian_channels(history, config.donchian_period)
        volume_sma = calculate_sma([c.volume for c in history], config.volume_sma_period)
        previous_upper = channels.upper[-2]
        previous_lower = channels.lower[-2]
        previous_volume_sma = volume_sma[-2]
        if previous_upper is None or previous_lower is None or previous_volume_sma is None:
            return Signal.hold(candle, "Indicators warming up")

        if (
            candle.close > previous_upper
            and candle.volume > previous_volume_sma * config.volume_multiplier
        ):
            return Signal.from_candle(
                SignalAction.BUY, candle, f"Breakout above {previous_upper:.2f} on volume"
            )
        if candle.close < previous_lower:
            return Signal.from_candle(
                SignalAction.SELL, candle, f"Breakdown below {previous_lower:.2f}"
            )
        return Signal.hold(candle)
