"""
EMA-ADX trend follower.

Enters on a fast/slow EMA crossover when ADX confirms a trending market
and exits on the opposite crossover.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal
from quantlab.infrastructure.data.technical_indicators import calculate_adx, calculate_ema

from .base import StrategyConfig


@dataclass(frozen=True)
class EmaAdxConfig(StrategyConfig):
    fast_period: int = 9
    slow_period: int = 21
    adx_period: int = 14
    adx_threshold: float = 25.0

    def __post_init__(self) -> None:
        self._validate_periods("fast_period", "slow_period", "adx_period")
        if self.fast_period >= self.slow_period:
            raise ConfigurationError(
                f"fast_period ({self.fast_period}) must be below slow_period ({self.slow_period})"
            )


class EmaAdxStrategy(IStrategy):
    """Trend following with an EMA crossover gated by ADX strength."""

    name = "EMA-ADX Trend Follower"

    def __init__(self, config: EmaAdxConfig | None = None):
        self.config = config or EmaAdxConfig()

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> "EmaAdxStrategy":
        return cls(EmaAdxConfig.from_params(params))

    def analyze(self, history: Sequence[Candle]) -> Signal:
        config = self.config
        if not history:
            return Signal.hold(None, "No data")

        candle = history[-1]
        if len(history) < config.slow_period + config.adx_period:
            return Signal.hold(candle, "Insufficient data")

        closes = [c.close for c in history]
        fast = calculate_ema(closes, config.fast_period)
        slow = calculate_ema(closes, config.slow_period)
        adx = calculate_adx(history, config.adx_period)[-1]
        if None in (fast[-1], fast[-2], slow[-1], slow[-2]) or adx is None:
            return Signal.hold(candle, "Indicators warming up")

        crossed_up = fast[-2] <= slow[-2] and fast[-1] > slow[-1]
        crossed_down = fast[-2] >= slow[-2] and fast[-1] < slow[-1]

        if crossed_up and adx > config.adx_threshold:
            return Signal.from_candle(
                SignalAction.BUY, candle, f"Bullish EMA cross with ADX {adx:.2f}"
            )
        if crossed_down:
            return Signal.from_candle(SignalAction.SELL, candle, "Bearish EMA cross")
        return Signal.hold(candle)
