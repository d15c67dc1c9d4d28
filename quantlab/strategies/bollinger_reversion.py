"""
Bollinger mean reversion strategy with a Money Flow Index filter.
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
    calculate_bollinger_bands,
    calculate_mfi,
)

from .base import StrategyConfig


@dataclass(frozen=True)
class BollingerReversionConfig(StrategyConfig):
    bb_period: int = 20
    bb_std_dev: float = 2.0
    mfi_period: int = 14
    mfi_oversold: float = 20.0
    mfi_overbought: float = 80.0

    def __post_init__(self) -> None:
        self._validate_periods("bb_period", "mfi_period")
        if self.bb_std_dev <= 0:
            raise ConfigurationError(f"bb_std_dev must be positive, got {self.bb_std_dev}")
        if not 0 <= self.mfi_oversold < self.mfi_overbought <= 100:
            raise ConfigurationError(
                f"MFI levels must satisfy 0 <= oversold < overbought <= 100, "
                f"got {self.mfi_oversold}/{self.mfi_overbought}"
            )


class BollingerReversionStrategy(IStrategy):
    """
    Fades moves outside the Bollinger Bands.

    BUY when the close is below the lower band while MFI is oversold.
    SELL when the close is above the upper band, or when MFI alone is
    overbought.
    """

    name = "Bollinger Mean Reversion (Vol)"

    def __init__(self, config: BollingerReversionConfig | None = None):
        self.config = config or BollingerReversionConfig()

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> "BollingerReversionStrategy":
        return cls(BollingerReversionConfig.from_params(params))

    def analyze(self, history: Sequence[Candle]) -> Signal:
        config = self.config
        if not history:
            return Signal.hold(None, "No data")

        candle = history[-1]
        bands = calculate_bollinger_bands(
            [c.close for c in history], config.bb_period, config.bb_std_dev
        )
        mfi = calculate_mfi(history, config.mfi_period)[-1]
        upper, lower = bands.upper[-1], bands.lower[-1]
        if upper is None or lower is None or mfi is None:
            return Signal.hold(candle, "Insufficient data")

        if candle.close < lower and mfi < config.mfi_oversold:
            return Signal.from_candle(
                SignalAction.BUY, candle, f"Close below lower band, MFI {mfi:.2f}"
            )
        if candle.close > upper:
            return Signal.from_candle(SignalAction.SELL, candle, "Close above upper band")
        if mfi > config.mfi_overbought:
            return Signal.from_candle(SignalAction.SELL, candle, f"MFI {mfi:.2f} overbought")
        return Signal.hold(candle)
