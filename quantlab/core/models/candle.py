"""
Candle domain model.
"""

from dataclasses import dataclass
from datetime import datetime

from quantlab.core.exceptions.backtest import ValidationError


@dataclass(frozen=True, slots=True)
class Candle:
    """One OHLCV bar for a fixed time interval.

    Candles are immutable and ordered by time within a series.
    """

    time: datetime
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        """Validate bar data after initialization."""
        if self.high < self.low:
            raise ValidationError(f"Candle high {self.high} is below low {self.low} at {self.time}")
        if self.volume < 0:
            raise ValidationError(f"Volume must be non-negative, got {self.volume}")

    @property
    def typical_price(self) -> float:
        """(high + low + close) / 3."""
        return (self.high + self.low + self.close) / 3

    @property
    def range(self) -> float:
        """High-low range of the bar."""
        return self.high - self.low
