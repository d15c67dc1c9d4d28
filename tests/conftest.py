"""
Shared test fixtures.
"""

from collections.abc import Callable, Sequence
from datetime import datetime, timedelta

import pytest

from quantlab.core.enums import SignalAction
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.candle import Candle
from quantlab.core.models.signal import Signal

CandleRow = tuple[float, float, float] | tuple[float, float, float, float]


def build_candles(
    rows: Sequence[CandleRow],
    start: datetime = datetime(2023, 1, 1),
    step: timedelta = timedelta(days=1),
    volume: float = 1000.0,
) -> list[Candle]:
    """Candles from (high, low, close[, volume]) rows; open equals close."""
    candles = []
    for i, row in enumerate(rows):
        high, low, close = row[0], row[1], row[2]
        candles.append(
            Candle(
                time=start + step * i,
                open=close,
                high=high,
                low=low,
                close=close,
                volume=row[3] if len(row) > 3 else volume,
            )
        )
    return candles


@pytest.fixture
def candle_factory() -> Callable[..., list[Candle]]:
    """Factory building candles from (high, low, close[, volume]) rows."""
    return build_candles


@pytest.fixture
def flat_candles() -> Callable[..., list[Candle]]:
    """Factory building candles whose high, low and close equal the given prices."""

    def _build(prices: Sequence[float], **kwargs) -> list[Candle]:
        return build_candles([(p, p, p) for p in prices], **kwargs)

    return _build


class ScriptedStrategy(IStrategy):
    """Strategy driven by a callable of the visible history."""

    name = "Scripted"

    def __init__(self, decide: Callable[[Sequence[Candle]], SignalAction]):
        self.decide = decide
        self.seen: list[Sequence[Candle]] = []

    def analyze(self, history: Sequence[Candle]) -> Signal:
        self.seen.append(history)
        action = self.decide(history)
        if action == SignalAction.HOLD:
            return Signal.hold(history[-1])
        return Signal.from_candle(action, history[-1])


@pytest.fixture
def scripted_strategy() -> Callable[..., ScriptedStrategy]:
    """Factory building a strategy from a history -> SignalAction callable."""
    return ScriptedStrategy
