"""
Risk Manager.

Stateless risk calculus for one resolved RiskConfig: position sizing,
ATR stops, trailing stops, exit detection and the boolean admission
guards consulted by the backtester before a new entry.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import datetime

from quantlab.core.constants import (
    BOLLINGER_PERIOD,
    BOLLINGER_STD_MULTIPLIER,
    DEFAULT_ADX_THRESHOLD,
    DEFAULT_MAX_CORRELATION,
)
from quantlab.core.enums import ExitReason, SignalAction
from quantlab.core.models.candle import Candle
from quantlab.core.models.position import Position
from quantlab.core.models.risk_config import RiskConfig
from quantlab.core.models.trade import Trade
from quantlab.core.types.financial import ZERO
from quantlab.core.utils.statistics import calculate_correlation
from quantlab.infrastructure.data.technical_indicators import (
    calculate_adx,
    calculate_bollinger_bands,
)


class RiskManager:
    """Pure functions of a RiskConfig and market data.

    Examples:
        >>> RiskManager(RiskConfig(risk_per_trade_pct=0.01)).calculate_position_size(10000, 100, 95)
        20
    """

    def __init__(self, config: RiskConfig | None = None):
        self.config = config or RiskConfig()

    def calculate_position_size(self, equity: float, entry_price: float, stop_price: float) -> int:
        """Risk-unit sizing: floor(equity * risk / |entry - stop|).

        Args:
            equity: Current account equity
            entry_price: Expected fill price
            stop_price: Protective stop price

        Returns:
            Whole number of units, 0 when the stop sits on the entry
        """
        risk_per_share = abs(entry_price - stop_price)
        if risk_per_share == ZERO:
            return 0
        size = math.floor(equity * self.config.risk_per_trade_pct / risk_per_share)
        return max(size, 0)

    def calculate_atr_stop(self, entry_price: float, atr: float, action: SignalAction) -> float:
        """Stop one ATR multiple away from entry, below for longs and above for shorts."""
        distance = atr * self.config.atr_multiplier
        if action == SignalAction.SELL:
            return entry_price + distance
        return entry_price - distance

    def update_trailing_stop(
        self,
        current_stop: float,
        high: float,
        low: float,
        atr: float,
        action: SignalAction,
    ) -> float:
        """Ratchet a stop toward price; it never loosens.

        Args:
            current_stop: Stop currently attached to the position
            high: High of the latest candle
            low: Low of the latest candle
            atr: ATR at the latest candle
            action: Direction of the position (BUY long, SELL short)

        Returns:
            The new stop, or current_stop when trailing is disabled
        """
        if not self.config.trailing_stop:
            return current_stop

        distance = atr * self.config.atr_multiplier
        if action == SignalAction.SELL:
            return min(current_stop, low + distance)
        return max(current_stop, high - distance)

    def check_drawdown(self, current_equity: float, high_water_mark: float) -> bool:
        """True when equity has fallen strictly more than max_drawdown_pct below the mark."""
        if high_water_mark <= ZERO:
            return False
        drawdown = (current_equity - high_water_mark) / high_water_mark
        return drawdown < -self.config.max_drawdown_pct

    def check_exits(self, candle: Candle, position: Position) -> ExitReason | None:
        """Detect a stop or target hit within the candle's range.

        The stop is evaluated before the target, so a bar that trades
        through both levels is treated as a stop-loss.
        """
        if position.quantity == ZERO:
            return None

        if position.is_long:
            if position.stop_loss is not None and candle.low <= position.stop_loss:
                return ExitReason.STOP_LOSS
            if position.take_profit is not None and candle.high >= position.take_profit:
                return ExitReason.TAKE_PROFIT
        else:
            if position.stop_loss is not None and candle.high >= position.stop_loss:
                return ExitReason.STOP_LOSS
            if position.take_profit is not None and candle.low <= position.take_profit:
                return ExitReason.TAKE_PROFIT

        return None

    def is_market_trending(self, candles: Sequence[Candle]) -> bool:
        """Regime filter: ADX at or above the threshold.

        Fails open: with too little history to compute ADX the market is
        treated as trending.
        """
        threshold = (
            self.config.adx_threshold
            if self.config.adx_threshold is not None
            else DEFAULT_ADX_THRESHOLD
        )
        period = self.config.adx_period
        if len(candles) < period * 2:
            return True

        adx = calculate_adx(candles, period)[-1]
        if adx is None:
            return True
        return adx >= threshold

    def check_daily_loss(
        self, trades: Iterable[Trade], starting_equity: float, today: datetime
    ) -> bool:
        """True when today's realized PnL reaches the daily loss limit.

        Args:
            trades: Ledger entries (only realized PnL on today's date counts)
            starting_equity: Equity at the start of the day
            today: Timestamp of the current step

        Returns:
            True if realized / starting_equity <= -daily_loss_limit_pct
        """
        limit = self.config.daily_loss_limit_pct
        if limit is None or starting_equity <= ZERO:
            return False

        day = today.date()
        realized_today = sum(
            trade.realized_pnl
            for trade in trades
            if trade.realized_pnl is not None and trade.timestamp.date() == day
        )
        return realized_today / starting_equity <= -limit

    def check_correlation(
        self,
        candidate_returns: Sequence[float],
        existing_returns: Iterable[Sequence[float]],
    ) -> bool:
        """True when the candidate correlates above max_correlation with any open position."""
        limit = (
            self.config.max_correlation
            if self.config.max_correlation is not None
            else DEFAULT_MAX_CORRELATION
        )
        return any(
            calculate_correlation(candidate_returns, returns) > limit
            for returns in existing_returns
        )

    def calculate_bollinger_take_profit(
        self, candles: Sequence[Candle], action: SignalAction
    ) -> float | None:
        """Target at the opposite Bollinger band: upper for longs, lower for shorts."""
        if len(candles) < BOLLINGER_PERIOD:
            return None

        bands = calculate_bollinger_bands(
            [c.close for c in candles[-BOLLINGER_PERIOD:]],
            BOLLINGER_PERIOD,
            BOLLINGER_STD_MULTIPLIER,
        )
        if action == SignalAction.SELL:
            return bands.lower[-1]
        return bands.upper[-1]
