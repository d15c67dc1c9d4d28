"""
Unit tests for RiskManager.
"""

from datetime import datetime

import pytest

from quantlab.backtesting import RiskManager
from quantlab.core.enums import ExitReason, SignalAction
from quantlab.core.models.candle import Candle
from quantlab.core.models.position import Position
from quantlab.core.models.risk_config import RiskConfig
from quantlab.core.models.trade import Trade

NOW = datetime(2024, 1, 10, 12, 0)


def make_candle(high: float, low: float, close: float) -> Candle:
    return Candle(time=NOW, open=close, high=high, low=low, close=close, volume=100.0)


def sell_trade(timestamp: datetime, realized_pnl: float) -> Trade:
    return Trade(
        timestamp=timestamp,
        symbol="AAPL",
        action=SignalAction.SELL,
        price=90.0,
        quantity=10,
        fee=5.0,
        total_value=895.0,
        realized_pnl=realized_pnl,
    )


class TestRiskManagerSizingAndStops:
    """Position sizing and stop calculus."""

    @pytest.fixture
    def risk_manager(self) -> RiskManager:
        return RiskManager(
            RiskConfig(risk_per_trade_pct=0.01, max_drawdown_pct=0.1, atr_multiplier=2.0)
        )

    def test_should_size_position_by_risk_unit(self, risk_manager: RiskManager) -> None:
        """Test equity 10000, 1% risk, entry 100, stop 95 gives 20 units."""
        assert risk_manager.calculate_position_size(10000, 100, 95) == 20

    def test_should_return_zero_size_when_stop_equals_entry(
        self, risk_manager: RiskManager
    ) -> None:
        """Test the zero risk-per-share guard."""
        assert risk_manager.calculate_position_size(10000, 100, 100) == 0

    def test_should_floor_fractional_sizes(self, risk_manager: RiskManager) -> None:
        """Test that sizes are whole units."""
        assert risk_manager.calculate_position_size(10000, 100, 97) == 33

    def test_should_place_atr_stop_on_both_sides(self, risk_manager: RiskManager) -> None:
        """Test long stops below and short stops above entry."""
        assert risk_manager.calculate_atr_stop(100, 2, SignalAction.BUY) == 96
        assert risk_manager.calculate_atr_stop(100, 2, SignalAction.SELL) == 104

    def test_should_ratchet_trailing_stop(self, risk_manager: RiskManager) -> None:
        """Test that trailing stops tighten and never loosen."""
        assert risk_manager.update_trailing_stop(90, 100, 95, 2, SignalAction.BUY) == 96
        assert risk_manager.update_trailing_stop(96, 98, 92, 2, SignalAction.BUY) == 96
        assert risk_manager.update_trailing_stop(110, 105, 100, 2, SignalAction.SELL) == 104
        assert risk_manager.update_trailing_stop(104, 108, 102, 2, SignalAction.SELL) == 104

    def test_should_leave_stop_when_trailing_disabled(self) -> None:
        """Test that trailing can be switched off."""
        risk_manager = RiskManager(RiskConfig(trailing_stop=False))

        assert risk_manager.update_trailing_stop(90, 150, 140, 2, SignalAction.BUY) == 90


class TestRiskManagerGuards:
    """Drawdown, exits and admission guards."""

    def test_should_not_breach_exactly_at_threshold(self) -> None:
        """Test that exactly -10% is not a breach but -11% is."""
        risk_manager = RiskManager(RiskConfig(max_drawdown_pct=0.1))

        assert risk_manager.check_drawdown(9500, 10000) is False
        assert risk_manager.check_drawdown(9000, 10000) is False
        assert risk_manager.check_drawdown(8900, 10000) is True

    def test_should_not_breach_without_high_water_mark(self) -> None:
        """Test that a zero mark never breaches."""
        assert RiskManager().check_drawdown(0, 0) is False

    def test_should_detect_stop_loss_hits(self) -> None:
        """Test long stops on the low and short stops on the high."""
        risk_manager = RiskManager()
        long_position = Position("AAPL", 10, 100, stop_loss=95)
        short_position = Position("AAPL", -10, 100, stop_loss=105)

        assert risk_manager.check_exits(make_candle(97, 94, 95), long_position) == (
            ExitReason.STOP_LOSS
        )
        assert risk_manager.check_exits(make_candle(106, 99, 105), short_position) == (
            ExitReason.STOP_LOSS
        )

    def test_should_detect_take_profit_hits(self) -> None:
        """Test long targets on the high and short targets on the low."""
        risk_manager = RiskManager()
        long_position = Position("AAPL", 10, 100, take_profit=110)
        short_position = Position("AAPL", -10, 100, take_profit=90)

        assert risk_manager.check_exits(make_candle(112, 104, 108), long_position) == (
            ExitReason.TAKE_PROFIT
        )
        assert risk_manager.check_exits(make_candle(98, 88, 92), short_position) == (
            ExitReason.TAKE_PROFIT
        )

    def test_should_prefer_stop_loss_when_bar_spans_both_levels(self) -> None:
        """Test the stop-first tie-break on a gap through stop and target."""
        position = Position("AAPL", 10, 100, stop_loss=95, take_profit=110)

        assert RiskManager().check_exits(make_candle(115, 90, 100), position) == (
            ExitReason.STOP_LOSS
        )

    def test_should_not_exit_inside_levels(self) -> None:
        """Test that a quiet bar triggers nothing."""
        position = Position("AAPL", 10, 100, stop_loss=95, take_profit=110)

        assert RiskManager().check_exits(make_candle(105, 96, 100), position) is None

    def test_should_detect_trending_and_choppy_markets(self, candle_factory) -> None:
        """Test the ADX regime filter."""
        risk_manager = RiskManager(RiskConfig(adx_threshold=25, adx_period=14))
        trending = candle_factory([(102 + i, 99 + i, 101 + i) for i in range(40)])
        choppy = candle_factory([(101, 99, 100)] * 40)

        assert risk_manager.is_market_trending(trending) is True
        assert risk_manager.is_market_trending(choppy) is False

    def test_should_fail_open_during_warmup(self, candle_factory) -> None:
        """Test that too little history counts as trending."""
        risk_manager = RiskManager(RiskConfig(adx_threshold=50, adx_period=14))

        assert risk_manager.is_market_trending(candle_factory([(101, 99, 100)] * 20)) is True

    def test_should_detect_daily_loss_limit(self) -> None:
        """Test that only today's realized PnL counts against the limit."""
        risk_manager = RiskManager(RiskConfig(daily_loss_limit_pct=0.02))
        today = datetime(2024, 1, 10)
        ok = [sell_trade(datetime(2024, 1, 10, 10), -150)]
        breach = [*ok, sell_trade(datetime(2024, 1, 10, 14), -100)]
        yesterday = [sell_trade(datetime(2024, 1, 9, 10), -1000)]

        assert risk_manager.check_daily_loss(ok, 10000, today) is False
        assert risk_manager.check_daily_loss(breach, 10000, today) is True
        assert risk_manager.check_daily_loss(yesterday, 10000, today) is False

    def test_should_ignore_daily_loss_without_limit(self) -> None:
        """Test that the guard is disabled by default."""
        trades = [sell_trade(NOW, -5000)]

        assert RiskManager().check_daily_loss(trades, 10000, NOW) is False

    def test_should_detect_correlation_breach(self) -> None:
        """Test positive correlation breaches and negative correlation passes."""
        risk_manager = RiskManager(RiskConfig(max_correlation=0.8))
        candidate = [0.01, 0.02, 0.03, 0.04, 0.05]

        assert risk_manager.check_correlation(
            candidate, {"AAPL": [0.011, 0.021, 0.031, 0.041, 0.051]}.values()
        )
        assert not risk_manager.check_correlation(
            candidate, [[0.05, 0.04, 0.03, 0.02, 0.01]]
        )

    def test_should_compute_bollinger_take_profit(self, candle_factory) -> None:
        """Test upper band for longs, lower band for shorts, None on short history."""
        risk_manager = RiskManager()
        candles = candle_factory([(12 + i, 8 + i, 10 + i) for i in range(20)])

        assert risk_manager.calculate_bollinger_take_profit(
            candles, SignalAction.BUY
        ) == pytest.approx(31.03, abs=0.01)
        assert risk_manager.calculate_bollinger_take_profit(
            candles, SignalAction.SELL
        ) == pytest.approx(7.97, abs=0.01)
        assert risk_manager.calculate_bollinger_take_profit(candles[:19], SignalAction.BUY) is None
