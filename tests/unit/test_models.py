"""
Unit tests for core domain models.
"""

from datetime import datetime

import pytest

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ConfigurationError, ValidationError
from quantlab.core.models.backtest import BacktestMetrics, BacktestResult, EquitySnapshot
from quantlab.core.models.candle import Candle
from quantlab.core.models.position import Position
from quantlab.core.models.risk_config import RiskConfig
from quantlab.core.models.signal import Signal
from quantlab.core.models.trade import Trade

NOW = datetime(2024, 1, 1, 9, 30)


class TestCandle:
    """Test suite for Candle."""

    def test_should_derive_typical_price_and_range(self) -> None:
        """Test derived bar values."""
        candle = Candle(NOW, open=100, high=110, low=90, close=105, volume=10)

        assert candle.typical_price == pytest.approx(101.6667, abs=1e-4)
        assert candle.range == 20

    def test_should_reject_inverted_range(self) -> None:
        """Test high below low."""
        with pytest.raises(ValidationError, match="below low"):
            Candle(NOW, open=100, high=90, low=110, close=100, volume=10)

    def test_should_reject_negative_volume(self) -> None:
        """Test negative volume."""
        with pytest.raises(ValidationError, match="Volume"):
            Candle(NOW, open=100, high=110, low=90, close=100, volume=-1)


class TestSignal:
    """Test suite for Signal."""

    def test_should_build_signal_from_candle(self) -> None:
        """Test close price and timestamp are taken from the candle."""
        candle = Candle(NOW, open=100, high=110, low=90, close=105, volume=10)

        signal = Signal.from_candle(SignalAction.BUY, candle, "entry")

        assert signal.price == 105
        assert signal.timestamp == NOW
        assert signal.quantity is None
        assert signal.is_actionable

    def test_should_build_hold_without_history(self) -> None:
        """Test HOLD for an empty history."""
        signal = Signal.hold(None, "No data")

        assert signal.action == SignalAction.HOLD
        assert signal.price == 0.0
        assert not signal.is_actionable

    def test_should_copy_with_updates(self) -> None:
        """Test enrichment returns a new signal."""
        signal = Signal(SignalAction.BUY, 100.0, NOW)

        enriched = signal.with_updates(quantity=5, stop_loss=95.0)

        assert enriched.quantity == 5
        assert enriched.stop_loss == 95.0
        assert signal.quantity is None

    def test_should_reject_invalid_signals(self) -> None:
        """Test plain strings and negative prices."""
        with pytest.raises(ValidationError, match="SignalAction"):
            Signal("BUY", 100.0, NOW)  # type: ignore[arg-type]
        with pytest.raises(ValidationError, match="non-negative"):
            Signal(SignalAction.BUY, -1.0, NOW)


class TestPosition:
    """Test suite for Position."""

    def test_should_report_long_position(self) -> None:
        """Test long direction and PnL."""
        position = Position("AAPL", 10, 100.0)

        assert position.is_long
        assert not position.is_short
        assert position.direction == SignalAction.BUY
        assert position.market_value(110.0) == 1100.0
        assert position.unrealized_pnl(110.0) == 100.0

    def test_should_report_short_position(self) -> None:
        """Test short direction and PnL."""
        position = Position("AAPL", -10, 100.0)

        assert position.is_short
        assert position.direction == SignalAction.SELL
        assert position.unrealized_pnl(90.0) == 100.0

    def test_should_reject_invalid_positions(self) -> None:
        """Test symbol and price validation."""
        with pytest.raises(ValidationError):
            Position("", 10, 100.0)
        with pytest.raises(ValidationError, match="Average price"):
            Position("AAPL", 10, -1.0)


class TestTrade:
    """Test suite for Trade."""

    def test_should_serialize_trade(self) -> None:
        """Test dictionary conversion."""
        trade = Trade(NOW, "AAPL", SignalAction.SELL, 110.0, 4, 1.0, 439.0, 38.6, "TAKE_PROFIT")

        data = trade.to_dict()

        assert data["timestamp"] == "2024-01-01T09:30:00"
        assert data["action"] == "SELL"
        assert data["realized_pnl"] == 38.6
        assert trade.is_closing
        assert trade.notional_value() == 440.0

    @pytest.mark.parametrize(
        ("action", "price", "quantity", "fee", "message"),
        [
            (SignalAction.HOLD, 100.0, 1, 0.0, "HOLD"),
            (SignalAction.BUY, 100.0, 0, 0.0, "Quantity"),
            (SignalAction.BUY, 0.0, 1, 0.0, "Price"),
            (SignalAction.BUY, 100.0, 1, -1.0, "Fee"),
        ],
    )
    def test_should_reject_invalid_trades(self, action, price, quantity, fee, message) -> None:
        """Test trade validation."""
        with pytest.raises(ValidationError, match=message):
            Trade(NOW, "AAPL", action, price, quantity, fee, 100.0)


class TestRiskConfig:
    """Test suite for RiskConfig."""

    def test_should_use_defaults(self) -> None:
        """Test default policy values."""
        config = RiskConfig()

        assert config.risk_per_trade_pct == 0.01
        assert config.max_drawdown_pct == 0.1
        assert config.atr_multiplier == 2.0
        assert config.atr_period == 14
        assert config.trailing_stop is True
        assert config.adx_threshold is None
        assert config.volume_limit_pct is None

    @pytest.mark.parametrize(
        "overrides",
        [
            {"risk_per_trade_pct": 0},
            {"max_drawdown_pct": 1.5},
            {"atr_multiplier": -1},
            {"atr_period": 0},
            {"daily_loss_limit_pct": -0.1},
            {"max_correlation": 2},
        ],
    )
    def test_should_reject_invalid_values(self, overrides: dict) -> None:
        """Test validation errors surface as ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Invalid risk configuration"):
            RiskConfig(**overrides)

    def test_should_apply_overrides(self) -> None:
        """Test that overrides produce a new validated config."""
        base = RiskConfig()

        config = base.with_overrides(atr_multiplier=3.0, adx_threshold=20)

        assert config.atr_multiplier == 3.0
        assert config.adx_threshold == 20
        assert base.atr_multiplier == 2.0

    def test_should_reject_unknown_overrides(self) -> None:
        """Test unknown field names."""
        with pytest.raises(ConfigurationError, match="Unknown risk configuration fields"):
            RiskConfig().with_overrides(leverage=5)

    def test_should_round_trip_through_dict(self) -> None:
        """Test from_dict ignores foreign keys."""
        config = RiskConfig(max_correlation=0.7)

        restored = RiskConfig.from_dict({**config.to_dict(), "comment": "ignored"})

        assert restored == config


class TestBacktestModels:
    """Test suite for metrics and results."""

    def test_should_read_metrics_by_name(self) -> None:
        """Test name-based metric access."""
        metrics = BacktestMetrics(total_return_pct=20.0, sharpe_ratio=1.5)

        assert metrics["total_return_pct"] == 20.0
        assert metrics.get("sharpe_ratio") == 1.5
        assert metrics.get("unknown", -1.0) == -1.0

    def test_should_reject_unknown_metric_names(self) -> None:
        """Test that a typo in a metric name is a configuration error."""
        with pytest.raises(ConfigurationError, match="Unknown metric"):
            BacktestMetrics()["profit"]

    def test_should_summarize_result(self) -> None:
        """Test profitability and serialization."""
        result = BacktestResult(
            initial_capital=10000.0,
            final_capital=12000.0,
            metrics=BacktestMetrics(total_return_pct=20.0, trade_count=1),
            equity_curve=[EquitySnapshot(NOW, cash=0.0, equity=12000.0)],
        )

        assert result.is_profitable()
        assert result.performance_summary()["total_return_pct"] == 20.0
        data = result.to_dict()
        assert data["equity_curve"][0]["timestamp"] == "2024-01-01T09:30:00"
        assert data["metrics"]["trade_count"] == 1
