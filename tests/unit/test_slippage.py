"""
Unit tests for slippage models.
"""

from datetime import datetime

import pytest

from quantlab.backtesting import FixedPercentageSlippage, VolatilitySlippage, ZeroSlippage
from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ValidationError
from quantlab.core.models.candle import Candle


@pytest.fixture
def candle() -> Candle:
    return Candle(datetime(2024, 1, 1), open=100, high=110, low=90, close=100, volume=1000)


class TestSlippageModels:
    """Test suite for execution price models."""

    def test_zero_slippage_should_return_base_price(self, candle: Candle) -> None:
        """Test the identity model."""
        assert ZeroSlippage().price_after_slippage(100.0, 1, candle, SignalAction.BUY) == 100.0

    @pytest.mark.parametrize(
        ("action", "expected"),
        [(SignalAction.BUY, 101.0), (SignalAction.SELL, 99.0), (SignalAction.HOLD, 100.0)],
    )
    def test_fixed_percentage_should_move_price_against_order(
        self, candle: Candle, action: SignalAction, expected: float
    ) -> None:
        """Test buys fill higher and sells lower."""
        model = FixedPercentageSlippage(0.01)

        assert model.price_after_slippage(100.0, 1, candle, action) == pytest.approx(expected)

    @pytest.mark.parametrize(
        ("action", "expected"),
        [(SignalAction.BUY, 102.0), (SignalAction.SELL, 98.0), (SignalAction.HOLD, 100.0)],
    )
    def test_volatility_slippage_should_scale_with_range(
        self, candle: Candle, action: SignalAction, expected: float
    ) -> None:
        """Test a tenth of a 20-point range."""
        model = VolatilitySlippage(0.1)

        assert model.price_after_slippage(100.0, 1, candle, action) == pytest.approx(expected)

    def test_volatility_slippage_should_not_go_negative(self, candle: Candle) -> None:
        """Test sell prices are clamped at zero."""
        model = VolatilitySlippage(1.0)

        assert model.price_after_slippage(5.0, 1, candle, SignalAction.SELL) == 0.0

    @pytest.mark.parametrize("model_class", [FixedPercentageSlippage, VolatilitySlippage])
    def test_should_reject_negative_parameters(self, model_class: type) -> None:
        """Test parameter validation."""
        with pytest.raises(ValidationError):
            model_class(-0.1)
