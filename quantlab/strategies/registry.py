"""
Strategy registry.

Maps class names and display names to strategy classes so the
optimization layer can build strategies from configuration.
"""

from collections.abc import Mapping
from typing import Any

from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.strategy import IStrategy

from .bollinger_reversion import BollingerReversionStrategy
from .buy_and_hold import BuyAndHoldStrategy
from .ema_adx import EmaAdxStrategy
from .rsi_reversal import RsiReversalStrategy
from .volatility_breakout import VolatilityBreakoutStrategy

_STRATEGY_CLASSES = (
    BuyAndHoldStrategy,
    RsiReversalStrategy,
    EmaAdxStrategy,
    VolatilityBreakoutStrategy,
    BollingerReversionStrategy,
)

STRATEGY_REGISTRY: dict[str, type[IStrategy]] = {
    **{cls.__name__: cls for cls in _STRATEGY_CLASSES},
    **{cls.name: cls for cls in _STRATEGY_CLASSES},
}


def available_strategies() -> list[str]:
    """Display names of registered strategies."""
    return [cls.name for cls in _STRATEGY_CLASSES]


def create_strategy(name: str, params: Mapping[str, Any] | None = None) -> IStrategy:
    """
    Build a strategy by class name or display name.

    Args:
        name: e.g. "RsiReversalStrategy" or "RSI Reversal"
        params: Strategy parameters; keys the strategy does not know are ignored

    Returns:
        Configured strategy instance

    Raises:
        ConfigurationError: If the name is not registered
    """
    strategy_class = STRATEGY_REGISTRY.get(name)
    if strategy_class is None:
        raise ConfigurationError(
            f"Unknown strategy '{name}'. Available: {', '.join(available_strategies())}"
        )
    return strategy_class.from_params(params)
