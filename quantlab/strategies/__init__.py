"""
Trading strategies.
"""

from .bollinger_reversion import BollingerReversionConfig, BollingerReversionStrategy
from .buy_and_hold import BuyAndHoldStrategy
from .ema_adx import EmaAdxConfig, EmaAdxStrategy
from .registry import STRATEGY_REGISTRY, available_strategies, create_strategy
from .rsi_reversal import RsiReversalConfig, RsiReversalStrategy
from .volatility_breakout import VolatilityBreakoutConfig, VolatilityBreakoutStrategy

__all__ = [
    "STRATEGY_REGISTRY",
    "BollingerReversionConfig",
    "BollingerReversionStrategy",
    "BuyAndHoldStrategy",
    "EmaAdxConfig",
    "EmaAdxStrategy",
    "RsiReversalConfig",
    "RsiReversalStrategy",
    "VolatilityBreakoutConfig",
    "VolatilityBreakoutStrategy",
    "available_strategies",
    "create_strategy",
]
