"""
Backtesting engine: orchestration, risk calculus, metrics and slippage.
"""

from .backtester import Backtester
from .performance import PerformanceAnalyzer
from .risk_manager import RiskManager
from .slippage import FixedPercentageSlippage, VolatilitySlippage, ZeroSlippage

__all__ = [
    "Backtester",
    "FixedPercentageSlippage",
    "PerformanceAnalyzer",
    "RiskManager",
    "VolatilitySlippage",
    "ZeroSlippage",
]
