"""
Performance Analyzer.

Derives risk/return statistics from an equity curve and a trade ledger.
Degenerate inputs (no variance, too few observations, zero capital)
produce 0 rather than infinities or NaN.
"""

import math
from collections.abc import Sequence

from quantlab.core.constants import STDDEV_EPSILON, TRADING_DAYS_PER_YEAR
from quantlab.core.enums import SignalAction
from quantlab.core.models.backtest import BacktestMetrics, EquitySnapshot
from quantlab.core.models.trade import Trade
from quantlab.core.utils.statistics import (
    calculate_mean,
    calculate_returns,
    calculate_standard_deviation,
)


class PerformanceAnalyzer:
    """Static metric calculations over one run's output."""

    @staticmethod
    def calculate_metrics(
        initial_capital: float,
        equity_curve: Sequence[EquitySnapshot],
        trades: Sequence[Trade],
    ) -> BacktestMetrics:
        """
        Compute every metric of a run.

        Args:
            initial_capital: Cash at the start of the run
            equity_curve: One snapshot per simulated step
            trades: Full trade ledger

        Returns:
            BacktestMetrics for the run
        """
        equities = [snapshot.equity for snapshot in equity_curve]
        final_equity = equities[-1] if equities else initial_capital

        total_return_pct = PerformanceAnalyzer.total_return_pct(initial_capital, final_equity)
        max_drawdown_pct = PerformanceAnalyzer.max_drawdown_pct(equities)
        returns = calculate_returns(equities)
        closed_pnls = PerformanceAnalyzer.closed_trade_pnls(trades)

        return BacktestMetrics(
            total_return_pct=total_return_pct,
            max_drawdown_pct=max_drawdown_pct,
            sharpe_ratio=PerformanceAnalyzer.sharpe_ratio(returns),
            sortino_ratio=PerformanceAnalyzer.sortino_ratio(returns),
            calmar_ratio=PerformanceAnalyzer.calmar_ratio(
                total_return_pct, max_drawdown_pct, len(equities)
            ),
            expectancy=calculate_mean(closed_pnls),
            sqn=PerformanceAnalyzer.system_quality_number(closed_pnls),
            win_rate_pct=PerformanceAnalyzer.win_rate_pct(closed_pnls),
            trade_count=len(trades),
        )

    @staticmethod
    def total_return_pct(initial_capital: float, final_equity: float) -> float:
        if initial_capital == 0:
            return 0.0
        return (final_equity - initial_capital) / initial_capital * 100

    @staticmethod
    def max_drawdown_pct(equities: Sequence[float]) -> float:
        """Largest peak-to-trough decline in percent."""
        peak = -math.inf
        worst = 0.0
        for equity in equities:
            peak = max(peak, equity)
            if peak > 0:
                worst = min(worst, (equity - peak) / peak)
        return abs(worst) * 100

    @staticmethod
    def sharpe_ratio(returns: Sequence[float]) -> float:
        if len(returns) < 2:
            return 0.0
        std = calculate_standard_deviation(returns)
        if std < STDDEV_EPSILON:
            return 0.0
        return calculate_mean(returns) / std * math.sqrt(TRADING_DAYS_PER_YEAR)

    @staticmethod
    def sortino_ratio(returns: Sequence[float]) -> float:
        """Mean return over the deviation of min(r, 0), annualized."""
        if len(returns) < 2:
            return 0.0
        downside = calculate_standard_deviation([min(r, 0.0) for r in returns])
        if downside < STDDEV_EPSILON:
            return 0.0
        return calculate_mean(returns) / downside * math.sqrt(TRADING_DAYS_PER_YEAR)

    @staticmethod
    def calmar_ratio(total_return_pct: float, max_drawdown_pct: float, curve_length: int) -> float:
        """Annualized return over max drawdown.

        Total return is compounded over curve_length / 252 years.
        """
        if max_drawdown_pct == 0 or curve_length == 0:
            return 0.0
        growth = 1 + total_return_pct / 100
        if growth <= 0:
            annualized_pct = -100.0
        else:
            annualized_pct = (growth ** (TRADING_DAYS_PER_YEAR / curve_length) - 1) * 100
        return annualized_pct / max_drawdown_pct

    @staticmethod
    def closed_trade_pnls(trades: Sequence[Trade]) -> list[float]:
        """Realized PnL of SELL trades that carry one."""
        return [
            trade.realized_pnl
            for trade in trades
            if trade.action == SignalAction.SELL and trade.realized_pnl is not None
        ]

    @staticmethod
    def system_quality_number(pnls: Sequence[float]) -> float:
        if len(pnls) < 2:
            return 0.0
        std = calculate_standard_deviation(pnls)
        if std < STDDEV_EPSILON:
            return 0.0
        return math.sqrt(len(pnls)) * calculate_mean(pnls) / std

    @staticmethod
    def win_rate_pct(pnls: Sequence[float]) -> float:
        if not pnls:
            return 0.0
        return sum(1 for pnl in pnls if pnl > 0) / len(pnls) * 100
