"""
Backtest result models.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from typing import Any

from quantlab.core.exceptions.backtest import ConfigurationError

from .trade import Trade


@dataclass(frozen=True)
class EquitySnapshot:
    """Account value at the end of one simulated step."""

    timestamp: datetime
    cash: float
    equity: float

    def to_dict(self) -> dict[str, Any]:
        """Convert snapshot to dictionary."""
        return {"timestamp": self.timestamp.isoformat(), "cash": self.cash, "equity": self.equity}


@dataclass(frozen=True)
class BacktestMetrics:
    """Risk/return statistics of one run.

    Metrics can be read by name, which is how optimizers rank runs:

        >>> BacktestMetrics(total_return_pct=20.0)["total_return_pct"]
        20.0
    """

    total_return_pct: float = 0.0
    max_drawdown_pct: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    expectancy: float = 0.0
    sqn: float = 0.0
    win_rate_pct: float = 0.0
    trade_count: int = 0

    @classmethod
    def metric_names(cls) -> tuple[str, ...]:
        """Names accepted by __getitem__."""
        return tuple(f.name for f in fields(cls))

    def __getitem__(self, name: str) -> float:
        if name not in self.metric_names():
            raise ConfigurationError(
                f"Unknown metric '{name}'. Available: {', '.join(self.metric_names())}"
            )
        return getattr(self, name)

    def get(self, name: str, default: float = 0.0) -> float:
        """Metric by name, default when the name is unknown."""
        if name not in self.metric_names():
            return default
        return getattr(self, name)

    def to_dict(self) -> dict[str, float]:
        """Convert metrics to dictionary."""
        return asdict(self)


@dataclass
class BacktestResult:
    """Terminal output of one simulation."""

    initial_capital: float
    final_capital: float
    metrics: BacktestMetrics
    trades: list[Trade] = field(default_factory=list)
    equity_curve: list[EquitySnapshot] = field(default_factory=list)
    halted: bool = False

    def is_profitable(self) -> bool:
        """Check if the backtest was profitable."""
        return self.final_capital > self.initial_capital

    def performance_summary(self) -> dict[str, Any]:
        """Get a summary of key performance metrics."""
        return {
            "initial_capital": self.initial_capital,
            "final_capital": self.final_capital,
            "total_return_pct": self.metrics.total_return_pct,
            "max_drawdown_pct": self.metrics.max_drawdown_pct,
            "trade_count": self.metrics.trade_count,
            "halted": self.halted,
        }

    def to_dict(self) -> dict[str, Any]:
        """Convert results to dictionary."""
        return {
            "initial_capital": self.initial_capital,
            "final_capital": self.final_capital,
            "halted": self.halted,
            "metrics": self.metrics.to_dict(),
            "trades": [trade.to_dict() for trade in self.trades],
            "equity_curve": [snapshot.to_dict() for snapshot in self.equity_curve],
        }
