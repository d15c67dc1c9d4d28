"""
Parameter search configuration and result models.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from quantlab.core.constants import DEFAULT_INITIAL_CAPITAL
from quantlab.core.enums import ParameterKind, SearchMethod
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.optimizer import ParameterSet
from quantlab.core.models.backtest import BacktestMetrics
from quantlab.core.models.risk_config import RiskConfig


@dataclass(frozen=True)
class ParameterRange:
    """Inclusive numeric range explored for one parameter.

    Attributes:
        min: Lower bound
        max: Upper bound
        step: Grid step; defaults to a tenth of the range
        kind: Integer parameters are rounded to whole numbers
    """

    min: float
    max: float
    step: float | None = None
    kind: ParameterKind = ParameterKind.FLOAT

    def __post_init__(self) -> None:
        if self.min > self.max:
            raise ConfigurationError(f"Parameter range min {self.min} exceeds max {self.max}")
        if self.step is not None and self.step <= 0:
            raise ConfigurationError(f"Parameter step must be positive, got {self.step}")
        object.__setattr__(self, "kind", ParameterKind(self.kind))

    @property
    def is_integer(self) -> bool:
        return self.kind == ParameterKind.INTEGER

    def resolved_step(self) -> float:
        """Grid step, (max - min) / 10 when not configured."""
        if self.step is not None:
            return self.step
        span = self.max - self.min
        return span / 10 if span > 0 else 1.0


@dataclass(frozen=True)
class OptimizationConfig:
    """
    Configuration of one parameter search.

    Parameter names that match RiskConfig fields override the base risk
    config for each run; all other names are passed to the strategy.
    """

    strategy_name: str
    assets: tuple[str, ...]
    start: datetime
    end: datetime
    objective: str = "sharpe_ratio"
    search_method: SearchMethod = SearchMethod.GRID
    parameters: Mapping[str, ParameterRange] = field(default_factory=dict)
    max_iterations: int | None = None
    seed: int | None = None
    initial_capital: float = DEFAULT_INITIAL_CAPITAL
    base_risk_config: RiskConfig = field(default_factory=RiskConfig)

    def __post_init__(self) -> None:
        """Validate and normalize the configuration."""
        object.__setattr__(self, "assets", tuple(self.assets))
        object.__setattr__(self, "search_method", SearchMethod(self.search_method))
        if not self.assets:
            raise ConfigurationError("At least one asset is required")
        if self.start >= self.end:
            raise ConfigurationError(f"Start {self.start} must be before end {self.end}")
        if self.objective not in BacktestMetrics.metric_names():
            raise ConfigurationError(
                f"Unknown objective '{self.objective}'. "
                f"Available: {', '.join(BacktestMetrics.metric_names())}"
            )
        if self.search_method == SearchMethod.RANDOM and not self.max_iterations:
            raise ConfigurationError("Random search requires max_iterations")
        if self.max_iterations is not None and self.max_iterations <= 0:
            raise ConfigurationError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        if self.initial_capital <= 0:
            raise ConfigurationError(
                f"initial_capital must be positive, got {self.initial_capital}"
            )

    def split_parameters(self, params: ParameterSet) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split a parameter set into (strategy params, risk overrides)."""
        risk_fields = RiskConfig.field_names()
        strategy_params = {k: v for k, v in params.items() if k not in risk_fields}
        risk_overrides = {k: v for k, v in params.items() if k in risk_fields}
        return strategy_params, risk_overrides

    def with_window(self, start: datetime, end: datetime) -> "OptimizationConfig":
        """Same search over a different time window."""
        return OptimizationConfig(
            strategy_name=self.strategy_name,
            assets=self.assets,
            start=start,
            end=end,
            objective=self.objective,
            search_method=self.search_method,
            parameters=self.parameters,
            max_iterations=self.max_iterations,
            seed=self.seed,
            initial_capital=self.initial_capital,
            base_risk_config=self.base_risk_config,
        )


@dataclass(frozen=True)
class OptimizationRun:
    """One evaluated parameter set."""

    parameters: ParameterSet
    metrics: BacktestMetrics
    objective_value: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "parameters": dict(self.parameters),
            "metrics": self.metrics.to_dict(),
            "objective_value": self.objective_value,
        }


@dataclass(frozen=True)
class WalkForwardConfig:
    """Train/test window layout for walk-forward testing.

    Rolling windows move the train start forward with each step; anchored
    windows keep it at the search's start date.
    """

    optimization: OptimizationConfig
    train_window_days: int
    test_window_days: int
    anchored: bool = False

    def __post_init__(self) -> None:
        if self.train_window_days <= 0 or self.test_window_days <= 0:
            raise ConfigurationError(
                f"Window lengths must be positive, got train={self.train_window_days} "
                f"test={self.test_window_days}"
            )


@dataclass(frozen=True)
class WalkForwardWindow:
    """Result of optimizing on one train window and replaying its test window."""

    train_start: datetime
    train_end: datetime
    test_start: datetime
    test_end: datetime
    best_parameters: ParameterSet
    train_objective: float
    test_metrics: BacktestMetrics

    def to_dict(self) -> dict[str, Any]:
        return {
            "train_start": self.train_start.isoformat(),
            "train_end": self.train_end.isoformat(),
            "test_start": self.test_start.isoformat(),
            "test_end": self.test_end.isoformat(),
            "best_parameters": dict(self.best_parameters),
            "train_objective": self.train_objective,
            "test_metrics": self.test_metrics.to_dict(),
        }
