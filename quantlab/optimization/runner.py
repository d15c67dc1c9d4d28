"""
Optimization runner.

Repeatedly backtests one strategy over a fixed universe and window,
asking an optimizer for the next parameter set until it is exhausted.
Every run owns a fresh Portfolio and RiskManager, so runs share no
mutable state.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime

from loguru import logger

from quantlab.backtesting import Backtester, RiskManager
from quantlab.core.exceptions.backtest import ConfigurationError, InsufficientDataError
from quantlab.core.interfaces.execution import ISlippageModel
from quantlab.core.interfaces.optimizer import ParameterSet
from quantlab.core.models.backtest import BacktestResult
from quantlab.core.models.candle import Candle
from quantlab.core.models.portfolio import Portfolio
from quantlab.core.models.portfolio_helpers import CommissionConfig
from quantlab.infrastructure.data.candle_loader import slice_candles
from quantlab.strategies import create_strategy

from .factory import create_optimizer
from .parameters import OptimizationConfig, OptimizationRun


def best_run(runs: Sequence[OptimizationRun]) -> OptimizationRun | None:
    """Run with the highest objective value; the earliest wins ties."""
    best: OptimizationRun | None = None
    for run in runs:
        if best is None or run.objective_value > best.objective_value:
            best = run
    return best


class OptimizationRunner:
    """Evaluates parameter sets against an in-memory universe."""

    def __init__(
        self,
        universe: Mapping[str, Sequence[Candle]],
        commission: CommissionConfig | None = None,
        slippage_model: ISlippageModel | None = None,
    ):
        """
        Initialize the runner.

        Args:
            universe: Symbol to full candle history
            commission: Fee schedule applied to every run
            slippage_model: Execution price model applied to every run
        """
        self.universe = universe
        self.commission = commission
        self.slippage_model = slippage_model

    def window_universe(
        self, assets: Sequence[str], start: datetime, end: datetime
    ) -> dict[str, list[Candle]]:
        """
        Candles of the requested assets within [start, end).

        Raises:
            InsufficientDataError: If no requested asset has data in the window
        """
        window = {
            symbol: slice_candles(self.universe[symbol], start, end)
            for symbol in assets
            if symbol in self.universe
        }
        window = {symbol: candles for symbol, candles in window.items() if candles}
        if not window:
            raise InsufficientDataError(
                f"No data found for {list(assets)} between {start} and {end}"
            )
        return window

    def backtest(
        self,
        config: OptimizationConfig,
        params: ParameterSet,
        window: Mapping[str, Sequence[Candle]],
    ) -> BacktestResult:
        """Backtest one parameter set with a fresh ledger and risk manager."""
        strategy_params, risk_overrides = config.split_parameters(params)
        risk_config = config.base_risk_config.with_overrides(**risk_overrides)
        strategies = {
            symbol: create_strategy(config.strategy_name, strategy_params) for symbol in window
        }
        backtester = Backtester(
            strategies,
            Portfolio(config.initial_capital, self.commission),
            RiskManager(risk_config),
            self.slippage_model,
        )
        return backtester.run(window)

    def evaluate(
        self,
        config: OptimizationConfig,
        params: ParameterSet,
        window: Mapping[str, Sequence[Candle]] | None = None,
    ) -> OptimizationRun:
        """Backtest one parameter set and score it by the configured objective."""
        if window is None:
            window = self.window_universe(config.assets, config.start, config.end)
        result = self.backtest(config, params, window)
        return OptimizationRun(
            parameters=dict(params),
            metrics=result.metrics,
            objective_value=result.metrics[config.objective],
        )

    def run(self, config: OptimizationConfig) -> list[OptimizationRun]:
        """
        Run the configured search to exhaustion.

        Parameter sets the strategy or risk config rejects are logged and
        skipped.

        Args:
            config: Search configuration

        Returns:
            Evaluated runs in the order they were produced

        Raises:
            InsufficientDataError: If the window holds no data
            ConfigurationError: If the strategy name is unknown
        """
        window = self.window_universe(config.assets, config.start, config.end)
        create_strategy(config.strategy_name)
        optimizer = create_optimizer(config)
        logger.info(
            f"Optimizing {config.strategy_name} on {list(window)} "
            f"[{config.start} - {config.end}) by {config.objective} ({config.search_method})"
        )

        runs: list[OptimizationRun] = []
        while (params := optimizer.get_next_params(runs)) is not None:
            try:
                run = self.evaluate(config, params, window)
            except ConfigurationError as e:
                logger.warning(f"Skipping parameters {params}: {e}")
                continue
            runs.append(run)
            logger.info(
                f"Iteration {len(runs)}: {params} -> {config.objective}={run.objective_value:.4f}"
            )

        best = best_run(runs)
        if best is not None:
            logger.info(
                f"Best parameters {best.parameters} with {config.objective}={best.objective_value:.4f}"
            )
        return runs
