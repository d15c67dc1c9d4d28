"""
Backtester.

Drives one deterministic pass over one or more assets' candle series.
Every step runs the same fixed sequence: drawdown kill-switch, exit
check, trailing stop, strategy evaluation on the causal history, signal
enrichment with admission guards and sizing, liquidity clipping,
execution and finally one equity snapshot for the step.
"""

import math
from bisect import bisect_right
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from loguru import logger

from quantlab.core.constants import CORRELATION_LOOKBACK, DEFAULT_SYMBOL, QUANTITY_EPSILON
from quantlab.core.enums import ExitReason, SignalAction
from quantlab.core.exceptions.backtest import (
    ConfigurationError,
    DataError,
    InsufficientDataError,
    StrategyError,
)
from quantlab.core.interfaces.execution import ISlippageModel
from quantlab.core.interfaces.portfolio import ILedger
from quantlab.core.interfaces.strategy import IStrategy
from quantlab.core.models.backtest import BacktestResult, EquitySnapshot
from quantlab.core.models.candle import Candle
from quantlab.core.models.position import Position
from quantlab.core.models.signal import Signal
from quantlab.core.utils.statistics import calculate_returns
from quantlab.infrastructure.data.technical_indicators import calculate_atr

from .performance import PerformanceAnalyzer
from .risk_manager import RiskManager
from .slippage import ZeroSlippage

CandleSeries = Sequence[Candle]
Universe = Mapping[str, CandleSeries]


@dataclass
class _PriceHistory:
    """Closes of one series indexed by time for causal lookups."""

    times: list[datetime]
    closes: list[float]

    @classmethod
    def from_candles(cls, candles: CandleSeries) -> "_PriceHistory":
        return cls(times=[c.time for c in candles], closes=[c.close for c in candles])

    def returns_until(self, moment: datetime, lookback: int) -> list[float]:
        """Last `lookback` returns using only closes at or before moment."""
        end = bisect_right(self.times, moment)
        start = max(0, end - lookback - 1)
        return calculate_returns(self.closes[start:end])[-lookback:]


@dataclass
class _RunState:
    """Mutable bookkeeping of a single run."""

    initial_capital: float
    latest_prices: dict[str, float] = field(default_factory=dict)
    equity_curve: list[EquitySnapshot] = field(default_factory=list)
    current_day: date | None = None
    day_start_equity: float = 0.0
    halted: bool = False

    def roll_day(self, moment: datetime) -> None:
        """Reset the daily loss reference on the first step of a new calendar day."""
        if moment.date() == self.current_day:
            return
        self.current_day = moment.date()
        self.day_start_equity = (
            self.equity_curve[-1].equity if self.equity_curve else self.initial_capital
        )


class Backtester:
    """
    Orchestrates strategies, the ledger and the risk layer over time.

    Steps follow the sorted union of all candle timestamps. At each step
    only the assets with a bar at that time are processed, and a strategy
    sees its own asset's candles up to that bar. Assets without a bar are
    valued at their last close. Without a RiskManager every BUY spends as much cash as
    allowed and no stops, guards or kill-switch apply.

    Examples:
        >>> backtester = Backtester(BuyAndHoldStrategy(), Portfolio(10000.0))
        >>> backtester.run(candles).final_capital
        12000.0
    """

    def __init__(
        self,
        strategy: IStrategy | Mapping[str, IStrategy],
        portfolio: ILedger,
        risk_manager: RiskManager | None = None,
        slippage_model: ISlippageModel | None = None,
        symbol: str = DEFAULT_SYMBOL,
    ):
        """
        Initialize a backtester.

        Args:
            strategy: One strategy for every asset, or one per symbol
            portfolio: Fresh ledger owned by this run
            risk_manager: Optional risk calculus; enables stops and guards
            slippage_model: Execution price adjustment (defaults to none)
            symbol: Symbol used when run() receives a single series
        """
        self.strategy = strategy
        self.portfolio = portfolio
        self.risk_manager = risk_manager
        self.slippage_model = slippage_model or ZeroSlippage()
        self.symbol = symbol

    def run(
        self,
        data: CandleSeries | Universe,
        auxiliary: Universe | None = None,
    ) -> BacktestResult:
        """
        Replay the data and return the run's result.

        Args:
            data: A single candle series or a mapping of symbol to series
            auxiliary: Extra series used only by the correlation guard

        Returns:
            BacktestResult with trades, equity curve and metrics

        Raises:
            InsufficientDataError: If there are no candles to replay
            DataError: If a series is not strictly increasing in time
            ConfigurationError: If an asset has no strategy
            StrategyError: If a strategy returns something other than a Signal
        """
        universe = self._as_universe(data)
        strategies = self._resolve_strategies(universe)
        atr_series = self._precompute_atr(universe)
        price_histories = {
            symbol: _PriceHistory.from_candles(candles)
            for symbol, candles in {**(auxiliary or {}), **universe}.items()
        }

        state = _RunState(initial_capital=self.portfolio.cash)
        timeline = sorted({candle.time for candles in universe.values() for candle in candles})
        cursors = {symbol: -1 for symbol in universe}
        logger.info(
            f"Starting backtest: {len(universe)} asset(s), {len(timeline)} steps, "
            f"capital {state.initial_capital:.2f}"
        )

        for step_time in timeline:
            active = self._advance_cursors(universe, cursors, step_time)
            for symbol, index in active.items():
                state.latest_prices[symbol] = universe[symbol][index].close

            if self._drawdown_breached(state, step_time):
                break

            state.roll_day(step_time)
            for symbol, index in active.items():
                self._process_asset(
                    symbol,
                    universe[symbol],
                    index,
                    strategies[symbol],
                    atr_series.get(symbol),
                    price_histories,
                    state,
                )

            self._record_snapshot(state, step_time)

        trades = list(self.portfolio.get_trades())
        final_capital = (
            state.equity_curve[-1].equity if state.equity_curve else state.initial_capital
        )
        metrics = PerformanceAnalyzer.calculate_metrics(
            state.initial_capital, state.equity_curve, trades
        )
        logger.info(
            f"Backtest finished: final capital {final_capital:.2f}, "
            f"return {metrics.total_return_pct:.2f}%, {len(trades)} trades"
            + (" (halted)" if state.halted else "")
        )

        return BacktestResult(
            initial_capital=state.initial_capital,
            final_capital=final_capital,
            metrics=metrics,
            trades=trades,
            equity_curve=state.equity_curve,
            halted=state.halted,
        )

    def _as_universe(self, data: CandleSeries | Universe) -> Universe:
        universe: Universe = data if isinstance(data, Mapping) else {self.symbol: data}
        if not universe or any(len(candles) == 0 for candles in universe.values()):
            raise InsufficientDataError()
        for symbol, candles in universe.items():
            if any(later.time <= earlier.time for earlier, later in zip(candles, candles[1:])):
                raise DataError(f"Candles for {symbol} must be strictly increasing in time")
        return universe

    def _resolve_strategies(self, universe: Universe) -> dict[str, IStrategy]:
        if not isinstance(self.strategy, Mapping):
            return {symbol: self.strategy for symbol in universe}

        missing = [symbol for symbol in universe if symbol not in self.strategy]
        if missing:
            raise ConfigurationError(f"No strategy configured for assets: {missing}")
        return {symbol: self.strategy[symbol] for symbol in universe}

    @staticmethod
    def _advance_cursors(
        universe: Universe, cursors: dict[str, int], step_time: datetime
    ) -> dict[str, int]:
        """Move each asset with a bar at step_time onto it.

        Returns the symbols that trade at this step with their bar index.
        Assets without a bar keep their cursor and last close.
        """
        active: dict[str, int] = {}
        for symbol, candles in universe.items():
            index = cursors[symbol] + 1
            if index < len(candles) and candles[index].time == step_time:
                cursors[symbol] = index
                active[symbol] = index
        return active

    def _precompute_atr(self, universe: Universe) -> dict[str, list[float | None]]:
        if self.risk_manager is None:
            return {}
        period = self.risk_manager.config.atr_period
        return {symbol: calculate_atr(candles, period) for symbol, candles in universe.items()}

    def _drawdown_breached(self, state: _RunState, step_time: datetime) -> bool:
        if self.risk_manager is None:
            return False

        equity = self.portfolio.get_portfolio_value(state.latest_prices)
        high_water_mark = self.portfolio.update_high_water_mark(equity)
        if not self.risk_manager.check_drawdown(equity, high_water_mark):
            return False

        self._record_snapshot(state, step_time)
        state.halted = True
        logger.warning(
            f"Max drawdown breached at {step_time}: equity {equity:.2f} vs "
            f"high-water mark {high_water_mark:.2f}; halting run"
        )
        return True

    def _record_snapshot(self, state: _RunState, moment: datetime) -> None:
        state.equity_curve.append(
            EquitySnapshot(
                timestamp=moment,
                cash=self.portfolio.cash,
                equity=self.portfolio.get_portfolio_value(state.latest_prices),
            )
        )

    def _process_asset(
        self,
        symbol: str,
        candles: CandleSeries,
        index: int,
        strategy: IStrategy,
        atr_values: list[float | None] | None,
        price_histories: Mapping[str, _PriceHistory],
        state: _RunState,
    ) -> None:
        candle = candles[index]
        atr = atr_values[index] if atr_values is not None else None
        position = self.portfolio.get_position(symbol)

        if position is not None and self.risk_manager is not None:
            if self._execute_exit(symbol, candle, position):
                return
            self._trail_stop(symbol, candle, position, atr)

        history = candles[: index + 1]
        signal = strategy.analyze(history)
        if not isinstance(signal, Signal):
            raise StrategyError(
                f"Strategy {strategy.name} returned {type(signal).__name__} instead of a Signal"
            )
        if not signal.is_actionable:
            return

        execution_price = self.slippage_model.price_after_slippage(
            signal.price, 0, candle, signal.action
        )
        signal = signal.with_updates(price=execution_price, timestamp=candle.time)

        if signal.action == SignalAction.BUY:
            prepared = self._prepare_entry(symbol, signal, history, atr, price_histories, state)
        else:
            prepared = self._prepare_exit(symbol, signal, candle)

        if prepared is not None:
            self.portfolio.execute_signal(prepared, symbol)

    def _execute_exit(self, symbol: str, candle: Candle, position: Position) -> bool:
        """Sell at the stop or target when the candle reaches it."""
        reason = self.risk_manager.check_exits(candle, position)
        if reason is None:
            return False

        level = position.stop_loss if reason == ExitReason.STOP_LOSS else position.take_profit
        quantity = self._apply_liquidity_limit(abs(position.quantity), candle)
        if quantity <= QUANTITY_EPSILON:
            logger.debug(f"{reason.value} exit for {symbol} blocked: no volume available")
            return True

        price = self.slippage_model.price_after_slippage(
            level, quantity, candle, SignalAction.SELL
        )
        exit_signal = Signal(
            action=SignalAction.SELL,
            price=price,
            timestamp=candle.time,
            quantity=quantity,
            reason=reason.value,
        )
        self.portfolio.execute_signal(exit_signal, symbol)
        return True

    def _trail_stop(
        self, symbol: str, candle: Candle, position: Position, atr: float | None
    ) -> None:
        if position.stop_loss is None or atr is None:
            return
        new_stop = self.risk_manager.update_trailing_stop(
            position.stop_loss, candle.high, candle.low, atr, position.direction
        )
        if new_stop != position.stop_loss:
            self.portfolio.update_stop_loss(symbol, new_stop)

    def _prepare_entry(
        self,
        symbol: str,
        signal: Signal,
        history: CandleSeries,
        atr: float | None,
        price_histories: Mapping[str, _PriceHistory],
        state: _RunState,
    ) -> Signal | None:
        """Run admission guards in order, then size and clip the entry.

        Guard order: regime, correlation, daily loss. Sizing, the Bollinger
        target and the liquidity clip follow.
        """
        candle = history[-1]
        if self.risk_manager is None:
            return signal

        config = self.risk_manager.config
        if config.adx_threshold is not None and not self.risk_manager.is_market_trending(history):
            logger.debug(f"BUY {symbol} rejected at {candle.time}: market not trending")
            return None

        if config.max_correlation is not None and self._correlation_blocked(
            symbol, candle.time, price_histories
        ):
            logger.debug(f"BUY {symbol} rejected at {candle.time}: correlated with open positions")
            return None

        if self.risk_manager.check_daily_loss(
            self.portfolio.get_trades(), state.day_start_equity, candle.time
        ):
            logger.debug(f"BUY {symbol} rejected at {candle.time}: daily loss limit reached")
            return None

        quantity = signal.quantity
        stop_loss: float | None = None
        if atr is not None and atr > 0:
            equity = self.portfolio.get_portfolio_value(state.latest_prices)
            stop_loss = self.risk_manager.calculate_atr_stop(candle.close, atr, SignalAction.BUY)
            quantity = self.risk_manager.calculate_position_size(equity, signal.price, stop_loss)

        take_profit = signal.take_profit
        if config.use_bollinger_take_profit:
            take_profit = self.risk_manager.calculate_bollinger_take_profit(
                history, SignalAction.BUY
            )

        quantity = self._apply_liquidity_limit(quantity, candle)
        if quantity is not None and quantity <= QUANTITY_EPSILON:
            logger.debug(f"BUY {symbol} skipped at {candle.time}: sized to zero")
            return None

        return signal.with_updates(
            quantity=quantity,
            stop_loss=stop_loss if stop_loss is not None else signal.stop_loss,
            take_profit=take_profit,
        )

    def _prepare_exit(self, symbol: str, signal: Signal, candle: Candle) -> Signal | None:
        if self.risk_manager is None:
            return signal

        position = self.portfolio.get_position(symbol)
        if position is None:
            return signal

        requested = signal.quantity if signal.quantity is not None else abs(position.quantity)
        quantity = self._apply_liquidity_limit(requested, candle)
        if quantity <= QUANTITY_EPSILON:
            logger.debug(f"SELL {symbol} skipped at {candle.time}: no volume available")
            return None
        return signal.with_updates(quantity=quantity)

    def _correlation_blocked(
        self, symbol: str, moment: datetime, price_histories: Mapping[str, _PriceHistory]
    ) -> bool:
        candidate_history = price_histories.get(symbol)
        if candidate_history is None:
            return False
        candidate = candidate_history.returns_until(moment, CORRELATION_LOOKBACK)

        existing: list[list[float]] = []
        for other in self.portfolio.open_symbols():
            if other == symbol or other not in price_histories:
                continue
            returns = price_histories[other].returns_until(moment, CORRELATION_LOOKBACK)
            length = min(len(candidate), len(returns))
            if length < 2:
                continue
            existing.append(returns[-length:])

        if not existing:
            return False
        return any(
            self.risk_manager.check_correlation(candidate[-len(returns) :], [returns])
            for returns in existing
        )

    def _apply_liquidity_limit(self, quantity: float | None, candle: Candle) -> float | None:
        """Cap a quantity at volume_limit_pct of the candle's volume.

        An unsized quantity (None) becomes the cap itself.
        """
        if self.risk_manager is None or self.risk_manager.config.volume_limit_pct is None:
            return quantity

        cap = math.floor(
            self.risk_manager.config.volume_limit_pct * candle.volume + QUANTITY_EPSILON
        )
        if quantity is None:
            return cap
        return min(quantity, cap)
