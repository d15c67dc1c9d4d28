"""
In-memory portfolio ledger.

This module owns cash, open positions and the append-only trade ledger
for one simulated account. Sizing failures are not errors: a BUY that
cannot be afforded or a SELL without a position simply records nothing.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from loguru import logger

from quantlab.core.constants import QUANTITY_EPSILON
from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import PositionNotFoundError, ValidationError
from quantlab.core.interfaces.portfolio import ILedger
from quantlab.core.models.position import Position
from quantlab.core.models.signal import Signal
from quantlab.core.models.trade import Trade
from quantlab.core.types.financial import ZERO, blend_average_price
from quantlab.core.utils.validation import validate_non_negative, validate_symbol

from .portfolio_helpers import (
    BuyDetails,
    CommissionConfig,
    FeeCalculator,
    SellDetails,
    TradeRecorder,
)


@dataclass(frozen=True)
class PortfolioState:
    """Read-only snapshot of a ledger.

    Positions are copies; mutating them never affects the ledger.
    """

    cash: float
    positions: dict[str, Position] = field(default_factory=dict)
    trades: tuple[Trade, ...] = ()
    high_water_mark: float = 0.0

    def total_value(self, current_prices: Mapping[str, float]) -> float:
        """Equity of the snapshot at the given prices."""
        return self.cash + sum(
            position.quantity * current_prices.get(symbol, position.average_price)
            for symbol, position in self.positions.items()
        )


class Portfolio(ILedger):
    """Authoritative cash/position/trade state for one simulated account.

    Examples:
        >>> portfolio = Portfolio(1000.0, CommissionConfig(fixed=10.0))
        >>> portfolio.calculate_buy_details(1000.0, 100.0, 9).total_cost
        910.0
    """

    def __init__(self, initial_cash: float, commission: CommissionConfig | None = None) -> None:
        """Initialize an account.

        Args:
            initial_cash: Starting cash, also the initial high-water mark
            commission: Fee schedule (defaults to no fees)
        """
        validate_non_negative(initial_cash, "initial_cash")
        self.initial_cash = float(initial_cash)
        self.commission = commission or CommissionConfig()
        self._cash = float(initial_cash)
        self._high_water_mark = float(initial_cash)
        self._positions: dict[str, Position] = {}
        self._trades: list[Trade] = []

    @property
    def cash(self) -> float:
        """Current cash balance."""
        return self._cash

    @property
    def high_water_mark(self) -> float:
        """Highest equity observed so far."""
        return self._high_water_mark

    def calculate_buy_details(
        self, available_cash: float, price: float, requested_quantity: float | None
    ) -> BuyDetails | None:
        """Compute the affordable quantity, fee and total cost of a BUY.

        finalQuantity = min(requested, floor((cash - fixed) / (price * (1 + pct))))

        Args:
            available_cash: Cash that may be spent
            price: Execution price
            requested_quantity: Desired quantity, None for the maximum affordable

        Returns:
            BuyDetails, or None if the result or the request is not positive
        """
        return FeeCalculator.buy_details(available_cash, price, requested_quantity, self.commission)

    def calculate_sell_details(
        self, quantity_to_sell: float, price: float, average_entry_price: float
    ) -> SellDetails | None:
        """Compute fee, credit and realized PnL of a SELL.

        Returns:
            SellDetails, or None if quantity is not positive
        """
        return FeeCalculator.sell_details(
            quantity_to_sell, price, average_entry_price, self.commission
        )

    def buy(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a BUY against current cash.

        Blends the fill's total cost into any existing position and applies
        caller-supplied stop/target levels, overwriting previous ones.

        Args:
            symbol: Asset symbol
            signal: Signal carrying price, optional quantity and levels

        Returns:
            The recorded trade, or None if nothing was affordable
        """
        validate_symbol(symbol)
        details = self.calculate_buy_details(self._cash, signal.price, signal.quantity)
        if details is None:
            logger.debug(
                f"BUY {symbol} skipped: quantity={signal.quantity} unaffordable at "
                f"{signal.price:.4f} with cash {self._cash:.2f}"
            )
            return None

        self._cash -= details.total_cost

        existing = self._positions.get(symbol)
        if existing is not None:
            new_quantity = existing.quantity + details.final_quantity
            existing.average_price = blend_average_price(
                existing.average_price, existing.quantity, details.total_cost, new_quantity
            )
            existing.quantity = new_quantity
            position = existing
        else:
            position = Position(
                symbol=symbol,
                quantity=details.final_quantity,
                average_price=details.total_cost / details.final_quantity,
            )
            self._positions[symbol] = position

        if signal.stop_loss is not None:
            position.stop_loss = signal.stop_loss
        if signal.take_profit is not None:
            position.take_profit = signal.take_profit

        trade = TradeRecorder.create_buy_trade(symbol, signal, details)
        self._trades.append(trade)
        return trade

    def sell(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a SELL of (part of) an open long position.

        Quantity sold is min(signal.quantity, held) when given, otherwise the
        whole position.

        Args:
            symbol: Asset symbol
            signal: Signal carrying price and optional quantity

        Returns:
            The recorded trade, or None if there was nothing to sell
        """
        position = self._positions.get(symbol)
        if position is None or position.quantity <= ZERO:
            logger.debug(f"SELL {symbol} skipped: no long position")
            return None

        if signal.quantity is not None:
            quantity = min(signal.quantity, position.quantity)
        else:
            quantity = position.quantity

        details = self.calculate_sell_details(quantity, signal.price, position.average_price)
        if details is None:
            logger.debug(f"SELL {symbol} skipped: quantity={quantity} price={signal.price}")
            return None

        self._cash += details.total_credit
        remaining = position.quantity - quantity
        if remaining <= QUANTITY_EPSILON:
            del self._positions[symbol]
        else:
            position.quantity = remaining

        trade = TradeRecorder.create_sell_trade(symbol, signal, quantity, details)
        self._trades.append(trade)
        return trade

    def execute_signal(self, signal: Signal, symbol: str) -> Trade | None:
        """Dispatch a signal to buy or sell; HOLD does nothing."""
        if signal.action == SignalAction.BUY:
            return self.buy(symbol, signal)
        if signal.action == SignalAction.SELL:
            return self.sell(symbol, signal)
        return None

    def get_position(self, symbol: str) -> Position | None:
        """Copy of the open position in symbol, if any."""
        position = self._positions.get(symbol)
        return replace(position) if position is not None else None

    def open_symbols(self) -> list[str]:
        """Symbols with an open position, in opening order."""
        return list(self._positions)

    def get_trades(self) -> tuple[Trade, ...]:
        """Ledger entries in execution order."""
        return tuple(self._trades)

    def update_stop_loss(self, symbol: str, stop_loss: float | None) -> None:
        """Replace the stop of an open position.

        Raises:
            PositionNotFoundError: If no position is open in symbol
        """
        self._require_position(symbol).stop_loss = stop_loss

    def update_take_profit(self, symbol: str, take_profit: float | None) -> None:
        """Replace the target of an open position.

        Raises:
            PositionNotFoundError: If no position is open in symbol
        """
        self._require_position(symbol).take_profit = take_profit

    def update_high_water_mark(self, equity: float) -> float:
        """Raise the high-water mark if equity exceeds it; return the mark."""
        if equity > self._high_water_mark:
            self._high_water_mark = equity
        return self._high_water_mark

    def get_total_value(self, current_price: float, symbol: str) -> float:
        """Cash plus the value of the position in symbol at current_price."""
        position = self._positions.get(symbol)
        position_value = position.quantity * current_price if position is not None else ZERO
        return self._cash + position_value

    def get_portfolio_value(self, current_prices: Mapping[str, float]) -> float:
        """Cash plus every open position at its latest price.

        Positions without a quoted price are valued at their cost basis.
        """
        return self._cash + sum(
            position.quantity * current_prices.get(symbol, position.average_price)
            for symbol, position in self._positions.items()
        )

    def get_state(self) -> PortfolioState:
        """Defensive snapshot of cash, positions, trades and high-water mark."""
        return PortfolioState(
            cash=self._cash,
            positions={symbol: replace(p) for symbol, p in self._positions.items()},
            trades=tuple(self._trades),
            high_water_mark=self._high_water_mark,
        )

    @classmethod
    def from_state(
        cls, state: PortfolioState, commission: CommissionConfig | None = None
    ) -> "Portfolio":
        """Rebuild a ledger from a snapshot.

        Args:
            state: Snapshot to restore
            commission: Fee schedule for subsequent fills

        Returns:
            New Portfolio holding copies of the snapshot's data
        """
        if state.cash < ZERO:
            raise ValidationError(f"Snapshot cash must be non-negative, got {state.cash}")
        portfolio = cls(state.cash, commission)
        portfolio._high_water_mark = max(state.high_water_mark, state.cash)
        portfolio._positions = {symbol: replace(p) for symbol, p in state.positions.items()}
        portfolio._trades = list(state.trades)
        return portfolio

    def _require_position(self, symbol: str) -> Position:
        position = self._positions.get(symbol)
        if position is None:
            raise PositionNotFoundError(symbol)
        return position
