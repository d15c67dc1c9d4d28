"""
Storage-backed portfolio ledger.

PersistentPortfolio wraps an in-memory Portfolio and an ILedgerStore.
Every state change that succeeds is written through to the store, and
reload() replaces the in-memory ledger with the stored snapshot.
"""

from collections.abc import Mapping

from loguru import logger

from quantlab.core.enums import SignalAction
from quantlab.core.interfaces.portfolio import ILedger, ILedgerStore
from quantlab.core.models.portfolio import Portfolio, PortfolioState
from quantlab.core.models.portfolio_helpers import CommissionConfig
from quantlab.core.models.position import Position
from quantlab.core.models.signal import Signal
from quantlab.core.models.trade import Trade
from quantlab.core.utils.decorators import log_ledger_operation


class PersistentPortfolio(ILedger):
    """Ledger whose state survives process restarts.

    Thread Safety:
        Not thread-safe. One run owns one ledger.
    """

    def __init__(
        self,
        store: ILedgerStore,
        initial_cash: float = 0.0,
        commission: CommissionConfig | None = None,
    ) -> None:
        """Initialize from the store, or from initial_cash if the store is empty.

        Args:
            store: Durable state backend
            initial_cash: Cash for a brand-new account
            commission: Fee schedule for fills
        """
        self._store = store
        self._commission = commission or CommissionConfig()
        self._ledger = Portfolio(initial_cash, self._commission)
        if not self.reload():
            self._store.save(self._ledger.get_state())
            logger.info(f"Initialized new persistent ledger with cash {initial_cash:.2f}")

    def reload(self) -> bool:
        """Replace the in-memory ledger with the stored snapshot.

        Returns:
            True if a snapshot was loaded, False if the store is empty
        """
        state = self._store.load()
        if state is None:
            return False
        self._ledger = Portfolio.from_state(state, self._commission)
        logger.info(
            f"Reloaded ledger: cash={state.cash:.2f}, positions={len(state.positions)}, "
            f"trades={len(state.trades)}"
        )
        return True

    def _persist(self) -> None:
        self._store.save(self._ledger.get_state())

    @property
    def cash(self) -> float:
        """Current cash balance."""
        return self._ledger.cash

    @property
    def high_water_mark(self) -> float:
        """Highest equity observed so far."""
        return self._ledger.high_water_mark

    @log_ledger_operation
    def buy(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a BUY and persist the result."""
        trade = self._ledger.buy(symbol, signal)
        if trade is not None:
            self._persist()
        return trade

    @log_ledger_operation
    def sell(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a SELL and persist the result."""
        trade = self._ledger.sell(symbol, signal)
        if trade is not None:
            self._persist()
        return trade

    def execute_signal(self, signal: Signal, symbol: str) -> Trade | None:
        """Dispatch a signal through the persisting buy/sell."""
        if signal.action == SignalAction.BUY:
            return self.buy(symbol, signal)
        if signal.action == SignalAction.SELL:
            return self.sell(symbol, signal)
        return None

    def get_position(self, symbol: str) -> Position | None:
        """Copy of the open position in symbol, if any."""
        return self._ledger.get_position(symbol)

    def open_symbols(self) -> list[str]:
        """Symbols with an open position."""
        return self._ledger.open_symbols()

    def get_trades(self) -> tuple[Trade, ...]:
        """Ledger entries in execution order."""
        return self._ledger.get_trades()

    @log_ledger_operation
    def update_stop_loss(self, symbol: str, stop_loss: float | None) -> None:
        """Replace the stop of an open position and persist it."""
        self._ledger.update_stop_loss(symbol, stop_loss)
        self._persist()

    @log_ledger_operation
    def update_take_profit(self, symbol: str, take_profit: float | None) -> None:
        """Replace the target of an open position and persist it."""
        self._ledger.update_take_profit(symbol, take_profit)
        self._persist()

    def update_high_water_mark(self, equity: float) -> float:
        """Raise the high-water mark, persisting only when it moves."""
        previous = self._ledger.high_water_mark
        mark = self._ledger.update_high_water_mark(equity)
        if mark != previous:
            self._persist()
        return mark

    def get_total_value(self, current_price: float, symbol: str) -> float:
        """Cash plus the value of the position in symbol."""
        return self._ledger.get_total_value(current_price, symbol)

    def get_portfolio_value(self, current_prices: Mapping[str, float]) -> float:
        """Cash plus every open position at its latest price."""
        return self._ledger.get_portfolio_value(current_prices)

    def get_state(self) -> PortfolioState:
        """Defensive snapshot of the wrapped ledger."""
        return self._ledger.get_state()
