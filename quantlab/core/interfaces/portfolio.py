"""
Ledger interfaces.

The backtester depends only on ILedger, so an in-memory ledger and a
storage-backed ledger are interchangeable.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import TYPE_CHECKING

from quantlab.core.models.position import Position
from quantlab.core.models.signal import Signal
from quantlab.core.models.trade import Trade

if TYPE_CHECKING:
    from quantlab.core.models.portfolio import PortfolioState


class ILedger(ABC):
    """Abstract interface for cash, position and trade accounting."""

    @property
    @abstractmethod
    def cash(self) -> float:
        """Current cash balance."""
        pass

    @property
    @abstractmethod
    def high_water_mark(self) -> float:
        """Highest equity observed so far."""
        pass

    @abstractmethod
    def buy(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a BUY; None when nothing was bought."""
        pass

    @abstractmethod
    def sell(self, symbol: str, signal: Signal) -> Trade | None:
        """Execute a SELL; None when nothing was sold."""
        pass

    @abstractmethod
    def execute_signal(self, signal: Signal, symbol: str) -> Trade | None:
        """Dispatch a signal to buy or sell."""
        pass

    @abstractmethod
    def get_position(self, symbol: str) -> Position | None:
        """Copy of the open position in symbol, if any."""
        pass

    @abstractmethod
    def open_symbols(self) -> list[str]:
        """Symbols with an open position."""
        pass

    @abstractmethod
    def get_trades(self) -> tuple[Trade, ...]:
        """Ledger entries in execution order."""
        pass

    @abstractmethod
    def update_stop_loss(self, symbol: str, stop_loss: float | None) -> None:
        """Replace the stop of an open position."""
        pass

    @abstractmethod
    def update_take_profit(self, symbol: str, take_profit: float | None) -> None:
        """Replace the target of an open position."""
        pass

    @abstractmethod
    def update_high_water_mark(self, equity: float) -> float:
        """Raise the high-water mark to equity if higher; return the mark."""
        pass

    @abstractmethod
    def get_total_value(self, current_price: float, symbol: str) -> float:
        """Equity valuing only symbol at current_price."""
        pass

    @abstractmethod
    def get_portfolio_value(self, current_prices: Mapping[str, float]) -> float:
        """Equity valuing every open position at its latest price."""
        pass

    @abstractmethod
    def get_state(self) -> "PortfolioState":
        """Defensive snapshot of the ledger."""
        pass


class ILedgerStore(ABC):
    """Abstract interface for durable ledger state."""

    @abstractmethod
    def load(self) -> "PortfolioState | None":
        """Load the last saved state, None if nothing was saved."""
        pass

    @abstractmethod
    def save(self, state: "PortfolioState") -> None:
        """Persist a full ledger snapshot."""
        pass
