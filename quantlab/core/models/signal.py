"""
Trading signal domain model.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ValidationError
from quantlab.core.models.candle import Candle


@dataclass(frozen=True)
class Signal:
    """A strategy's decision for the most recent candle.

    Strategies fill in action, price and timestamp. The backtester enriches
    a copy with the execution price, quantity and protective levels before
    handing it to the ledger. A quantity of None means "as much as cash
    allows" for a BUY and "the whole position" for a SELL.
    """

    action: SignalAction
    price: float
    timestamp: datetime
    quantity: float | None = None
    stop_loss: float | None = None
    take_profit: float | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        """Validate signal data after initialization."""
        if not isinstance(self.action, SignalAction):
            raise ValidationError(f"Signal action must be a SignalAction, got {self.action!r}")
        if self.price < 0:
            raise ValidationError(f"Signal price must be non-negative, got {self.price}")

    @property
    def is_actionable(self) -> bool:
        """Check if the signal should reach the ledger."""
        return self.action.is_actionable

    def with_updates(self, **changes: object) -> "Signal":
        """Return an enriched copy of this signal."""
        return replace(self, **changes)

    @classmethod
    def from_candle(
        cls, action: SignalAction, candle: Candle, reason: str | None = None
    ) -> "Signal":
        """Factory method for a signal priced at the candle close.

        Args:
            action: Desired action
            candle: Latest visible candle
            reason: Human-readable explanation

        Returns:
            New Signal instance
        """
        return cls(action=action, price=candle.close, timestamp=candle.time, reason=reason)

    @classmethod
    def hold(cls, candle: Candle | None, reason: str | None = None) -> "Signal":
        """Factory method for a HOLD signal, tolerating an empty history."""
        if candle is None:
            return cls(action=SignalAction.HOLD, price=0.0, timestamp=datetime.min, reason=reason)
        return cls.from_candle(SignalAction.HOLD, candle, reason)
