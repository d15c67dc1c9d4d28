"""
Trade domain model.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ValidationError


@dataclass(frozen=True)
class Trade:
    """An executed fill recorded in the append-only ledger.

    total_value is the cash that left the account for a BUY (value plus
    fee) and the cash that entered it for a SELL (value minus fee).
    """

    timestamp: datetime
    symbol: str
    action: SignalAction
    price: float
    quantity: float
    fee: float
    total_value: float
    realized_pnl: float | None = None
    reason: str | None = None

    def __post_init__(self) -> None:
        """Validate trade data after initialization."""
        if self.action == SignalAction.HOLD:
            raise ValidationError("A trade cannot be recorded for a HOLD action")
        if self.quantity <= 0:
            raise ValidationError(f"Quantity must be positive, got {self.quantity}")
        if self.price <= 0:
            raise ValidationError(f"Price must be positive, got {self.price}")
        if self.fee < 0:
            raise ValidationError(f"Fee must be non-negative, got {self.fee}")

    @property
    def is_closing(self) -> bool:
        """Check if the trade realized PnL."""
        return self.action == SignalAction.SELL and self.realized_pnl is not None

    def notional_value(self) -> float:
        """Calculate the notional value of the trade."""
        return abs(self.quantity) * self.price

    def to_dict(self) -> dict[str, Any]:
        """Convert trade to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "symbol": self.symbol,
            "action": self.action.value,
            "price": self.price,
            "quantity": self.quantity,
            "fee": self.fee,
            "total_value": self.total_value,
            "realized_pnl": self.realized_pnl,
            "reason": self.reason,
        }
