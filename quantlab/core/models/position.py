"""
Position domain model.
"""

from dataclasses import dataclass

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ValidationError
from quantlab.core.types.financial import ZERO
from quantlab.core.utils.validation import validate_symbol


@dataclass
class Position:
    """An open holding in one symbol.

    Quantity is signed: positive for long, negative for short. The average
    price is the fee-inclusive cost basis per unit. Positions are owned by
    the ledger; callers only ever see copies.
    """

    symbol: str
    quantity: float
    average_price: float
    stop_loss: float | None = None
    take_profit: float | None = None

    def __post_init__(self) -> None:
        """Validate position data after initialization."""
        validate_symbol(self.symbol)
        if self.average_price < ZERO:
            raise ValidationError(f"Average price must be non-negative, got {self.average_price}")

    @property
    def is_long(self) -> bool:
        """Check if position is long."""
        return self.quantity > ZERO

    @property
    def is_short(self) -> bool:
        """Check if position is short."""
        return self.quantity < ZERO

    @property
    def direction(self) -> SignalAction:
        """Action that opened the position (BUY for long, SELL for short)."""
        return SignalAction.SELL if self.is_short else SignalAction.BUY

    def market_value(self, current_price: float) -> float:
        """Signed value of the holding at the given price."""
        return self.quantity * current_price

    def unrealized_pnl(self, current_price: float) -> float:
        """Calculate unrealized PnL against the cost basis.

        Args:
            current_price: Current market price

        Returns:
            Unrealized PnL as float
        """
        if self.quantity == ZERO:
            return ZERO
        return (current_price - self.average_price) * self.quantity
