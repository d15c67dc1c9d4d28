"""
Trading action and exit enumerations.

This module defines the allowed signal actions and the reasons a
position can be closed by the risk layer.
"""

from enum import StrEnum


class SignalAction(StrEnum):
    """
    Allowed signal actions.

    Defines what a strategy wants to do with the latest candle.
    """

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"

    @property
    def is_actionable(self) -> bool:
        """Check if action results in an order."""
        return self != self.HOLD

    def opposite(self) -> "SignalAction":
        """Get the action that closes a position opened by this action."""
        if self == self.BUY:
            return SignalAction.SELL
        if self == self.SELL:
            return SignalAction.BUY
        return SignalAction.HOLD


class ExitReason(StrEnum):
    """
    Reasons for a risk-driven exit.

    Recorded on the SELL trade that closes (part of) a position.
    """

    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"


class SearchMethod(StrEnum):
    """Parameter search methods supported by the optimization layer."""

    GRID = "grid"
    RANDOM = "random"
    TPE = "tpe"


class ParameterKind(StrEnum):
    """Numeric domain of an optimized parameter."""

    INTEGER = "integer"
    FLOAT = "float"
