"""Helper types and calculators for Portfolio to reduce complexity."""

import math
from dataclasses import dataclass

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import ConfigurationError, ValidationError
from quantlab.core.models.signal import Signal
from quantlab.core.models.trade import Trade
from quantlab.core.types.financial import (
    ONE,
    ZERO,
    calculate_fee,
    calculate_realized_pnl,
    floor_quantity,
)
from quantlab.core.utils.validation import validate_non_negative


@dataclass(frozen=True)
class CommissionConfig:
    """Commission schedule applied to every fill.

    Attributes:
        fixed: Flat fee per fill
        percentage: Fraction of trade value (0.001 = 0.1%)
    """

    fixed: float = 0.0
    percentage: float = 0.0

    def __post_init__(self) -> None:
        """Validate commission values."""
        try:
            validate_non_negative(self.fixed, "fixed")
            validate_non_negative(self.percentage, "percentage")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid commission configuration: {e}") from e


@dataclass(frozen=True)
class BuyDetails:
    """Affordability result for a prospective BUY."""

    final_quantity: float
    fee: float
    total_cost: float
    trade_value: float


@dataclass(frozen=True)
class SellDetails:
    """Proceeds of a prospective SELL."""

    fee: float
    total_credit: float
    realized_pnl: float
    trade_value: float


class FeeCalculator:
    """Computes fill economics without touching ledger state."""

    @staticmethod
    def buy_details(
        available_cash: float,
        price: float,
        requested_quantity: float | None,
        commission: CommissionConfig,
    ) -> BuyDetails | None:
        """Clip a requested quantity to what cash and fees allow.

        Args:
            available_cash: Cash that may be spent
            price: Execution price per unit
            requested_quantity: Desired quantity, None for the maximum affordable
            commission: Fee schedule

        Returns:
            BuyDetails, or None when nothing can be bought
        """
        if requested_quantity is not None and requested_quantity <= ZERO:
            return None
        if price <= ZERO or not math.isfinite(price):
            return None

        max_spendable = available_cash - commission.fixed
        if max_spendable <= ZERO:
            return None

        affordable = float(math.floor(max_spendable / (price * (ONE + commission.percentage))))
        if requested_quantity is None:
            final_quantity = affordable
        else:
            final_quantity = min(floor_quantity(requested_quantity), affordable)
        if final_quantity <= ZERO:
            return None

        trade_value = price * final_quantity
        fee = calculate_fee(trade_value, commission.fixed, commission.percentage)
        total_cost = trade_value + fee
        if total_cost > available_cash:
            return None

        return BuyDetails(
            final_quantity=final_quantity, fee=fee, total_cost=total_cost, trade_value=trade_value
        )

    @staticmethod
    def sell_details(
        quantity_to_sell: float,
        price: float,
        average_price: float,
        commission: CommissionConfig,
    ) -> SellDetails | None:
        """Compute proceeds and realized PnL of a sale.

        Args:
            quantity_to_sell: Units to sell
            price: Execution price per unit
            average_price: Fee-inclusive cost basis per unit
            commission: Fee schedule

        Returns:
            SellDetails, or None for a non-positive quantity or price
        """
        if quantity_to_sell <= ZERO or price <= ZERO:
            return None

        trade_value = price * quantity_to_sell
        fee = calculate_fee(trade_value, commission.fixed, commission.percentage)
        total_credit = trade_value - fee
        return SellDetails(
            fee=fee,
            total_credit=total_credit,
            realized_pnl=calculate_realized_pnl(total_credit, average_price, quantity_to_sell),
            trade_value=trade_value,
        )


class TradeRecorder:
    """Builds ledger entries from executed signals."""

    @staticmethod
    def create_buy_trade(symbol: str, signal: Signal, details: BuyDetails) -> Trade:
        """Create a BUY ledger entry."""
        return Trade(
            timestamp=signal.timestamp,
            symbol=symbol,
            action=SignalAction.BUY,
            price=signal.price,
            quantity=details.final_quantity,
            fee=details.fee,
            total_value=details.total_cost,
            reason=signal.reason,
        )

    @staticmethod
    def create_sell_trade(
        symbol: str, signal: Signal, quantity: float, details: SellDetails
    ) -> Trade:
        """Create a SELL ledger entry carrying realized PnL."""
        return Trade(
            timestamp=signal.timestamp,
            symbol=symbol,
            action=SignalAction.SELL,
            price=signal.price,
            quantity=quantity,
            fee=details.fee,
            total_value=details.total_credit,
            realized_pnl=details.realized_pnl,
            reason=signal.reason,
        )
