"""
CSV-backed ledger store.

Persists a ledger snapshot as three CSV files in one directory:
account.csv (cash, high-water mark), positions.csv (open positions with
their stop and target) and trades.csv (the full trade ledger).
"""

import math
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import StorageError, ValidationError
from quantlab.core.interfaces.portfolio import ILedgerStore
from quantlab.core.models.portfolio import PortfolioState
from quantlab.core.models.position import Position
from quantlab.core.models.trade import Trade

ACCOUNT_FILE = "account.csv"
POSITIONS_FILE = "positions.csv"
TRADES_FILE = "trades.csv"

POSITION_COLUMNS = ["symbol", "quantity", "average_price", "stop_loss", "take_profit"]
TRADE_COLUMNS = [
    "timestamp",
    "symbol",
    "action",
    "price",
    "quantity",
    "fee",
    "total_value",
    "realized_pnl",
    "reason",
]

_STORE_ERRORS = (
    OSError,
    pd.errors.ParserError,
    pd.errors.EmptyDataError,
    KeyError,
    ValueError,
    ValidationError,
)


def _optional_float(value: Any) -> float | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return float(value)


def _optional_str(value: Any) -> str | None:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    return str(value)


class CSVLedgerStore(ILedgerStore):
    """Stores ledger snapshots as CSV files using pandas."""

    def __init__(self, directory: Path | str):
        """Initialize the store; the directory is created on first save."""
        self.directory = Path(directory)

    @property
    def account_path(self) -> Path:
        return self.directory / ACCOUNT_FILE

    @property
    def positions_path(self) -> Path:
        return self.directory / POSITIONS_FILE

    @property
    def trades_path(self) -> Path:
        return self.directory / TRADES_FILE

    def exists(self) -> bool:
        """Check if a snapshot has been saved."""
        return self.account_path.exists()

    def load(self) -> PortfolioState | None:
        """
        Read the saved snapshot.

        Returns:
            PortfolioState, or None when nothing has been saved yet

        Raises:
            StorageError: If a file cannot be read or parsed
        """
        if not self.exists():
            return None

        try:
            account = pd.read_csv(self.account_path)
            positions = self._read_positions()
            trades = self._read_trades()
            state = PortfolioState(
                cash=float(account.loc[0, "cash"]),
                positions={position.symbol: position for position in positions},
                trades=tuple(trades),
                high_water_mark=float(account.loc[0, "high_water_mark"]),
            )
        except _STORE_ERRORS as e:
            logger.error(f"Failed to load ledger from {self.directory}: {e}")
            raise StorageError("load", str(self.directory), str(e)) from e

        logger.info(
            f"Loaded ledger from {self.directory}: {len(state.positions)} positions, "
            f"{len(state.trades)} trades"
        )
        return state

    def save(self, state: PortfolioState) -> None:
        """
        Write a snapshot, replacing any previous one.

        Raises:
            StorageError: If the files cannot be written
        """
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            pd.DataFrame(
                [{"cash": state.cash, "high_water_mark": state.high_water_mark}]
            ).to_csv(self.account_path, index=False)
            pd.DataFrame(
                [
                    {
                        "symbol": p.symbol,
                        "quantity": p.quantity,
                        "average_price": p.average_price,
                        "stop_loss": p.stop_loss,
                        "take_profit": p.take_profit,
                    }
                    for p in state.positions.values()
                ],
                columns=POSITION_COLUMNS,
            ).to_csv(self.positions_path, index=False)
            pd.DataFrame(
                [trade.to_dict() for trade in state.trades], columns=TRADE_COLUMNS
            ).to_csv(self.trades_path, index=False)
        except OSError as e:
            logger.error(f"Failed to save ledger to {self.directory}: {e}")
            raise StorageError("save", str(self.directory), str(e)) from e

        logger.debug(
            f"Saved ledger to {self.directory}: cash={state.cash:.2f}, "
            f"{len(state.positions)} positions, {len(state.trades)} trades"
        )

    def _read_positions(self) -> list[Position]:
        if not self.positions_path.exists():
            return []
        frame = pd.read_csv(self.positions_path, dtype={"symbol": str})
        return [
            Position(
                symbol=row["symbol"],
                quantity=float(row["quantity"]),
                average_price=float(row["average_price"]),
                stop_loss=_optional_float(row["stop_loss"]),
                take_profit=_optional_float(row["take_profit"]),
            )
            for row in frame.to_dict("records")
        ]

    def _read_trades(self) -> list[Trade]:
        if not self.trades_path.exists():
            return []
        frame = pd.read_csv(
            self.trades_path, dtype={"symbol": str, "action": str, "timestamp": str}
        )
        return [
            Trade(
                timestamp=datetime.fromisoformat(row["timestamp"]),
                symbol=row["symbol"],
                action=SignalAction(row["action"]),
                price=float(row["price"]),
                quantity=float(row["quantity"]),
                fee=float(row["fee"]),
                total_value=float(row["total_value"]),
                realized_pnl=_optional_float(row["realized_pnl"]),
                reason=_optional_str(row["reason"]),
            )
            for row in frame.to_dict("records")
        ]
