"""
Unit tests for CSVLedgerStore.
"""

from datetime import datetime

import pytest

from quantlab.core.enums import SignalAction
from quantlab.core.exceptions.backtest import StorageError
from quantlab.core.models.portfolio import PortfolioState
from quantlab.core.models.position import Position
from quantlab.core.models.trade import Trade
from quantlab.infrastructure.storage import CSVLedgerStore


@pytest.fixture
def state() -> PortfolioState:
    buy = Trade(
        timestamp=datetime(2024, 1, 2, 15, 30),
        symbol="AAPL",
        action=SignalAction.BUY,
        price=100.0,
        quantity=10,
        fee=1.0,
        total_value=1001.0,
    )
    sell = Trade(
        timestamp=datetime(2024, 1, 3, 15, 30),
        symbol="AAPL",
        action=SignalAction.SELL,
        price=110.0,
        quantity=4,
        fee=1.0,
        total_value=439.0,
        realized_pnl=38.6,
        reason="STOP_LOSS",
    )
    return PortfolioState(
        cash=9438.0,
        positions={"AAPL": Position("AAPL", 6, 100.1, stop_loss=95.0)},
        trades=(buy, sell),
        high_water_mark=10050.0,
    )


class TestCSVLedgerStore:
    """Snapshot persistence as CSV files."""

    def test_should_return_none_before_first_save(self, tmp_path) -> None:
        """Test an empty directory holds no snapshot."""
        store = CSVLedgerStore(tmp_path / "ledger")

        assert store.exists() is False
        assert store.load() is None

    def test_should_round_trip_snapshot(self, tmp_path, state: PortfolioState) -> None:
        """Test that a saved snapshot loads back unchanged."""
        # Arrange
        store = CSVLedgerStore(tmp_path / "ledger")

        # Act
        store.save(state)
        loaded = store.load()

        # Assert
        assert loaded.cash == pytest.approx(9438.0)
        assert loaded.high_water_mark == pytest.approx(10050.0)
        position = loaded.positions["AAPL"]
        assert position.quantity == 6
        assert position.stop_loss == 95.0
        assert position.take_profit is None
        assert loaded.trades == state.trades

    def test_should_write_three_files(self, tmp_path, state: PortfolioState) -> None:
        """Test the on-disk layout."""
        store = CSVLedgerStore(tmp_path)

        store.save(state)

        assert store.account_path.exists()
        assert store.positions_path.exists()
        assert store.trades_path.exists()

    def test_should_save_empty_ledger(self, tmp_path) -> None:
        """Test that no positions and no trades round-trip."""
        store = CSVLedgerStore(tmp_path)

        store.save(PortfolioState(cash=100.0, high_water_mark=100.0))
        loaded = store.load()

        assert loaded.positions == {}
        assert loaded.trades == ()

    def test_should_replace_previous_snapshot(self, tmp_path, state: PortfolioState) -> None:
        """Test that save overwrites rather than appends."""
        store = CSVLedgerStore(tmp_path)
        store.save(state)

        store.save(PortfolioState(cash=50.0, high_water_mark=50.0))

        loaded = store.load()
        assert loaded.cash == 50.0
        assert loaded.trades == ()

    def test_should_raise_storage_error_on_corrupt_files(self, tmp_path) -> None:
        """Test that unreadable snapshots surface as StorageError."""
        store = CSVLedgerStore(tmp_path)
        store.account_path.write_text("unexpected,columns\n1,2\n")

        with pytest.raises(StorageError, match="load"):
            store.load()
