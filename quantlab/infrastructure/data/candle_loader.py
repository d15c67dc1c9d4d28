"""
Candle loading and conversion utilities.

This module converts between OHLCV DataFrames and Candle sequences and
loads candle series from CSV files. Timestamps are normalized to naive
UTC datetimes.
"""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pandas as pd
from loguru import logger

from quantlab.core.exceptions.backtest import DataError, ValidationError
from quantlab.core.models.candle import Candle

OHLCV_COLUMNS = ["timestamp", "open", "high", "low", "close", "volume"]


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    """Convert candles to an OHLCV DataFrame with a datetime `timestamp` column."""
    if not candles:
        return pd.DataFrame(columns=OHLCV_COLUMNS)
    return pd.DataFrame(
        {
            "timestamp": [c.time for c in candles],
            "open": [c.open for c in candles],
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )


def _normalize_timestamps(column: pd.Series) -> pd.Series:
    """Epoch milliseconds or ISO strings to naive UTC datetimes."""
    if pd.api.types.is_numeric_dtype(column):
        return pd.to_datetime(column, unit="ms")
    return pd.to_datetime(column, utc=True).dt.tz_convert(None)


def frame_to_candles(data: pd.DataFrame) -> list[Candle]:
    """
    Convert an OHLCV DataFrame to time-ordered candles.

    Args:
        data: Frame with timestamp, open, high, low, close and volume columns

    Returns:
        Candles sorted by time with duplicate timestamps removed

    Raises:
        DataError: If columns are missing or a row is not a valid candle
    """
    missing = [column for column in OHLCV_COLUMNS if column not in data.columns]
    if missing:
        raise DataError(f"Missing required columns: {missing}")
    if data.empty:
        return []

    frame = data[OHLCV_COLUMNS].copy()
    frame["timestamp"] = _normalize_timestamps(frame["timestamp"])
    frame = frame.sort_values("timestamp", kind="stable").drop_duplicates(
        subset=["timestamp"], keep="first"
    )

    try:
        return [
            Candle(
                time=row.timestamp.to_pydatetime(),
                open=float(row.open),
                high=float(row.high),
                low=float(row.low),
                close=float(row.close),
                volume=float(row.volume),
            )
            for row in frame.itertuples(index=False)
        ]
    except ValidationError as e:
        raise DataError(f"Invalid candle data: {e}") from e


def slice_candles(
    candles: Sequence[Candle], start: datetime | None = None, end: datetime | None = None
) -> list[Candle]:
    """Candles with start <= time < end; open bounds when None."""
    return [
        candle
        for candle in candles
        if (start is None or candle.time >= start) and (end is None or candle.time < end)
    ]


class CandleCSVLoader:
    """Loads candle series from OHLCV CSV files."""

    def __init__(self, data_directory: Path | str | None = None):
        """Initialize with an optional base directory for relative paths."""
        self.data_directory = Path(data_directory) if data_directory is not None else None

    def _resolve(self, path: Path | str) -> Path:
        file_path = Path(path)
        if self.data_directory is not None and not file_path.is_absolute():
            return self.data_directory / file_path
        return file_path

    def load(self, path: Path | str) -> list[Candle]:
        """
        Load one CSV file as a candle series.

        Args:
            path: CSV file (relative to the data directory when one is set)

        Returns:
            Time-ordered candles

        Raises:
            DataError: If the file is missing, unreadable or malformed
        """
        file_path = self._resolve(path)
        if not file_path.exists():
            raise DataError(f"Data file not found: {file_path}")

        try:
            logger.debug(f"Loading file: {file_path}")
            data = pd.read_csv(file_path)
        except pd.errors.EmptyDataError:
            logger.warning(f"Empty data file: {file_path.name}")
            return []
        except OSError as e:
            logger.error(f"File system error loading {file_path.name}: {e}")
            raise DataError(f"File system error loading {file_path.name}") from e
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            logger.error(f"CSV parsing error ({type(e).__name__}) in {file_path.name}: {e}")
            raise DataError(f"Failed to parse CSV file: {file_path.name}") from e

        try:
            candles = frame_to_candles(data)
        except (ValueError, TypeError) as e:
            raise DataError(f"Invalid values in {file_path.name}: {e}") from e

        logger.info(f"Loaded {len(candles)} candles from {file_path.name}")
        return candles

    def load_universe(self, files: dict[str, Path | str]) -> dict[str, list[Candle]]:
        """Load one series per symbol."""
        return {symbol: self.load(path) for symbol, path in files.items()}
