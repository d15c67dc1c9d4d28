"""
Technical Indicators.

This module provides the indicator library used by the risk layer and by
strategies. Series functions map an input series to a list of the same
length whose leading entries are None until enough history exists to seed
the calculation. Wilder-smoothed indicators (RSI, ATR, ADX) seed with a
simple average over the first `period` observations and then follow
prev * (period - 1) / period + current / period.

The TechnicalIndicatorsCalculator at the bottom applies the same functions
to OHLCV DataFrames using the Strategy Pattern.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np
import pandas as pd
from loguru import logger

from quantlab.core.constants import BOLLINGER_PERIOD, BOLLINGER_STD_MULTIPLIER
from quantlab.core.exceptions.backtest import DataError
from quantlab.core.models.candle import Candle

IndicatorSeries = list[float | None]


@dataclass(frozen=True)
class BandResult:
    """Three aligned indicator series (channels and bands)."""

    upper: IndicatorSeries
    middle: IndicatorSeries
    lower: IndicatorSeries


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram."""

    macd_line: IndicatorSeries
    signal_line: IndicatorSeries
    histogram: IndicatorSeries


def _to_optional(values: Sequence[float] | np.ndarray) -> IndicatorSeries:
    """Convert NaN entries to None."""
    return [None if v is None or math.isnan(v) else float(v) for v in values]


def _ohlcv(candles: Sequence[Candle]) -> tuple[np.ndarray, ...]:
    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)
    closes = np.array([c.close for c in candles], dtype=float)
    volumes = np.array([c.volume for c in candles], dtype=float)
    return highs, lows, closes, volumes


# --- Moving averages ---------------------------------------------------------


def calculate_sma(values: Sequence[float], period: int) -> IndicatorSeries:
    """Simple moving average over a trailing window of `period` values."""
    n = len(values)
    if period <= 0 or n < period:
        return [None] * n

    windows = np.lib.stride_tricks.sliding_window_view(np.asarray(values, dtype=float), period)
    return [None] * (period - 1) + _to_optional(windows.mean(axis=1))


def _recursive_moving_average(values: Sequence[float], period: int, k: float) -> IndicatorSeries:
    """MA_t = value_t * k + MA_(t-1) * (1 - k), seeded with the SMA of the first window."""
    n = len(values)
    if period <= 0 or n < period:
        return [None] * n

    result: IndicatorSeries = [None] * (period - 1)
    previous = sum(values[:period]) / period
    result.append(previous)
    for value in values[period:]:
        previous = value * k + previous * (1 - k)
        result.append(previous)
    return result


def wilders_smoothing(values: Sequence[float], period: int) -> IndicatorSeries:
    """Wilder's modified moving average (k = 1 / period)."""
    return _recursive_moving_average(values, period, 1 / period if period > 0 else 0.0)


def calculate_ema(values: Sequence[float], period: int) -> IndicatorSeries:
    """Exponential moving average (k = 2 / (period + 1)) seeded with an SMA."""
    return _recursive_moving_average(values, period, 2 / (period + 1))


# --- Oscillators -------------------------------------------------------------


def calculate_rsi(values: Sequence[float], period: int = 14) -> IndicatorSeries:
    """Relative Strength Index with Wilder smoothing.

    Index 0 is always None (no prior change). RSI is 100 when the smoothed
    loss is zero.
    """
    n = len(values)
    if n < period + 1:
        return [None] * n

    changes = np.diff(np.asarray(values, dtype=float))
    gains = np.where(changes > 0, changes, 0.0).tolist()
    losses = np.where(changes < 0, -changes, 0.0).tolist()

    average_gains = wilders_smoothing(gains, period)
    average_losses = wilders_smoothing(losses, period)

    rsi: IndicatorSeries = [None]
    for gain, loss in zip(average_gains, average_losses, strict=True):
        if gain is None or loss is None:
            rsi.append(None)
        elif loss == 0:
            rsi.append(100.0)
        else:
            rsi.append(100 - 100 / (1 + gain / loss))
    return rsi


def calculate_macd(
    values: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """Moving Average Convergence Divergence.

    The signal line is the EMA of the MACD line's defined values, realigned
    to the input index.
    """
    n = len(values)
    fast = calculate_ema(values, fast_period)
    slow = calculate_ema(values, slow_period)
    macd_line: IndicatorSeries = [
        f - s if f is not None and s is not None else None for f, s in zip(fast, slow, strict=True)
    ]

    signal_line: IndicatorSeries = [None] * n
    histogram: IndicatorSeries = [None] * n
    first_valid = next((i for i, v in enumerate(macd_line) if v is not None), None)
    if first_valid is not None:
        valid_macd = [v for v in macd_line[first_valid:] if v is not None]
        for offset, signal_value in enumerate(calculate_ema(valid_macd, signal_period)):
            if signal_value is None:
                continue
            index = first_valid + offset
            signal_line[index] = signal_value
            histogram[index] = valid_macd[offset] - signal_value

    return MACDResult(macd_line=macd_line, signal_line=signal_line, histogram=histogram)


# --- Volatility and trend ----------------------------------------------------


def _true_ranges(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> list[float]:
    """True range; the first bar has no previous close and uses high - low."""
    if len(highs) == 0:
        return []
    ranges = highs - lows
    previous_close = closes[:-1]
    ranges[1:] = np.maximum.reduce(
        [ranges[1:], np.abs(highs[1:] - previous_close), np.abs(lows[1:] - previous_close)]
    )
    return ranges.tolist()


def _atr_from_arrays(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int
) -> IndicatorSeries:
    if period <= 0:
        return [None] * len(highs)
    return wilders_smoothing(_true_ranges(highs, lows, closes), period)


def calculate_atr(candles: Sequence[Candle], period: int = 14) -> IndicatorSeries:
    """Average True Range using Wilder's smoothing.

    Args:
        candles: OHLC bars in time order
        period: Window size (typically 14)

    Returns:
        ATR per bar, None before index period - 1
    """
    if not candles:
        return []
    highs, lows, closes, _ = _ohlcv(candles)
    return _atr_from_arrays(highs, lows, closes, period)


def _adx_from_arrays(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int
) -> IndicatorSeries:
    n = len(highs)
    if period <= 0 or n < period * 2 - 1:
        return [None] * n

    up_moves = np.zeros(n)
    down_moves = np.zeros(n)
    up_moves[1:] = highs[1:] - highs[:-1]
    down_moves[1:] = lows[:-1] - lows[1:]
    plus_dm = np.where((up_moves > down_moves) & (up_moves > 0), up_moves, 0.0)
    minus_dm = np.where((down_moves > up_moves) & (down_moves > 0), down_moves, 0.0)

    smoothed_tr = wilders_smoothing(_true_ranges(highs, lows, closes), period)
    smoothed_plus = wilders_smoothing(plus_dm.tolist(), period)
    smoothed_minus = wilders_smoothing(minus_dm.tolist(), period)

    dx: list[float] = []
    for tr, pdm, mdm in zip(smoothed_tr, smoothed_plus, smoothed_minus, strict=True):
        if tr is None or pdm is None or mdm is None or tr == 0:
            dx.append(0.0)
            continue
        plus_di = pdm / tr * 100
        minus_di = mdm / tr * 100
        total = plus_di + minus_di
        dx.append(0.0 if total == 0 else abs(plus_di - minus_di) / total * 100)

    first_valid = period - 1
    return [None] * first_valid + wilders_smoothing(dx[first_valid:], period)


def calculate_adx(candles: Sequence[Candle], period: int = 14) -> IndicatorSeries:
    """Average Directional Index (trend strength regardless of direction).

    ADX is the Wilder smoothing of DX starting from the first bar where the
    directional indicators are defined, so the first value appears at index
    2 * period - 2. Fewer than 2 * period - 1 bars yield only None.
    """
    highs, lows, closes, _ = _ohlcv(candles)
    return _adx_from_arrays(highs, lows, closes, period)


def calculate_bollinger_bands(
    values: Sequence[float],
    period: int = BOLLINGER_PERIOD,
    multiplier: float = BOLLINGER_STD_MULTIPLIER,
) -> BandResult:
    """Bollinger Bands: SMA +/- multiplier * population standard deviation."""
    n = len(values)
    if period <= 0 or n < period:
        empty: IndicatorSeries = [None] * n
        return BandResult(upper=list(empty), middle=list(empty), lower=list(empty))

    windows = np.lib.stride_tricks.sliding_window_view(np.asarray(values, dtype=float), period)
    middle = windows.mean(axis=1)
    deviation = windows.std(axis=1) * multiplier
    padding: IndicatorSeries = [None] * (period - 1)
    return BandResult(
        upper=padding + _to_optional(middle + deviation),
        middle=padding + _to_optional(middle),
        lower=padding + _to_optional(middle - deviation),
    )


def _donchian_from_arrays(highs: np.ndarray, lows: np.ndarray, period: int) -> BandResult:
    window = max(period, 1)
    upper = pd.Series(highs).rolling(window, min_periods=1).max().to_numpy()
    lower = pd.Series(lows).rolling(window, min_periods=1).min().to_numpy()
    return BandResult(
        upper=_to_optional(upper),
        middle=_to_optional((upper + lower) / 2),
        lower=_to_optional(lower),
    )


def calculate_donchian_channels(candles: Sequence[Candle], period: int = 20) -> BandResult:
    """Donchian Channels: highest high and lowest low of the last `period` bars.

    Early bars use an expanding window instead of returning None.
    """
    highs, lows, _, _ = _ohlcv(candles)
    return _donchian_from_arrays(highs, lows, period)


# --- Volume ------------------------------------------------------------------


def _obv_from_arrays(closes: np.ndarray, volumes: np.ndarray) -> IndicatorSeries:
    if len(closes) == 0:
        return []
    direction = np.sign(np.diff(closes))
    obv = np.concatenate(([volumes[0]], volumes[0] + np.cumsum(direction * volumes[1:])))
    return _to_optional(obv)


def calculate_obv(candles: Sequence[Candle]) -> IndicatorSeries:
    """On-Balance Volume, starting from the first bar's volume."""
    _, _, closes, volumes = _ohlcv(candles)
    return _obv_from_arrays(closes, volumes)


def _vwap_from_arrays(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, volumes: np.ndarray
) -> IndicatorSeries:
    typical = (highs + lows + closes) / 3
    cumulative_volume = np.cumsum(volumes)
    cumulative_value = np.cumsum(typical * volumes)
    with np.errstate(divide="ignore", invalid="ignore"):
        vwap = np.where(cumulative_volume == 0, np.nan, cumulative_value / cumulative_volume)
    return _to_optional(vwap)


def calculate_vwap(candles: Sequence[Candle]) -> IndicatorSeries:
    """Cumulative VWAP over the provided history; None while volume is zero."""
    highs, lows, closes, volumes = _ohlcv(candles)
    return _vwap_from_arrays(highs, lows, closes, volumes)


def _mfi_from_arrays(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    volumes: np.ndarray,
    period: int,
) -> IndicatorSeries:
    n = len(highs)
    result: IndicatorSeries = [None] * n
    if period <= 0 or n < period + 1:
        return result

    typical = (highs + lows + closes) / 3
    raw_flow = typical * volumes
    positive = np.zeros(n)
    negative = np.zeros(n)
    rising = np.zeros(n, dtype=bool)
    falling = np.zeros(n, dtype=bool)
    rising[1:] = typical[1:] > typical[:-1]
    falling[1:] = typical[1:] < typical[:-1]
    positive[rising] = raw_flow[rising]
    negative[falling] = raw_flow[falling]

    for i in range(period, n):
        positive_sum = positive[i - period + 1 : i + 1].sum()
        negative_sum = negative[i - period + 1 : i + 1].sum()
        if negative_sum == 0:
            result[i] = 100.0
        else:
            result[i] = float(100 - 100 / (1 + positive_sum / negative_sum))
    return result


def calculate_mfi(candles: Sequence[Candle], period: int = 14) -> IndicatorSeries:
    """Money Flow Index, a volume-weighted RSI; 100 when there is no negative flow."""
    highs, lows, closes, volumes = _ohlcv(candles)
    return _mfi_from_arrays(highs, lows, closes, volumes, period)


# --- Summary statistics ------------------------------------------------------


def calculate_hurst_exponent(values: Sequence[float], min_window: int = 8) -> float | None:
    """Estimate the Hurst exponent of a price series by rescaled-range analysis.

    Values near 0.5 indicate a random walk, above 0.5 persistence (trend),
    below 0.5 anti-persistence (mean reversion).

    Args:
        values: Prices in time order (must be positive)
        min_window: Smallest chunk size of log returns

    Returns:
        Slope of log(R/S) against log(window), None with too little data
    """
    prices = np.asarray(values, dtype=float)
    if len(prices) < 2 or np.any(prices <= 0):
        return None

    returns = np.diff(np.log(prices))
    n = len(returns)
    if n < 2 * min_window:
        return None

    windows = np.unique(np.floor(np.geomspace(min_window, n // 2, num=10)).astype(int))
    log_windows: list[float] = []
    log_rs: list[float] = []
    for window in windows:
        chunk_count = n // window
        chunks = returns[: chunk_count * window].reshape(chunk_count, window)
        deviations = np.cumsum(chunks - chunks.mean(axis=1, keepdims=True), axis=1)
        ranges = deviations.max(axis=1) - deviations.min(axis=1)
        stds = chunks.std(axis=1)
        valid = stds > 0
        if not np.any(valid):
            continue
        log_windows.append(math.log(window))
        log_rs.append(math.log(float(np.mean(ranges[valid] / stds[valid]))))

    if len(log_windows) < 2:
        return None
    slope, _ = np.polyfit(log_windows, log_rs, 1)
    return float(slope)


# --- DataFrame calculator (Strategy Pattern) ---------------------------------


class IndicatorStrategy(Protocol):
    """Protocol for technical indicator calculation strategies."""

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Calculate specific indicator for the given data."""
        ...


def _column(data: pd.DataFrame, name: str) -> np.ndarray:
    return data[name].to_numpy(dtype=float)


class MovingAverageStrategy:
    """Strategy for calculating moving averages (SMA and EMA)."""

    def __init__(self, sma_periods: Sequence[int] = (20, 50), ema_periods: Sequence[int] = (12, 26)):
        """Initialize with the windows to add."""
        self.sma_periods = tuple(sma_periods)
        self.ema_periods = tuple(ema_periods)

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add simple and exponential moving averages."""
        result = data.copy()
        closes = _column(result, "close").tolist()
        for period in self.sma_periods:
            result[f"sma_{period}"] = calculate_sma(closes, period)
        for period in self.ema_periods:
            result[f"ema_{period}"] = calculate_ema(closes, period)
        return result


class MACDStrategy:
    """Strategy for calculating MACD indicators."""

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add MACD line, signal and histogram."""
        result = data.copy()
        macd = calculate_macd(_column(result, "close").tolist())
        result["macd"] = macd.macd_line
        result["macd_signal"] = macd.signal_line
        result["macd_histogram"] = macd.histogram
        return result


class RSIStrategy:
    """Strategy for calculating RSI (Relative Strength Index) indicator."""

    def __init__(self, period: int = 14):
        """Initialize RSI strategy with configurable period."""
        self.period = period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add RSI indicator."""
        result = data.copy()
        result["rsi"] = calculate_rsi(_column(result, "close").tolist(), self.period)
        return result


class BollingerBandsStrategy:
    """Strategy for calculating Bollinger Bands indicators."""

    def __init__(self, period: int = BOLLINGER_PERIOD, std_multiplier: float = BOLLINGER_STD_MULTIPLIER):
        """Initialize Bollinger Bands strategy with configurable parameters."""
        self.period = period
        self.std_multiplier = std_multiplier

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add Bollinger Bands indicators."""
        result = data.copy()
        bands = calculate_bollinger_bands(
            _column(result, "close").tolist(), self.period, self.std_multiplier
        )
        result["bb_upper"] = bands.upper
        result["bb_middle"] = bands.middle
        result["bb_lower"] = bands.lower
        return result


class VolatilityStrategy:
    """Strategy for calculating ATR, ADX and Donchian channels."""

    def __init__(self, atr_period: int = 14, adx_period: int = 14, donchian_period: int = 20):
        """Initialize with indicator windows."""
        self.atr_period = atr_period
        self.adx_period = adx_period
        self.donchian_period = donchian_period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add ATR, ADX and Donchian channel columns."""
        result = data.copy()
        highs, lows, closes = _column(result, "high"), _column(result, "low"), _column(result, "close")
        result["atr"] = _atr_from_arrays(highs, lows, closes, self.atr_period)
        result["adx"] = _adx_from_arrays(highs, lows, closes, self.adx_period)
        channels = _donchian_from_arrays(highs, lows, self.donchian_period)
        result["donchian_upper"] = channels.upper
        result["donchian_middle"] = channels.middle
        result["donchian_lower"] = channels.lower
        return result


class VolumeStrategy:
    """Strategy for calculating OBV, VWAP and MFI indicators."""

    def __init__(self, mfi_period: int = 14):
        """Initialize with the MFI window."""
        self.mfi_period = mfi_period

    def calculate(self, data: pd.DataFrame) -> pd.DataFrame:
        """Add volume-based indicators."""
        result = data.copy()
        highs, lows = _column(result, "high"), _column(result, "low")
        closes, volumes = _column(result, "close"), _column(result, "volume")
        result["obv"] = _obv_from_arrays(closes, volumes)
        result["vwap"] = _vwap_from_arrays(highs, lows, closes, volumes)
        result["mfi"] = _mfi_from_arrays(highs, lows, closes, volumes, self.mfi_period)
        return result


class TechnicalIndicatorsCalculator:
    """
    Technical indicators calculator using Strategy Pattern.

    This class orchestrates different indicator calculation strategies
    and provides a clean interface for adding indicators to OHLCV data.
    """

    def __init__(self) -> None:
        """Initialize calculator with default strategies."""
        self._strategies: dict[str, IndicatorStrategy] = {
            "moving_averages": MovingAverageStrategy(),
            "macd": MACDStrategy(),
            "rsi": RSIStrategy(),
            "bollinger_bands": BollingerBandsStrategy(),
            "volatility": VolatilityStrategy(),
            "volume": VolumeStrategy(),
        }
        self._failure_counts: dict[str, int] = {}

    def add_strategy(self, name: str, strategy: IndicatorStrategy) -> None:
        """Add a new indicator calculation strategy."""
        self._strategies[name] = strategy

    def remove_strategy(self, name: str) -> None:
        """Remove an indicator calculation strategy."""
        self._strategies.pop(name, None)

    def calculate_all_indicators(self, data: pd.DataFrame) -> pd.DataFrame:
        """
        Calculate all configured technical indicators.

        A strategy that fails on bad input is counted and skipped; anything
        unexpected aborts the calculation with DataError.

        Args:
            data: OHLCV DataFrame

        Returns:
            DataFrame with additional indicator columns
        """
        if data.empty:
            return data

        result = data.copy()
        for name, strategy in self._strategies.items():
            logger.debug(f"Calculating {name} indicators")
            try:
                result = strategy.calculate(result)
            except (ValueError, TypeError, KeyError) as strategy_error:
                self._failure_counts[name] = self._failure_counts.get(name, 0) + 1
                logger.warning(
                    f"Failed {name} (failure #{self._failure_counts[name]}): {strategy_error}"
                )
                continue
            except Exception as unexpected_error:
                logger.error(f"Unexpected error calculating {name} indicator: {unexpected_error}")
                raise DataError(
                    f"Technical indicator calculation failed for {name}"
                ) from unexpected_error

        logger.info(f"Calculated all technical indicators for {len(result)} rows")
        return result

    def calculate_specific_indicators(
        self, data: pd.DataFrame, indicator_names: list[str]
    ) -> pd.DataFrame:
        """
        Calculate only specific technical indicators.

        Args:
            data: OHLCV DataFrame
            indicator_names: List of indicator strategy names to calculate

        Returns:
            DataFrame with specified indicator columns
        """
        if data.empty:
            return data

        try:
            result = data.copy()
            for name in indicator_names:
                if name in self._strategies:
                    logger.debug(f"Calculating {name} indicators")
                    result = self._strategies[name].calculate(result)
                else:
                    logger.warning(f"Unknown indicator strategy: {name}")

            logger.info(f"Calculated {indicator_names} indicators for {len(result)} rows")
            return result

        except (ValueError, TypeError, KeyError) as e:
            logger.error(f"Failed to calculate specific indicators: {e}")
            raise DataError(f"Specific technical indicators calculation failed: {e}") from e

    def get_available_indicators(self) -> list[str]:
        """Get list of available indicator strategies."""
        return list(self._strategies.keys())

    def get_failure_statistics(self) -> dict[str, int]:
        """Get failure counts for each indicator strategy."""
        return self._failure_counts.copy()
