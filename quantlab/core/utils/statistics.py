"""
Summary statistics shared by the risk layer and the performance analyzer.

All dispersion measures are population statistics (divide by N).
"""

from collections.abc import Sequence

import numpy as np

from quantlab.core.constants import STDDEV_EPSILON


def calculate_mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.mean(np.asarray(values, dtype=float)))


def calculate_standard_deviation(values: Sequence[float]) -> float:
    """Population standard deviation, 0 for an empty series."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def calculate_correlation(first: Sequence[float], second: Sequence[float]) -> float:
    """Pearson correlation of two equally long series.

    Args:
        first: First series
        second: Second series

    Returns:
        Correlation in [-1, 1]; 0 when lengths differ, fewer than two
        observations exist, or either series has no variance
    """
    if len(first) != len(second) or len(first) < 2:
        return 0.0

    a = np.asarray(first, dtype=float)
    b = np.asarray(second, dtype=float)
    da = a - a.mean()
    db = b - b.mean()

    denominator = float(np.sqrt(np.sum(da * da) * np.sum(db * db)))
    if denominator < STDDEV_EPSILON:
        return 0.0

    return float(np.clip(np.sum(da * db) / denominator, -1.0, 1.0))


def calculate_returns(values: Sequence[float]) -> list[float]:
    """Simple period-over-period returns, skipping zero denominators.

    Examples:
        >>> calculate_returns([100.0, 110.0, 99.0])
        [0.1, -0.1]
    """
    returns: list[float] = []
    for previous, current in zip(values, values[1:], strict=False):
        if previous == 0:
            continue
        returns.append((current - previous) / previous)
    return returns
