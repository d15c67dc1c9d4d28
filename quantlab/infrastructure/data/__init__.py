"""
Market data infrastructure.

This module provides candle loading and conversion and the technical
indicator library used by the risk layer and strategies.
"""

from .candle_loader import CandleCSVLoader, candles_to_frame, frame_to_candles, slice_candles
from .technical_indicators import TechnicalIndicatorsCalculator

__all__ = [
    "CandleCSVLoader",
    "TechnicalIndicatorsCalculator",
    "candles_to_frame",
    "frame_to_candles",
    "slice_candles",
]
