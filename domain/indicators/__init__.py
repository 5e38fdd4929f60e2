"""Technical indicators for price series.

Pure Python implementations of common technical indicators. Every function
returns its computed series, or an IndicatorFailure describing which
precondition failed. Outputs are compact: warm-up positions are omitted, and
each function documents the input index of its first value.

Indicators:
    - SMA / EMA: Simple and exponential moving averages
    - RSI: Relative Strength Index (simple-window and Wilder variants)
    - MACD: Moving Average Convergence Divergence
    - Bollinger Bands: Volatility bands using population standard deviation
    - ATR: Average True Range using Wilder's smoothing

Example:
    >>> from domain.indicators import sma, macd, bollinger_bands
    >>>
    >>> sma([1, 2, 3, 4, 5], 3)
    [2.0, 3.0, 4.0]
    >>> macd_line, signal_line, histogram = macd(list(range(10, 60)))
    >>> middle, upper, lower = bollinger_bands([20, 21, 22, 23, 24], period=3)
"""

from domain.indicators.atr import atr, true_range
from domain.indicators.base import IndicatorParams, IndicatorResult
from domain.indicators.bollinger import bollinger_bands
from domain.indicators.macd import macd
from domain.indicators.moving_averages import ema, sma
from domain.indicators.registry import (
    PERIOD_MARGINS,
    compute_from_values,
    compute_indicator,
)
from domain.indicators.rsi import rsi, rsi_wilder

__all__ = [
    # Base types
    "IndicatorParams",
    "IndicatorResult",
    # Moving averages
    "sma",
    "ema",
    # Oscillators
    "rsi",
    "rsi_wilder",
    "macd",
    # Volatility
    "bollinger_bands",
    "atr",
    "true_range",
    # Dispatch
    "PERIOD_MARGINS",
    "compute_indicator",
    "compute_from_values",
]
