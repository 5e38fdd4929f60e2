"""MACD (Moving Average Convergence Divergence) indicator."""

from domain.failures import FailureKind, IndicatorFailure, is_failure
from domain.indicators.moving_averages import ema
from domain.series import validate_series


def macd(
    closes: list[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9
) -> tuple[list[float], list[float], list[float]] | IndicatorFailure:
    """Calculate MACD indicator.

    MACD Line = EMA(fast) - EMA(slow)
    Signal Line = EMA(MACD Line, signal periods)
    Histogram = MACD Line - Signal Line

    Args:
        closes: List of closing prices
        fast: Fast EMA period (default: 12)
        slow: Slow EMA period (default: 26)
        signal: Signal line EMA period (default: 9)

    Returns:
        Tuple of (macd_line, signal_line, histogram), all the same length.
        Their first element belongs to input index
        len(closes) - len(histogram).

    Notes:
        - The fast EMA is longer than the slow EMA by (slow - fast); those
          leading values are dropped before subtracting
        - The signal line is an EMA of the MACD line, not of prices
    """
    failure = validate_series(closes)
    if failure:
        return failure

    for name, value in (("fast", fast), ("slow", slow), ("signal", signal)):
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            return IndicatorFailure.of(
                FailureKind.INVALID_PERIOD,
                f"Periods must be positive integers, got {name}={value!r}",
                **{name: value},
            )

    if slow <= fast:
        return IndicatorFailure.of(
            FailureKind.INVALID_ORDERING,
            f"Slow period ({slow}) must be greater than fast period ({fast})",
            fast=fast,
            slow=slow,
        )

    if len(closes) <= slow:
        return IndicatorFailure.of(
            FailureKind.INSUFFICIENT_DATA,
            f"Not enough price data for the specified periods. "
            f"Need at least {slow + signal} points, got {len(closes)}",
            required=slow + signal,
            available=len(closes),
        )

    fast_ema = ema(closes, fast)
    slow_ema = ema(closes, slow)
    if is_failure(fast_ema):
        return fast_ema
    if is_failure(slow_ema):
        return slow_ema

    offset = slow - fast
    macd_line = [fast_ema[i + offset] - slow_ema[i] for i in range(len(slow_ema))]

    if len(macd_line) < signal:
        return IndicatorFailure.of(
            FailureKind.INSUFFICIENT_DATA,
            f"Insufficient data to calculate signal line: "
            f"{len(macd_line)} MACD values, signal period {signal}",
            required=slow + signal - 1,
            available=len(closes),
        )

    signal_line = ema(macd_line, signal)
    if is_failure(signal_line):
        return signal_line

    # WHY: Signal line is shorter than the MACD line; re-align before subtracting
    hist_offset = len(macd_line) - len(signal_line)
    histogram = [macd_line[i + hist_offset] - signal_line[i] for i in range(len(signal_line))]

    min_length = min(len(histogram), len(signal_line))
    return (
        macd_line[len(macd_line) - min_length:],
        signal_line[:min_length],
        histogram[:min_length],
    )
