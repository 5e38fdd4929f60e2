"""Average True Range (ATR) indicator."""

from domain.failures import FailureKind, IndicatorFailure
from domain.series import validate_period, validate_series


def true_range(
    highs: list[float],
    lows: list[float],
    closes: list[float],
) -> list[float]:
    """True range for bars 1..n-1 (bar 0 has no previous close)."""
    ranges = []
    for i in range(1, len(closes)):
        high_low = highs[i] - lows[i]
        high_prev_close = abs(highs[i] - closes[i - 1])
        low_prev_close = abs(lows[i] - closes[i - 1])
        ranges.append(max(high_low, high_prev_close, low_prev_close))
    return ranges


def atr(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    period: int = 14
) -> list[float] | IndicatorFailure:
    """Calculate Average True Range using Wilder's smoothing.

    True Range = max(high - low, abs(high - prev_close), abs(low - prev_close))
    ATR = Wilder's smoothed average of True Range

    Args:
        highs: List of high prices
        lows: List of low prices
        closes: List of closing prices
        period: ATR period (default: 14)

    Returns:
        List of len(closes) - period ATR values. The first value belongs to
        bar index ``period``.

    Notes:
        - First ATR value is simple average of the first 'period' true ranges
          (bars 1..period)
        - Subsequent values: atr = (prev_atr * (period - 1) + tr) / period
    """
    for series in (highs, lows, closes):
        failure = validate_series(series)
        if failure:
            return failure

    if len(highs) != len(lows) or len(highs) != len(closes):
        return IndicatorFailure.of(
            FailureKind.INVALID_PRICE,
            "highs, lows, and closes must have same length",
            highs=len(highs),
            lows=len(lows),
            closes=len(closes),
        )

    failure = validate_period(period, len(closes), 1)
    if failure:
        return failure

    ranges = true_range(highs, lows, closes)

    # WHY: First ATR is simple average of first 'period' true ranges
    atr_value = sum(ranges[:period]) / period
    result = [atr_value]

    for tr in ranges[period:]:
        atr_value = (atr_value * (period - 1) + tr) / period
        result.append(atr_value)

    return result
