"""Moving average indicators."""

from domain.failures import IndicatorFailure
from domain.series import validate_period, validate_series


def sma(values: list[float], period: int) -> list[float] | IndicatorFailure:
    """Calculate Simple Moving Average.

    Args:
        values: List of values to calculate SMA over
        period: Number of periods for the moving average

    Returns:
        List of len(values) - period + 1 SMA values. Element j belongs to
        input index j + period - 1. IndicatorFailure on bad input.

    Example:
        >>> sma([1, 2, 3, 4, 5], 3)
        [2.0, 3.0, 4.0]
    """
    failure = validate_series(values) or validate_period(period, len(values))
    if failure:
        return failure

    result = []
    for i in range(period - 1, len(values)):
        window = values[i - period + 1:i + 1]
        result.append(sum(window) / period)

    return result


def ema(values: list[float], period: int) -> list[float] | IndicatorFailure:
    """Calculate Exponential Moving Average.

    Seeded with the SMA of the first ``period`` values, then
    ema = (value - prev) * multiplier + prev with multiplier = 2/(period+1).

    Args:
        values: List of values to calculate EMA over
        period: Number of periods for the moving average

    Returns:
        List of len(values) - period + 1 EMA values. The seed is the first
        element and belongs to input index period - 1.

    Example:
        >>> ema([1, 2, 3, 4, 5], 3)
        [2.0, 3.0, 4.0]
    """
    failure = validate_series(values) or validate_period(period, len(values))
    if failure:
        return failure

    multiplier = 2.0 / (period + 1)

    # WHY: First EMA value is SMA of first 'period' values
    current = sum(values[:period]) / period
    result = [current]

    # Strictly left-to-right: each value depends on its predecessor
    for i in range(period, len(values)):
        current = (values[i] - current) * multiplier + current
        result.append(current)

    return result
