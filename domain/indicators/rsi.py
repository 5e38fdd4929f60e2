"""Relative Strength Index (RSI) indicator."""

from domain.failures import IndicatorFailure
from domain.series import validate_period, validate_series


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    # A window with no losses is maximally bullish, not undefined
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def _changes(closes: list[float]) -> tuple[list[float], list[float]]:
    gains = []
    losses = []
    for i in range(1, len(closes)):
        change = closes[i] - closes[i - 1]
        gains.append(max(change, 0.0))
        losses.append(max(-change, 0.0))
    return gains, losses


def rsi(closes: list[float], period: int = 14) -> list[float] | IndicatorFailure:
    """Calculate RSI from simple sliding-window averages.

    Gains and losses are averaged with a plain mean over ``period`` changes,
    not Wilder's smoothing. For window end i in [period, len(changes)) the
    averages cover changes[i - period:i].

    Args:
        closes: List of closing prices
        period: RSI period (default: 14)

    Returns:
        List of len(closes) - period - 1 RSI values (0-100). Element j covers
        closes[j..j + period] and belongs to input index j + period. The most
        recent close is not consumed by any window.

    Example:
        >>> rsi([1, 2, 3, 4, 5, 6], 3)
        [100.0, 100.0]
    """
    failure = validate_series(closes) or validate_period(period, len(closes), 2)
    if failure:
        return failure

    gains, losses = _changes(closes)

    result = []
    for i in range(period, len(gains)):
        avg_gain = sum(gains[i - period:i]) / period
        avg_loss = sum(losses[i - period:i]) / period
        result.append(_rsi_value(avg_gain, avg_loss))

    return result


def rsi_wilder(closes: list[float], period: int = 14) -> list[float] | IndicatorFailure:
    """Calculate RSI using Wilder's smoothing method.

    Matches PineScript ta.rsi behavior.

    Args:
        closes: List of closing prices
        period: RSI period (default: 14)

    Returns:
        List of len(closes) - period RSI values. The first value belongs to
        input index period.

    Notes:
        - Wilder's smoothing: New avg = (prev_avg * (period-1) + current) / period
        - First average is a simple mean of the first 'period' changes
    """
    failure = validate_series(closes) or validate_period(period, len(closes), 1)
    if failure:
        return failure

    gains, losses = _changes(closes)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period
    result = [_rsi_value(avg_gain, avg_loss)]

    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result.append(_rsi_value(avg_gain, avg_loss))

    return result
