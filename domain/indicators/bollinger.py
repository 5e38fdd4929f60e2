"""Bollinger Bands indicator."""

import math

from domain.failures import FailureKind, IndicatorFailure
from domain.series import validate_period, validate_series


def bollinger_bands(
    closes: list[float],
    period: int = 20,
    std_dev_multiplier: float = 2.0
) -> tuple[list[float], list[float], list[float]] | IndicatorFailure:
    """Calculate Bollinger Bands.

    Middle Band = SMA
    Upper Band = SMA + (std_dev_multiplier * standard_deviation)
    Lower Band = SMA - (std_dev_multiplier * standard_deviation)

    Standard deviation is the population form (divisor = period).

    Args:
        closes: List of closing prices
        period: Period for SMA and standard deviation (default: 20)
        std_dev_multiplier: Number of standard deviations for bands (default: 2.0)

    Returns:
        Tuple of (middle_band, upper_band, lower_band), each of length
        len(closes) - period + 1, aligned like SMA.

    Example:
        >>> middle, upper, lower = bollinger_bands([100] * 5, period=3)
        >>> middle == upper == lower
        True
    """
    failure = validate_series(closes) or validate_period(period, len(closes))
    if failure:
        return failure

    if (isinstance(std_dev_multiplier, bool)
            or not isinstance(std_dev_multiplier, (int, float))
            or not math.isfinite(std_dev_multiplier)
            or std_dev_multiplier < 0):
        return IndicatorFailure.of(
            FailureKind.INVALID_PERIOD,
            f"Invalid standard deviation multiplier: {std_dev_multiplier!r}",
            std_dev_multiplier=std_dev_multiplier,
        )

    middle_band = []
    upper_band = []
    lower_band = []

    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1:i + 1]

        mean = sum(window) / period
        variance = sum((x - mean) ** 2 for x in window) / period
        width = math.sqrt(variance) * std_dev_multiplier

        middle_band.append(mean)
        upper_band.append(mean + width)
        lower_band.append(mean - width)

    return (middle_band, upper_band, lower_band)
