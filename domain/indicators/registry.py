"""
Indicator dispatch and date alignment.

Maps an indicator name to its calculator, runs the series preprocessing
checks, and wraps the compact output in an IndicatorResult whose offset ties
each value back to the input date it belongs to.
"""

from collections.abc import Sequence
from typing import Any

from domain.enums import IndicatorName
from domain.failures import FailureKind, IndicatorFailure, is_failure
from domain.primitives import PriceBar
from domain.series import (
    coerce_series,
    dates_of,
    extract_closes,
    extract_hlc,
    validate_period,
)

from .atr import atr
from .base import IndicatorParams, IndicatorResult
from .bollinger import bollinger_bands
from .macd import macd
from .moving_averages import ema, sma
from .rsi import rsi

AVAILABLE = ", ".join(name.value for name in IndicatorName)

# Extra points each windowed indicator needs beyond its period. RSI needs
# two: one for the first price change and one for its unused newest close.
PERIOD_MARGINS = {
    IndicatorName.SMA: 0,
    IndicatorName.EMA: 0,
    IndicatorName.BOLLINGER: 0,
    IndicatorName.RSI: 2,
    IndicatorName.ATR: 1,
}


def unsupported(name: str) -> IndicatorFailure:
    return IndicatorFailure.of(
        FailureKind.UNSUPPORTED_INDICATOR,
        f"Unsupported indicator: {name}. Available options: {AVAILABLE}",
        indicator=name,
    )


def _from_closes(
    indicator: IndicatorName,
    closes: list[float],
    params: IndicatorParams,
) -> tuple[dict[str, list[float]], int] | IndicatorFailure:
    """Run a close-only indicator, returning (channels, offset)."""
    n = len(closes)

    if indicator in PERIOD_MARGINS:
        failure = validate_period(params.period, n, PERIOD_MARGINS[indicator])
        if failure:
            return failure

    if indicator == IndicatorName.SMA:
        values = sma(closes, params.period)
        if is_failure(values):
            return values
        return {"sma": values}, params.period - 1

    if indicator == IndicatorName.EMA:
        values = ema(closes, params.period)
        if is_failure(values):
            return values
        return {"ema": values}, params.period - 1

    if indicator == IndicatorName.RSI:
        values = rsi(closes, params.period)
        if is_failure(values):
            return values
        return {"rsi": values}, params.period

    if indicator == IndicatorName.MACD:
        lines = macd(closes, params.fast_period, params.slow_period, params.signal_period)
        if is_failure(lines):
            return lines
        macd_line, signal_line, histogram = lines
        return (
            {"macd": macd_line, "signal": signal_line, "histogram": histogram},
            n - len(histogram),
        )

    if indicator == IndicatorName.BOLLINGER:
        bands = bollinger_bands(closes, params.period, params.std_dev_multiplier)
        if is_failure(bands):
            return bands
        middle, upper, lower = bands
        return {"middle": middle, "upper": upper, "lower": lower}, params.period - 1

    return unsupported(indicator.value)


def compute_indicator(
    name: str,
    bars: Sequence[PriceBar],
    params: IndicatorParams | None = None,
    ticker: str | None = None,
) -> IndicatorResult | IndicatorFailure:
    """
    Compute a named indicator over a bar series.

    Args:
        name: Indicator name, case-insensitive (SMA, EMA, RSI, MACD,
            BOLLINGER, ATR)
        bars: Price bars ascending by timestamp
        params: Tunables; defaults substituted when omitted
        ticker: Optional symbol recorded on the result

    Returns:
        IndicatorResult aligned to the bars' dates, or IndicatorFailure
    """
    params = params or IndicatorParams()
    indicator = IndicatorName.parse(name or "")
    if indicator is None:
        return unsupported(name)

    if indicator == IndicatorName.ATR:
        hlc = extract_hlc(bars)
        if is_failure(hlc):
            return hlc
        highs, lows, closes = hlc
        failure = validate_period(params.period, len(closes), PERIOD_MARGINS[indicator])
        if failure:
            return failure
        values = atr(highs, lows, closes, params.period)
        if is_failure(values):
            return values
        outcome: Any = ({"atr": values}, params.period)
    else:
        closes = extract_closes(bars)
        if is_failure(closes):
            return closes
        outcome = _from_closes(indicator, closes, params)
        if is_failure(outcome):
            return outcome

    channels, offset = outcome
    return IndicatorResult(
        name=indicator.value,
        params=params,
        dates=dates_of(bars),
        channels=channels,
        offset=offset,
        ticker=ticker,
    )


def compute_from_values(
    name: str,
    raw_values: Any,
    params: IndicatorParams | None = None,
) -> IndicatorResult | IndicatorFailure:
    """
    Compute a close-only indicator over loosely typed values.

    Values may be numbers, numeric strings or nested lists (spreadsheet
    ranges). With no calendar available, the result's date axis holds
    positional indices. ATR needs high/low/close bars and is rejected here.
    """
    params = params or IndicatorParams()
    indicator = IndicatorName.parse(name or "")
    if indicator is None:
        return unsupported(name)
    if indicator == IndicatorName.ATR:
        return IndicatorFailure.of(
            FailureKind.UNSUPPORTED_INDICATOR,
            "ATR requires high/low/close bars, not a single value series",
            indicator=name,
        )

    closes = coerce_series(raw_values)
    if is_failure(closes):
        return closes

    outcome = _from_closes(indicator, closes, params)
    if is_failure(outcome):
        return outcome

    channels, offset = outcome
    return IndicatorResult(
        name=indicator.value,
        params=params,
        dates=list(range(len(closes))),
        channels=channels,
        offset=offset,
    )
