"""
Series preprocessing.

Converts loosely typed external data (provider bar records, spreadsheet cell
values) into the strict numeric series the indicator calculator consumes.
Every check returns an IndicatorFailure rather than raising.
"""

import math
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any

from .failures import FailureKind, IndicatorFailure
from .primitives import PriceBar

# Provider bar record keys: open, high, low, close, volume, epoch millis
BAR_FIELDS = ("o", "h", "l", "c", "v", "t")


def is_finite_number(value: Any) -> bool:
    """True for real, finite ints/floats. Booleans are not prices."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # int too large for a float
        return False


# ============================================================================
# Validation
# ============================================================================

def validate_numeric(series: Sequence[Any]) -> IndicatorFailure | None:
    """Fail with INVALID_PRICE on the first non-finite or non-numeric element."""
    for index, value in enumerate(series):
        if not is_finite_number(value):
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Invalid price at position {index}: {value!r}",
                position=index,
            )
    return None


def validate_series(series: Sequence[Any] | None) -> IndicatorFailure | None:
    """Non-empty and all numeric."""
    if not series:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No price data to compute on")
    return validate_numeric(series)


def validate_period(
    period: Any,
    series_length: int,
    margin_required: int = 0,
) -> IndicatorFailure | None:
    """
    Check a lookback window against the available data.

    Fails with INVALID_PERIOD when period is not a positive integer or
    period > series_length - margin_required.
    """
    if isinstance(period, bool) or not isinstance(period, int):
        return IndicatorFailure.of(
            FailureKind.INVALID_PERIOD,
            f"Invalid period: {period!r}. Must be a positive integer",
            period=period,
        )

    upper = series_length - margin_required
    if period <= 0 or period > upper:
        return IndicatorFailure.of(
            FailureKind.INVALID_PERIOD,
            f"Invalid period: {period}. Must be between 1 and {max(upper, 0)}",
            period=period,
            series_length=series_length,
        )
    return None


# ============================================================================
# Extraction
# ============================================================================

def extract_closes(bars: Sequence[PriceBar]) -> list[float] | IndicatorFailure:
    """Map each bar to its close price."""
    if not bars:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No bars to extract closes from")

    closes = [bar.close for bar in bars]
    failure = validate_numeric(closes)
    if failure:
        return failure
    return closes


def extract_hlc(
    bars: Sequence[PriceBar],
) -> tuple[list[float], list[float], list[float]] | IndicatorFailure:
    """Highs, lows and closes as parallel lists."""
    if not bars:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No bars to extract prices from")

    highs = [bar.high for bar in bars]
    lows = [bar.low for bar in bars]
    closes = [bar.close for bar in bars]
    for series in (highs, lows, closes):
        failure = validate_numeric(series)
        if failure:
            return failure
    return highs, lows, closes


def dates_of(bars: Sequence[PriceBar]) -> list[date]:
    return [bar.date for bar in bars]


# ============================================================================
# Validated construction from untyped input
# ============================================================================

def _flatten(raw: Any) -> Iterable[Any]:
    # Spreadsheet ranges arrive as arrays-of-arrays; read them row-major
    if isinstance(raw, (list, tuple)):
        for item in raw:
            yield from _flatten(item)
    else:
        yield raw


def _parse_cell(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if is_finite_number(value) else None
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        if not text:
            return None
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def coerce_series(raw: Any) -> list[float] | IndicatorFailure:
    """
    Convert spreadsheet-style input into a list of floats.

    Accepts scalars, numeric strings, and (nested) lists. Anything that does
    not parse to a finite number fails the whole series.

    Example:
        >>> coerce_series([["1"], [2.5], ["1,000"]])
        [1.0, 2.5, 1000.0]
    """
    if raw is None:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No values supplied")

    cells = list(_flatten(raw))
    if not cells:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No values supplied")

    values = []
    for index, cell in enumerate(cells):
        parsed = _parse_cell(cell)
        if parsed is None:
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Invalid price at position {index}: {cell!r}",
                position=index,
            )
        values.append(parsed)
    return values


def _to_volume(value: Any) -> int | None:
    if not is_finite_number(value) or value < 0:
        return None
    # Some aggregates report fractional volume
    return int(round(value))


def bars_from_records(records: Sequence[dict[str, Any]] | None) -> list[PriceBar] | IndicatorFailure:
    """
    Decode provider aggregate records into PriceBars.

    Each record needs numeric ``o``, ``h``, ``l``, ``c``, ``v`` and a
    millisecond epoch ``t``.
    """
    if not records:
        return IndicatorFailure.of(FailureKind.EMPTY_SERIES, "No bars returned")

    bars = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Malformed bar at position {index}",
                position=index,
            )

        missing = [key for key in BAR_FIELDS if record.get(key) is None]
        if missing:
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Bar at position {index} is missing {', '.join(missing)}",
                position=index,
            )

        volume = _to_volume(record["v"])
        timestamp = record["t"]
        if volume is None or not is_finite_number(timestamp):
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Bar at position {index} has invalid volume or timestamp",
                position=index,
            )

        try:
            bars.append(PriceBar.from_epoch_ms(
                open=record["o"],
                high=record["h"],
                low=record["l"],
                close=record["c"],
                volume=volume,
                timestamp_ms=int(timestamp),
            ))
        except (ValueError, OverflowError, OSError) as e:
            return IndicatorFailure.of(
                FailureKind.INVALID_PRICE,
                f"Bar at position {index}: {e}",
                position=index,
            )

    return bars
