"""
Tests for series preprocessing: validation, extraction and validated
construction from provider records and spreadsheet-style values.
"""

import pytest
from datetime import date, datetime, timezone

from domain import (
    FailureKind,
    PriceBar,
    bars_from_records,
    coerce_series,
    dates_of,
    extract_closes,
    extract_hlc,
    is_failure,
    validate_numeric,
    validate_period,
    validate_series,
)


def make_bar(close: float, day: int = 1) -> PriceBar:
    return PriceBar(
        open=close,
        high=close + 1,
        low=close - 1,
        close=close,
        volume=100,
        timestamp=datetime(2024, 1, day, tzinfo=timezone.utc),
    )


class TestPriceBar:
    """PriceBar self-validation."""

    def test_valid_bar(self):
        bar = make_bar(10.0, day=5)
        assert bar.date == date(2024, 1, 5)

    def test_from_epoch_ms(self):
        bar = PriceBar.from_epoch_ms(1, 2, 0.5, 1.5, 10, 1704067200000)
        assert bar.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert bar.date == date(2024, 1, 1)

    @pytest.mark.parametrize("price", [-1.0, float("nan"), float("inf"), True, "10"])
    def test_invalid_price(self, price):
        with pytest.raises(ValueError):
            PriceBar(open=1, high=2, low=0.5, close=price, volume=1,
                     timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))

    @pytest.mark.parametrize("volume", [-1, 1.5, None])
    def test_invalid_volume(self, volume):
        with pytest.raises(ValueError):
            PriceBar(open=1, high=2, low=0.5, close=1, volume=volume,
                     timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc))

    def test_immutable(self):
        bar = make_bar(10.0)
        with pytest.raises(AttributeError):
            bar.close = 11.0


class TestValidation:
    """Numeric and period checks."""

    def test_numeric_ok(self):
        assert validate_numeric([1, 2.5, 0]) is None

    def test_numeric_reports_position(self):
        failure = validate_numeric([1.0, 2.0, float("nan")])
        assert failure.kind == FailureKind.INVALID_PRICE
        assert dict(failure.context)["position"] == 2

    def test_numeric_huge_int(self):
        failure = validate_numeric([1, 10**400])
        assert failure.kind == FailureKind.INVALID_PRICE
        assert dict(failure.context)["position"] == 1

    def test_series_empty(self):
        assert validate_series([]).kind == FailureKind.EMPTY_SERIES
        assert validate_series(None).kind == FailureKind.EMPTY_SERIES

    @pytest.mark.parametrize("period,length,margin", [
        (1, 5, 0),
        (5, 5, 0),
        (4, 5, 1),
        (3, 5, 2),
    ])
    def test_period_accepted(self, period, length, margin):
        assert validate_period(period, length, margin) is None

    @pytest.mark.parametrize("period,length,margin", [
        (0, 5, 0),
        (-3, 5, 0),
        (6, 5, 0),
        (5, 5, 1),
        (4, 5, 2),
        (1, 0, 0),
    ])
    def test_period_rejected(self, period, length, margin):
        failure = validate_period(period, length, margin)
        assert failure.kind == FailureKind.INVALID_PERIOD

    def test_period_message(self):
        failure = validate_period(6, 5)
        assert failure.message == "Invalid period: 6. Must be between 1 and 5"

    @pytest.mark.parametrize("period", [2.0, "3", None, True])
    def test_period_must_be_int(self, period):
        assert validate_period(period, 10).kind == FailureKind.INVALID_PERIOD


class TestExtraction:
    """Close and high/low/close extraction."""

    def test_extract_closes(self):
        bars = [make_bar(10.0, 1), make_bar(11.0, 2)]
        assert extract_closes(bars) == [10.0, 11.0]

    def test_extract_closes_empty(self):
        assert extract_closes([]).kind == FailureKind.EMPTY_SERIES

    def test_extract_hlc(self):
        highs, lows, closes = extract_hlc([make_bar(10.0), make_bar(12.0, 2)])
        assert highs == [11.0, 13.0]
        assert lows == [9.0, 11.0]
        assert closes == [10.0, 12.0]

    def test_extract_hlc_empty(self):
        assert extract_hlc([]).kind == FailureKind.EMPTY_SERIES

    def test_dates_of(self):
        bars = [make_bar(10.0, 3), make_bar(11.0, 4)]
        assert dates_of(bars) == [date(2024, 1, 3), date(2024, 1, 4)]


class TestCoerceSeries:
    """Validated construction from spreadsheet values."""

    def test_numbers(self):
        assert coerce_series([1, 2.5, 3]) == [1.0, 2.5, 3.0]

    def test_nested_ranges_row_major(self):
        assert coerce_series([[1, 2], [3, 4]]) == [1.0, 2.0, 3.0, 4.0]

    def test_numeric_strings(self):
        assert coerce_series(["10", " 11.5 ", "1,000"]) == [10.0, 11.5, 1000.0]

    def test_scalar(self):
        assert coerce_series(5) == [5.0]

    @pytest.mark.parametrize("raw", [None, [], [[]]])
    def test_empty(self, raw):
        assert coerce_series(raw).kind == FailureKind.EMPTY_SERIES

    @pytest.mark.parametrize("cell", ["abc", "", None, True, "nan", float("inf"), {"c": 1}, 10**400])
    def test_rejects_unparseable_cell(self, cell):
        failure = coerce_series([1, cell, 3])
        assert is_failure(failure)
        assert failure.kind == FailureKind.INVALID_PRICE
        assert "position 1" in failure.message


class TestBarsFromRecords:
    """Decoding provider aggregate records."""

    def test_decodes_records(self, bar_records):
        bars = bars_from_records(bar_records)
        assert len(bars) == 20
        assert bars[0].close == 100.0
        assert bars[0].high == 101.0
        assert bars[0].date == date(2024, 1, 1)
        assert bars[-1].date == date(2024, 1, 20)

    def test_fractional_volume_rounds(self, make_record):
        bars = bars_from_records([make_record(1, 10.0, volume=1234.6)])
        assert bars[0].volume == 1235

    def test_empty(self):
        assert bars_from_records([]).kind == FailureKind.EMPTY_SERIES
        assert bars_from_records(None).kind == FailureKind.EMPTY_SERIES

    def test_missing_field(self, make_record):
        record = make_record(1, 10.0)
        del record["c"]
        failure = bars_from_records([make_record(2, 10.0), record])
        assert failure.kind == FailureKind.INVALID_PRICE
        assert "position 1" in failure.message
        assert "c" in failure.message

    def test_negative_price(self, make_record):
        record = make_record(1, 10.0)
        record["l"] = -5.0
        assert bars_from_records([record]).kind == FailureKind.INVALID_PRICE

    def test_string_price(self, make_record):
        record = make_record(1, 10.0)
        record["c"] = "10.0"
        assert bars_from_records([record]).kind == FailureKind.INVALID_PRICE

    def test_non_dict_record(self):
        assert bars_from_records([[1, 2, 3]]).kind == FailureKind.INVALID_PRICE

    def test_duplicate_timestamps_kept(self, make_record):
        bars = bars_from_records([make_record(1, 10.0), make_record(1, 11.0)])
        assert [b.close for b in bars] == [10.0, 11.0]

    @pytest.mark.parametrize("field", ["v", "t"])
    def test_oversized_integer_field(self, make_record, field):
        record = make_record(1, 10.0)
        record[field] = 10**400
        failure = bars_from_records([record])
        assert failure.kind == FailureKind.INVALID_PRICE
        assert "position 0" in failure.message

    def test_oversized_integer_price(self, make_record):
        record = make_record(1, 10.0)
        record["h"] = 10**400
        assert bars_from_records([record]).kind == FailureKind.INVALID_PRICE
