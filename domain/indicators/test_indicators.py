"""Tests for technical indicators library."""

import math

import pytest
from domain.failures import FailureKind, is_failure
from domain.indicators import (
    atr,
    bollinger_bands,
    ema,
    macd,
    rsi,
    rsi_wilder,
    sma,
    true_range,
)


def wave(n: int) -> list[float]:
    """Deterministic zig-zag uptrend."""
    return [100.0 + i * 0.5 + (i % 4) * 1.25 - (i % 3) * 0.75 for i in range(n)]


class TestMovingAverages:
    """Test moving average indicators."""

    def test_sma_basic(self):
        assert sma([1, 2, 3, 4, 5], 3) == [2.0, 3.0, 4.0]

    def test_sma_length(self):
        prices = wave(30)
        assert len(sma(prices, 7)) == 30 - 7 + 1

    def test_sma_period_longer_than_series(self):
        result = sma([1, 2, 3], 5)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_sma_period_equal_to_series(self):
        assert sma([1, 2, 3], 3) == [2.0]

    def test_sma_huge_int(self):
        result = sma([10**400, 1], 1)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PRICE

    @pytest.mark.parametrize("period", [0, -1, 2.5, True])
    def test_sma_bad_period(self, period):
        result = sma([1, 2, 3], period)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_sma_empty(self):
        result = sma([], 3)
        assert result.kind == FailureKind.EMPTY_SERIES

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), None, "3", True])
    def test_sma_invalid_price(self, bad):
        result = sma([1, 2, bad, 4], 2)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PRICE
        assert "position 2" in result.message

    def test_ema_seed_is_sma(self):
        result = ema([1, 2, 3, 4, 5], 3)
        assert result[0] == 2.0
        # (4 - 2) * 0.5 + 2
        assert result[1] == 3.0

    def test_ema_length(self):
        prices = wave(30)
        assert len(ema(prices, 10)) == 30 - 10 + 1

    def test_ema_follows_trend(self):
        result = ema(list(range(1, 21)), 5)
        assert all(b > a for a, b in zip(result, result[1:]))

    def test_ema_bad_period(self):
        result = ema([1, 2, 3], 4)
        assert result.kind == FailureKind.INVALID_PERIOD


class TestRSI:
    """Test RSI indicator."""

    def test_rsi_all_gains(self):
        result = rsi(list(range(1, 20)), 14)
        assert result == [100.0] * (19 - 14 - 1)

    def test_rsi_all_losses(self):
        assert rsi([5, 4, 3, 2, 1], 2) == [0.0, 0.0]

    def test_rsi_balanced(self):
        # Changes alternate +1/-1, so every window has equal gains and losses
        assert rsi([1, 2, 1, 2, 1], 2) == [50.0, 50.0]

    def test_rsi_range(self):
        result = rsi(wave(40), 14)
        assert len(result) == 40 - 14 - 1
        assert all(0 <= v <= 100 for v in result)

    def test_rsi_flat_prices(self):
        # No losses at all: defined as 100, not a division error
        assert rsi([10.0] * 6, 3) == [100.0, 100.0]

    def test_rsi_period_too_long(self):
        result = rsi([1, 2, 3, 4], 3)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_rsi_invalid_price(self):
        result = rsi([1, 2, float("nan"), 4, 5, 6], 2)
        assert result.kind == FailureKind.INVALID_PRICE

    def test_rsi_wilder_length(self):
        result = rsi_wilder(list(range(1, 20)), 14)
        assert result == [100.0] * (19 - 14)

    def test_rsi_wilder_smoothing(self):
        # changes: +1, -1, +1, -1
        result = rsi_wilder([1, 2, 1, 2, 1], 2)
        # seed: gain 0.5, loss 0.5 -> 50
        assert result[0] == 50.0
        # next: gain (0.5 + 1) / 2 = 0.75, loss (0.5 + 0) / 2 = 0.25 -> RS 3
        assert result[1] == pytest.approx(75.0)
        assert len(result) == 3


class TestMACD:
    """Test MACD indicator."""

    def test_macd_lengths(self):
        prices = wave(60)
        macd_line, signal_line, histogram = macd(prices)

        assert len(histogram) == len(signal_line)
        assert len(signal_line) <= len(macd_line)
        # slow EMA: 35 values, signal EMA of those: 27
        assert len(histogram) == 27
        assert len(prices) - len(histogram) == 26 + 9 - 2

    @pytest.mark.parametrize("n", [36, 50, 120])
    def test_macd_alignment_invariant(self, n):
        macd_line, signal_line, histogram = macd(wave(n))
        assert len(histogram) == len(signal_line) <= len(macd_line)

    def test_histogram_is_difference(self):
        macd_line, signal_line, histogram = macd(wave(80))
        for m, s, h in zip(macd_line, signal_line, histogram):
            assert h == m - s

    def test_macd_constant_prices(self):
        macd_line, signal_line, histogram = macd([10.0] * 40)
        assert all(v == 0.0 for v in macd_line + signal_line + histogram)

    def test_macd_uptrend_positive(self):
        macd_line, _, _ = macd([float(x) for x in range(1, 61)])
        assert all(v > 0 for v in macd_line)

    def test_macd_custom_periods(self):
        macd_line, signal_line, histogram = macd(wave(20), fast=3, slow=6, signal=4)
        # slow EMA 15 values, signal 12
        assert len(histogram) == 12

    def test_macd_invalid_ordering(self):
        result = macd(wave(60), fast=26, slow=12, signal=9)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_ORDERING

    def test_macd_equal_periods(self):
        result = macd(wave(60), fast=12, slow=12, signal=9)
        assert result.kind == FailureKind.INVALID_ORDERING

    @pytest.mark.parametrize("fast,slow,signal", [(0, 26, 9), (12, -26, 9), (12, 26, 0)])
    def test_macd_non_positive_period(self, fast, slow, signal):
        result = macd(wave(60), fast=fast, slow=slow, signal=signal)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_macd_series_not_longer_than_slow(self):
        result = macd(wave(26))
        assert result.kind == FailureKind.INSUFFICIENT_DATA

    def test_macd_line_shorter_than_signal(self):
        # 30 closes -> 5 MACD values, fewer than the 9 the signal needs
        result = macd(wave(30))
        assert result.kind == FailureKind.INSUFFICIENT_DATA

    def test_macd_empty(self):
        assert macd([]).kind == FailureKind.EMPTY_SERIES


class TestBollingerBands:
    """Test Bollinger Bands indicator."""

    def test_bollinger_values(self):
        middle, upper, lower = bollinger_bands([1, 2, 3], period=3, std_dev_multiplier=2)
        # Population variance: (1 + 0 + 1) / 3
        width = 2 * math.sqrt(2 / 3)
        assert middle == [2.0]
        assert upper[0] == pytest.approx(2 + width)
        assert lower[0] == pytest.approx(2 - width)

    @pytest.mark.parametrize("multiplier", [0.0, 0.5, 2.0, 3.0])
    def test_band_ordering(self, multiplier):
        middle, upper, lower = bollinger_bands(wave(50), period=20, std_dev_multiplier=multiplier)
        for lo, mid, up in zip(lower, middle, upper):
            assert lo <= mid <= up

    def test_bollinger_middle_is_sma(self):
        prices = wave(30)
        middle, _, _ = bollinger_bands(prices, period=5)
        assert middle == sma(prices, 5)

    def test_bollinger_length(self):
        bands = bollinger_bands(wave(30), period=20)
        assert all(len(band) == 11 for band in bands)

    def test_zero_multiplier_collapses_bands(self):
        middle, upper, lower = bollinger_bands(wave(25), period=10, std_dev_multiplier=0)
        assert middle == upper == lower

    @pytest.mark.parametrize("multiplier", [-1.0, float("nan"), float("inf")])
    def test_bad_multiplier(self, multiplier):
        result = bollinger_bands(wave(25), period=10, std_dev_multiplier=multiplier)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_period_too_long(self):
        result = bollinger_bands(wave(10), period=20)
        assert result.kind == FailureKind.INVALID_PERIOD


class TestATR:
    """Test ATR indicator."""

    def test_true_range(self):
        ranges = true_range([10, 12, 11], [8, 9, 7], [9, 11, 8])
        # bar 1: max(3, |12-9|, |9-9|); bar 2: max(4, |11-11|, |7-11|)
        assert ranges == [3, 4]

    def test_true_range_gap(self):
        # Gap up: previous close far below today's low
        assert true_range([10, 20], [9, 19], [9.5, 19.5]) == [10.5]

    def test_atr_constant_range(self):
        highs, lows, closes = [11.0] * 20, [9.0] * 20, [10.0] * 20
        result = atr(highs, lows, closes, period=14)
        assert result == [2.0] * (20 - 14)

    def test_atr_converges_to_constant_range(self):
        n = 200
        highs = [12.0, 15.0, 11.0] + [11.0] * (n - 3)
        lows = [8.0, 9.0, 10.5] + [9.0] * (n - 3)
        closes = [10.0] * n
        result = atr(highs, lows, closes, period=3)

        assert result[0] != pytest.approx(2.0)
        assert result[-1] == pytest.approx(2.0, abs=1e-9)

    def test_atr_wilder_step(self):
        highs = [10, 11, 12, 13]
        lows = [9, 10, 11, 10]
        closes = [9.5, 10.5, 11.5, 12.5]
        result = atr(highs, lows, closes, period=2)
        # TRs: 1.5, 1.5, 3.0 -> seed 1.5, then (1.5 * 1 + 3.0) / 2
        assert result == [1.5, 2.25]

    def test_atr_length(self):
        prices = wave(30)
        result = atr([p + 1 for p in prices], [p - 1 for p in prices], prices, period=14)
        assert len(result) == 30 - 14

    def test_atr_mismatched_lengths(self):
        result = atr([1, 2, 3], [1, 2], [1, 2, 3], period=1)
        assert is_failure(result)
        assert result.kind == FailureKind.INVALID_PRICE

    def test_atr_period_too_long(self):
        result = atr([2, 3], [1, 2], [1.5, 2.5], period=2)
        assert result.kind == FailureKind.INVALID_PERIOD

    def test_atr_invalid_price(self):
        result = atr([2, float("inf"), 4], [1, 2, 3], [1.5, 2.5, 3.5], period=1)
        assert result.kind == FailureKind.INVALID_PRICE


class TestPurity:
    """Identical inputs give identical outputs."""

    def test_repeated_calls(self):
        prices = wave(60)
        highs = [p + 1 for p in prices]
        lows = [p - 1 for p in prices]

        assert sma(prices, 10) == sma(prices, 10)
        assert ema(prices, 10) == ema(prices, 10)
        assert rsi(prices, 14) == rsi(prices, 14)
        assert macd(prices) == macd(prices)
        assert bollinger_bands(prices) == bollinger_bands(prices)
        assert atr(highs, lows, prices) == atr(highs, lows, prices)

    def test_input_not_mutated(self):
        prices = wave(40)
        snapshot = list(prices)
        sma(prices, 5)
        ema(prices, 5)
        rsi(prices, 5)
        macd(prices)
        bollinger_bands(prices)
        assert prices == snapshot

    def test_failures_are_values(self):
        failure = sma([1, 2, 3], 5)
        assert failure == sma([1, 2, 3], 5)
        assert failure.render().startswith("InvalidPeriod: ")
