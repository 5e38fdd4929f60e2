"""
Tests for the indicator service and batched fetching.

Adapters are mostly replaced with mocks; the rate-limit batch test drives a
real PolygonAdapter with urlopen patched. No network access.
"""

import json
import threading
import time
from datetime import date, timedelta
from unittest.mock import MagicMock, Mock, call, patch

import pytest

from adapters import PolygonAdapter, RateLimiter
from domain import FailureKind, IndicatorResult, is_failure
from orchestration import BatchRunner, IndicatorService, batch_indicators, render_error
from ports import DataError, FetchError, RateLimitError, ValidationError


class FakeClock:
    """Monotonic clock that only moves when slept on."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


def json_response(payload) -> MagicMock:
    resp = MagicMock()
    resp.read.return_value = json.dumps(payload).encode("utf-8")
    cm = MagicMock()
    cm.__enter__.return_value = resp
    return cm


@pytest.fixture
def adapter(bar_records):
    mock = Mock(spec=PolygonAdapter)
    mock.get_daily_bars.return_value = bar_records
    return mock


@pytest.fixture
def service(adapter, settings):
    return IndicatorService(adapter, settings, today=lambda: date(2024, 3, 31))


class TestRenderError:
    """User-facing diagnostics for fetch errors."""

    def test_forbidden(self):
        error = FetchError.from_http_error("polygon", 403)
        assert render_error(error) == "Access forbidden: Check API key permissions or subscription tier"

    def test_rate_limited(self):
        assert render_error(RateLimitError(source="polygon")) == (
            "Rate limit exceeded: Try again later or upgrade your subscription"
        )

    def test_other_status(self):
        error = FetchError.from_http_error("polygon", 500)
        assert render_error(error) == "Could not retrieve price data (HTTP 500)"
        assert render_error(error, subject="news") == "Could not retrieve news (HTTP 500)"

    def test_missing_key(self):
        error = ValidationError.missing_api_key("polygon")
        assert render_error(error) == "API key not set. Please set your Polygon.io API key."

    def test_data_error(self):
        assert render_error(DataError.empty("polygon", "No price data found.")) == "No price data found."

    def test_network_error(self):
        error = FetchError.from_network_error("polygon", OSError("connection refused"))
        assert render_error(error).startswith("Error: Connection error")


class TestIndicatorService:
    """Fetch, preprocess and compute."""

    def test_default_dates(self, service, adapter):
        service.technical_indicator("AAPL", "SMA", period=5)
        adapter.get_daily_bars.assert_called_once_with("AAPL", "2024-03-01", "2024-03-31")

    def test_explicit_dates(self, service, adapter):
        service.technical_indicator("AAPL", "SMA", period=5, from_date="2024-01-01", to_date="2024-01-20")
        adapter.get_daily_bars.assert_called_once_with("AAPL", "2024-01-01", "2024-01-20")

    def test_bad_date_format(self, service, adapter):
        with pytest.raises(ValidationError, match="YYYY-MM-DD"):
            service.technical_indicator("AAPL", "SMA", from_date="2024/01/01")
        adapter.get_daily_bars.assert_not_called()

    def test_result(self, service):
        result = service.technical_indicator("aapl", "sma", period=3)
        assert isinstance(result, IndicatorResult)
        assert result.ticker == "AAPL"
        assert result.rows()[0] == (date(2024, 1, 3), 101.0)

    def test_default_period(self, service):
        result = service.technical_indicator("AAPL", "RSI")
        assert result.params.period == 14

    def test_bollinger_default_period(self, service):
        result = service.technical_indicator("AAPL", "BOLLINGER")
        assert result.params.period == 20
        assert result.params.std_dev_multiplier == 2.0
        assert len(result.channels["middle"]) == 1

    def test_macd_uses_fixed_periods(self, service, adapter, make_record):
        adapter.get_daily_bars.return_value = [
            make_record(day % 28 + 1, 100.0 + day % 7) for day in range(40)
        ]
        result = service.technical_indicator("AAPL", "MACD", period=3)
        assert (result.params.fast_period, result.params.slow_period, result.params.signal_period) == (12, 26, 9)

    def test_unsupported_skips_fetch(self, service, adapter):
        failure = service.technical_indicator("AAPL", "STOCH")
        assert failure.kind == FailureKind.UNSUPPORTED_INDICATOR
        adapter.get_daily_bars.assert_not_called()

    def test_no_bars(self, service, adapter):
        adapter.get_daily_bars.return_value = []
        failure = service.technical_indicator("AAPL", "SMA")
        assert failure.kind == FailureKind.EMPTY_SERIES
        assert failure.message == "Insufficient price data to calculate indicator."

    def test_bad_bar(self, service, adapter, bar_records):
        bar_records[3]["c"] = None
        failure = service.technical_indicator("AAPL", "SMA", period=3)
        assert failure.kind == FailureKind.INVALID_PRICE

    def test_period_too_long(self, service):
        failure = service.technical_indicator("AAPL", "SMA", period=50)
        assert is_failure(failure)
        assert failure.render() == "InvalidPeriod: Invalid period: 50. Must be between 1 and 20"

    def test_missing_arguments(self, service):
        with pytest.raises(ValidationError, match="ticker"):
            service.technical_indicator("", "SMA")
        with pytest.raises(ValidationError, match="indicator"):
            service.technical_indicator("AAPL", "")

    def test_fetch_errors_propagate(self, service, adapter):
        adapter.get_daily_bars.side_effect = FetchError.from_http_error("polygon", 403)
        with pytest.raises(FetchError):
            service.technical_indicator("AAPL", "SMA")


class TestBatchRunner:
    """Fixed-width batches with delays."""

    def test_batches(self):
        events = []
        runner = BatchRunner(concurrency=2, delay_seconds=1.0, sleep=lambda seconds: events.append("|"))
        runner.run(["A", "B", "C", "D", "E"], events.append)
        assert [set(part) for part in "".join(events).split("|")] == [{"A", "B"}, {"C", "D"}, {"E"}]

    def test_order_preserved(self):
        def job(ticker):
            # Later tickers finish first
            time.sleep(0.01 * (5 - ord(ticker) + ord("A")))
            return ticker.lower()

        runner = BatchRunner(concurrency=5, delay_seconds=0)
        outcomes = runner.run(["A", "B", "C", "D", "E"], job)
        assert [o.value for o in outcomes] == ["a", "b", "c", "d", "e"]
        assert all(o.ok for o in outcomes)

    def test_delay_between_batches_only(self):
        sleep = Mock()
        runner = BatchRunner(concurrency=2, delay_seconds=1.5, sleep=sleep)
        runner.run(["A", "B", "C", "D", "E"], lambda t: t)
        assert sleep.call_count == 2
        sleep.assert_called_with(1.5)

    def test_concurrency_bound(self):
        active = 0
        peak = 0
        lock = threading.Lock()

        def job(ticker):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.02)
            with lock:
                active -= 1
            return ticker

        BatchRunner(concurrency=3, delay_seconds=0).run([str(i) for i in range(9)], job)
        assert peak <= 3

    def test_errors_captured_per_ticker(self):
        def job(ticker):
            if ticker == "BAD":
                raise FetchError.from_http_error("polygon", 403)
            if ticker == "BOOM":
                raise RuntimeError("kaput")
            return ticker

        outcomes = BatchRunner(concurrency=2, delay_seconds=0).run(["OK", "BAD", "BOOM"], job)

        assert outcomes[0].ok
        assert outcomes[1].message == "Access forbidden: Check API key permissions or subscription tier"
        assert outcomes[2].error == "Error: kaput"

    def test_rate_limited_ticker_retried_after_wait(self):
        refused = {"C"}

        def job(ticker):
            if ticker in refused:
                refused.discard(ticker)
                raise RateLimitError(retry_after=timedelta(seconds=30), source="polygon")
            return ticker

        sleep = Mock()
        outcomes = BatchRunner(concurrency=2, delay_seconds=1.0, sleep=sleep).run(["A", "B", "C", "D"], job)

        assert [o.value for o in outcomes] == ["A", "B", "C", "D"]
        assert all(o.ok for o in outcomes)
        assert sleep.call_args_list == [call(1.0), call(30.0)]

    def test_rate_limited_ticker_gives_up(self):
        job = Mock(side_effect=RateLimitError(retry_after=timedelta(seconds=5), source="polygon"))
        sleep = Mock()

        outcomes = BatchRunner(concurrency=1, delay_seconds=0, max_retries=2, sleep=sleep).run(["A"], job)

        assert outcomes[0].error.startswith("Rate limit exceeded")
        assert job.call_count == 3
        assert sleep.call_args_list == [call(5.0), call(5.0)]

    def test_unknown_wait_not_retried(self):
        job = Mock(side_effect=RateLimitError(source="polygon"))
        outcomes = BatchRunner(concurrency=1, delay_seconds=0).run(["A"], job)
        assert not outcomes[0].ok
        assert job.call_count == 1

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            BatchRunner(concurrency=0)
        with pytest.raises(ValueError):
            BatchRunner(delay_seconds=-1)
        with pytest.raises(ValueError):
            BatchRunner(max_retries=-1)


class TestBatchIndicators:
    """Indicator per ticker across a batch."""

    def test_mixed_outcomes(self, adapter, settings):
        def bars(ticker, from_date, to_date):
            if ticker == "LIMIT":
                raise RateLimitError(source="polygon")
            if ticker == "EMPTY":
                return []
            return adapter_records

        adapter_records = adapter.get_daily_bars.return_value
        adapter.get_daily_bars.side_effect = bars
        settings.batch_delay_seconds = 0
        service = IndicatorService(adapter, settings)

        outcomes = batch_indicators(service, ["AAPL", "LIMIT", "EMPTY"], "EMA", period=5)

        assert [o.ticker for o in outcomes] == ["AAPL", "LIMIT", "EMPTY"]
        assert isinstance(outcomes[0].value, IndicatorResult)
        assert outcomes[1].error.startswith("Rate limit exceeded")
        assert not outcomes[2].ok
        assert outcomes[2].message.startswith("EmptySeries: ")

    def test_more_tickers_than_rate_limit(self, settings, bar_records):
        clock = FakeClock()
        adapter = PolygonAdapter(api_key="test-key", settings=settings)
        adapter._rate_limiter = RateLimiter(settings.rate_limits["polygon"], clock=clock)
        service = IndicatorService(adapter, settings)
        runner = BatchRunner(settings.batch_concurrency, settings.batch_delay_seconds, sleep=clock.sleep)
        tickers = ["A", "B", "C", "D", "E", "F", "G"]

        with patch("urllib.request.urlopen") as urlopen:
            urlopen.return_value = json_response({"results": bar_records})
            outcomes = batch_indicators(
                service, tickers, "SMA", period=5,
                from_date="2024-01-01", to_date="2024-01-20", runner=runner,
            )

        assert [o.ticker for o in outcomes] == tickers
        assert all(o.ok for o in outcomes), [o.message for o in outcomes]
        assert urlopen.call_count == 7
        # One batch delay, then the wait for the first window to expire
        assert clock.now == pytest.approx(1060.0)
