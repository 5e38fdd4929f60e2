"""
Indicator request pipeline.

Coordinates one technical-indicator request end to end:
1. Resolve the date window (defaults: lookback_days ago .. today)
2. Fetch daily bars (PolygonAdapter)
3. Decode and validate the series (domain.series)
4. Compute and align (domain.indicators)

Adapter exceptions propagate to the caller; render_error turns them into
the one-line diagnostics shown to users. Indicator failures come back as
IndicatorFailure values.
"""

import logging
import re
from collections.abc import Callable
from datetime import date, timedelta

from domain import (
    FailureKind,
    IndicatorFailure,
    IndicatorName,
    IndicatorParams,
    IndicatorResult,
    PriceBar,
    bars_from_records,
    compute_indicator,
    is_failure,
)
from adapters import PolygonAdapter
from config import Settings, get_settings
from ports import AdapterError, DataError, FetchError, RateLimitError, ValidationError

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def render_error(exc: Exception, subject: str = "price data") -> str:
    """User-facing diagnostic for an exception raised while fetching."""
    if isinstance(exc, RateLimitError):
        return "Rate limit exceeded: Try again later or upgrade your subscription"
    if isinstance(exc, FetchError) and exc.status_code is not None:
        if exc.status_code == 403:
            return "Access forbidden: Check API key permissions or subscription tier"
        return f"Could not retrieve {subject} (HTTP {exc.status_code})"
    if isinstance(exc, (ValidationError, DataError)):
        return exc.message
    if isinstance(exc, AdapterError):
        return f"Error: {exc.message}"
    return f"Error: {exc}"


class IndicatorService:
    """
    Fetch-then-compute front end for the indicator engine.

    Usage:
        service = IndicatorService(PolygonAdapter(api_key=key))
        outcome = service.technical_indicator("AAPL", "RSI", period=14)
        if is_failure(outcome):
            print(outcome.render())
    """

    def __init__(
        self,
        adapter: PolygonAdapter,
        settings: Settings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.adapter = adapter
        self.settings = settings or get_settings()
        self._today = today

    @property
    def defaults(self):
        return self.settings.config.indicators

    def resolve_dates(
        self,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> tuple[str, str]:
        """
        Fill in missing dates and check their format.

        Raises:
            ValidationError: If a date is not YYYY-MM-DD
        """
        today = self._today()
        from_date = from_date or (today - timedelta(days=self.defaults.lookback_days)).isoformat()
        to_date = to_date or today.isoformat()

        for field, value in (("from_date", from_date), ("to_date", to_date)):
            if not DATE_PATTERN.match(value):
                raise ValidationError.bad_date(field, value)
        return from_date, to_date

    def build_params(
        self,
        indicator: str,
        period: int | None = None,
        std_dev_multiplier: float | None = None,
    ) -> IndicatorParams:
        """Caller arguments with configured defaults substituted."""
        defaults = self.defaults
        if period is None:
            is_bollinger = IndicatorName.parse(indicator or "") == IndicatorName.BOLLINGER
            period = defaults.bollinger_period if is_bollinger else defaults.period
        return IndicatorParams(
            period=period,
            std_dev_multiplier=(
                defaults.std_dev_multiplier if std_dev_multiplier is None else std_dev_multiplier
            ),
            fast_period=defaults.fast_period,
            slow_period=defaults.slow_period,
            signal_period=defaults.signal_period,
        )

    def fetch_bars(
        self,
        ticker: str,
        from_date: str,
        to_date: str,
    ) -> list[PriceBar] | IndicatorFailure:
        """
        Daily bars for the window, decoded into PriceBars.

        Raises:
            AdapterError: On network, HTTP or credential problems
        """
        records = self.adapter.get_daily_bars(ticker, from_date, to_date)
        if not records:
            return IndicatorFailure.of(
                FailureKind.EMPTY_SERIES,
                "Insufficient price data to calculate indicator.",
                ticker=ticker,
            )
        return bars_from_records(records)

    def technical_indicator(
        self,
        ticker: str,
        indicator: str,
        period: int | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        std_dev_multiplier: float | None = None,
    ) -> IndicatorResult | IndicatorFailure:
        """
        Compute an indicator over the ticker's daily closes.

        Args:
            ticker: Symbol, e.g. "AAPL"
            indicator: SMA, EMA, RSI, MACD, BOLLINGER or ATR (any case)
            period: Window length (MACD uses fixed 12/26/9)
            from_date: Window start, YYYY-MM-DD
            to_date: Window end, YYYY-MM-DD
            std_dev_multiplier: Bollinger band width

        Returns:
            IndicatorResult aligned to bar dates, or IndicatorFailure

        Raises:
            ValidationError: Missing ticker/indicator, bad dates, no API key
            FetchError: HTTP or network failure
            RateLimitError: Provider or local limiter refused the request
        """
        if not ticker:
            raise ValidationError.invalid_ticker("", "Missing required parameter: ticker")
        if not indicator:
            raise ValidationError(
                reason="Missing required parameter: indicator",
                field="indicator",
            )

        # Reject unknown names before spending a rate-limited request
        if IndicatorName.parse(indicator) is None:
            return compute_indicator(indicator, [])

        from_date, to_date = self.resolve_dates(from_date, to_date)
        params = self.build_params(indicator, period, std_dev_multiplier)

        bars = self.fetch_bars(ticker, from_date, to_date)
        if is_failure(bars):
            logger.info(f"{ticker}: {bars.render()}")
            return bars

        outcome = compute_indicator(indicator, bars, params, ticker=ticker.upper())
        if is_failure(outcome):
            logger.info(f"{ticker} {indicator}: {outcome.render()}")
        else:
            logger.debug(
                f"{ticker} {outcome.name}: {len(outcome.output_dates)} values "
                f"from {len(bars)} bars ({from_date}..{to_date})"
            )
        return outcome
