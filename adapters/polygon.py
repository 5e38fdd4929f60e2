"""
Polygon.io adapter for market data.

Provides:
- Daily aggregate bars (input to the indicator engine)
- Previous-day close
- Ticker reference details
- News
- Dividends and earnings
- Market status

Free tier: 5 API calls/minute.
Requires an API key from: https://polygon.io/dashboard/signup

Setup:
1. Get an API key from the Polygon dashboard
2. Set in polycell.toml: [api_keys] polygon = "your_key"
   Or environment: export POLYGON_API_KEY="your_key"
   Or store it once: polycell set-key your_key

API docs: https://polygon.io/docs/stocks
"""

import logging
import re
import urllib.parse
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import ValidationError as ModelValidationError

from domain import (
    Category,
    Dividend,
    EarningsQuarter,
    MarketStatus,
    NewsArticle,
    Observation,
    PreviousClose,
    TickerDetails,
)
from ports import DataError, ValidationError
from config import Settings

from .base import BaseAdapter

T = TypeVar("T")

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DEFAULT_NEWS_LIMIT = 10
DEFAULT_EARNINGS_LIMIT = 4
DEFAULT_DIVIDENDS_LIMIT = 4

LIMIT_DEFAULTS = {
    "news": DEFAULT_NEWS_LIMIT,
    "earnings": DEFAULT_EARNINGS_LIMIT,
    "dividends": DEFAULT_DIVIDENDS_LIMIT,
}

DATA_TYPE_CATEGORIES = {
    "bars": Category.PRICE,
    "previous_close": Category.PRICE,
    "details": Category.REFERENCE,
    "news": Category.NEWS,
    "dividends": Category.CORPORATE_ACTION,
    "earnings": Category.CORPORATE_ACTION,
    "market_status": Category.MARKET,
}


def _positive_or_default(limit: Any, default: int) -> int:
    # Blank or non-positive spreadsheet arguments fall back to the default
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        return default
    return limit


def _parse_timestamp(value: Any) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class PolygonAdapter(BaseAdapter):
    """
    Polygon.io REST adapter.

    The API key is passed in explicitly; the adapter holds no global
    credential state. Every request needs a key.

    Rate limit: 5 calls/min (free tier), configurable.
    """

    def __init__(self, api_key: str | None = None, settings: Settings | None = None):
        super().__init__(settings)
        self._api_key = (api_key or "").strip() or None

    @property
    def source_name(self) -> str:
        return "polygon"

    @property
    def category(self) -> Category:
        return Category.PRICE

    @property
    def reliability(self) -> float:
        return 0.95

    def is_configured(self) -> bool:
        return self._api_key is not None

    def category_for(self, **kwargs) -> Category:
        return DATA_TYPE_CATEGORIES.get(kwargs.get("data_type", "bars"), self.category)

    def _url(self, path: str, **params: Any) -> str:
        """Absolute endpoint URL with the API key appended."""
        if not self._api_key:
            raise ValidationError.missing_api_key(self.source_name)
        query = {k: v for k, v in params.items() if v is not None}
        query["apiKey"] = self._api_key
        return f"{self._settings.base_url}{path}?{urllib.parse.urlencode(query)}"

    def _check_request(self, **kwargs) -> None:
        data_type = kwargs.get("data_type", "bars")
        if data_type not in DATA_TYPE_CATEGORIES:
            raise ValidationError(
                f"data_type must be one of {', '.join(DATA_TYPE_CATEGORIES)}, got '{data_type}'",
                "data_type",
                data_type,
                self.source_name,
            )

        if not self._api_key:
            raise ValidationError.missing_api_key(self.source_name)

        if data_type == "market_status":
            return
        self._validate_ticker(kwargs.get("ticker") or "")

        if data_type in LIMIT_DEFAULTS:
            self._validate_limit(_positive_or_default(kwargs.get("limit"), LIMIT_DEFAULTS[data_type]))

        if data_type == "bars":
            for field in ("from_date", "to_date"):
                value = kwargs.get(field)
                if not value or not DATE_PATTERN.match(value):
                    raise ValidationError.bad_date(field, value, self.source_name)

    def _fetch_impl(self, **kwargs) -> list[Observation]:
        """Route to specific fetch method based on data_type. Arguments are already checked."""
        data_type = kwargs.get("data_type", "bars")

        if data_type == "market_status":
            return self._fetch_market_status()

        ticker = self._validate_ticker(kwargs.get("ticker") or "")

        if data_type == "bars":
            return self._fetch_bars(ticker, kwargs.get("from_date"), kwargs.get("to_date"))
        elif data_type == "previous_close":
            return self._fetch_previous_close(ticker)
        elif data_type == "details":
            return self._fetch_details(ticker)
        elif data_type == "news":
            return self._fetch_news(ticker, kwargs.get("limit"))
        elif data_type == "dividends":
            return self._fetch_dividends(ticker, kwargs.get("limit"))
        else:
            return self._fetch_earnings(ticker, kwargs.get("limit"))

    # ========================================================================
    # Endpoints
    # ========================================================================

    def _fetch_bars(self, ticker: str, from_date: str, to_date: str) -> list[Observation]:
        """Fetch daily aggregates, ascending by time.

        Endpoint: /v2/aggs/ticker/{ticker}/range/1/day/{from}/{to}
        Returns one observation per bar carrying the raw o/h/l/c/v/t record.
        """
        url = self._url(
            f"/v2/aggs/ticker/{urllib.parse.quote(ticker)}/range/1/day/{from_date}/{to_date}",
            adjusted="true",
            sort="asc",
            limit=50000,
        )
        data = self._get_json(url)

        results = data.get("results") or []
        logger.debug(f"Fetched {len(results)} daily bars for {ticker} ({from_date}..{to_date})")

        observations = []
        for record in results:
            ts = record.get("t") if isinstance(record, dict) else None
            timestamp = (
                datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
                if isinstance(ts, (int, float)) else None
            )
            observations.append(self._observe(
                data=record if isinstance(record, dict) else {"raw": record},
                ticker=ticker,
                category=Category.PRICE,
                timestamp=timestamp,
            ))
        return observations

    def _fetch_previous_close(self, ticker: str) -> list[Observation]:
        """Endpoint: /v2/aggs/ticker/{ticker}/prev"""
        url = self._url(f"/v2/aggs/ticker/{urllib.parse.quote(ticker)}/prev", adjusted="true")
        data = self._get_json(url)

        results = data.get("results") or []
        if not results:
            raise DataError.empty(source=self.source_name, description="No price data found.")

        return [self._observe(data=results[0], ticker=ticker, category=Category.PRICE)]

    def _fetch_details(self, ticker: str) -> list[Observation]:
        """Endpoint: /v3/reference/tickers?ticker={ticker}"""
        url = self._url("/v3/reference/tickers", ticker=ticker, active="true", limit=100)
        data = self._get_json(url)

        results = data.get("results") or []
        if not results:
            raise DataError.empty(source=self.source_name, description="No ticker details found.")

        return [self._observe(data=results[0], ticker=ticker, category=Category.REFERENCE)]

    def _fetch_news(self, ticker: str, limit: Any) -> list[Observation]:
        """Endpoint: /v2/reference/news?ticker={ticker}"""
        limit = self._validate_limit(_positive_or_default(limit, DEFAULT_NEWS_LIMIT))
        url = self._url("/v2/reference/news", ticker=ticker, limit=limit)
        data = self._get_json(url)

        return [
            self._observe(
                data=article,
                ticker=ticker,
                category=Category.NEWS,
                timestamp=_parse_timestamp(article.get("published_utc")),
            )
            for article in data.get("results") or []
            if isinstance(article, dict)
        ]

    def _fetch_dividends(self, ticker: str, limit: Any) -> list[Observation]:
        """Endpoint: /v3/reference/dividends?ticker={ticker}"""
        limit = self._validate_limit(_positive_or_default(limit, DEFAULT_DIVIDENDS_LIMIT))
        url = self._url("/v3/reference/dividends", ticker=ticker, limit=limit)
        data = self._get_json(url)

        return [
            self._observe(data=row, ticker=ticker, category=Category.CORPORATE_ACTION)
            for row in data.get("results") or []
            if isinstance(row, dict)
        ]

    def _fetch_earnings(self, ticker: str, limit: Any) -> list[Observation]:
        """Endpoint: /v3/reference/tickers/{ticker}/results

        May require a paid subscription; callers render HTTP failures as a
        one-row "unavailable" table.
        """
        limit = self._validate_limit(_positive_or_default(limit, DEFAULT_EARNINGS_LIMIT))
        url = self._url(f"/v3/reference/tickers/{urllib.parse.quote(ticker)}/results", limit=limit)
        data = self._get_json(url)

        return [
            self._observe(data=row, ticker=ticker, category=Category.CORPORATE_ACTION)
            for row in data.get("results") or []
            if isinstance(row, dict)
        ]

    def _fetch_market_status(self) -> list[Observation]:
        """Endpoint: /v1/marketstatus/now"""
        data = self._get_json(self._url("/v1/marketstatus/now"))
        return [self._observe(data=data, category=Category.MARKET)]

    # ========================================================================
    # Typed convenience methods
    # ========================================================================

    def _decode(self, model: type[T], data: dict[str, Any]) -> T:
        try:
            return model.model_validate(data)
        except ModelValidationError as e:
            raise DataError.malformed(self.source_name, model.__name__, e.errors()[0]["msg"]) from e

    def get_daily_bars(self, ticker: str, from_date: str, to_date: str) -> list[dict[str, Any]]:
        """Raw bar records (o/h/l/c/v/t) for the series preprocessor."""
        observations = self.fetch(
            ticker=ticker, data_type="bars", from_date=from_date, to_date=to_date,
        )
        return [obs.data for obs in observations]

    def get_previous_close(self, ticker: str) -> PreviousClose:
        obs = self.fetch(ticker=ticker, data_type="previous_close")
        return self._decode(PreviousClose, obs[0].data)

    def get_ticker_details(self, ticker: str) -> TickerDetails:
        obs = self.fetch(ticker=ticker, data_type="details")
        return self._decode(TickerDetails, obs[0].data)

    def get_news(self, ticker: str, limit: int | None = None) -> list[NewsArticle]:
        observations = self.fetch(ticker=ticker, data_type="news", limit=limit)
        return [self._decode(NewsArticle, obs.data) for obs in observations]

    def get_dividends(self, ticker: str, limit: int | None = None) -> list[Dividend]:
        observations = self.fetch(ticker=ticker, data_type="dividends", limit=limit)
        return [self._decode(Dividend, obs.data) for obs in observations]

    def get_earnings(self, ticker: str, limit: int | None = None) -> list[EarningsQuarter]:
        observations = self.fetch(ticker=ticker, data_type="earnings", limit=limit)
        return [self._decode(EarningsQuarter, obs.data) for obs in observations]

    def get_market_status(self) -> MarketStatus:
        obs = self.fetch(data_type="market_status")
        return self._decode(MarketStatus, obs[0].data)
