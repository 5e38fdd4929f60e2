"""
Domain models - pure data structures with validation.

Typed views of provider reference data (ticker details, news, dividends,
earnings, market status, previous-day bars). All models are immutable and
JSON-serializable. Unknown provider fields are kept so callers can look up
arbitrary properties by name.
"""

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator
from pydantic.functional_validators import AfterValidator


# ============================================================================
# Custom validators
# ============================================================================

def _validate_ticker(v: str) -> str:
    """Validate ticker symbol format."""
    v = v.upper().strip()
    if not v:
        raise ValueError("ticker cannot be empty")
    if len(v) > 12:
        raise ValueError("ticker too long (max 12 chars)")
    if not v.replace("-", "").replace(".", "").replace(":", "").isalnum():
        raise ValueError("ticker must be alphanumeric (with -, . or :)")
    return v


Ticker = Annotated[str, AfterValidator(_validate_ticker)]


class ProviderRecord(BaseModel):
    """Base for models decoded from provider JSON."""
    model_config = {"frozen": True, "extra": "allow", "populate_by_name": True}

    def get_property(self, name: str) -> Any:
        """Look up a field by provider key or model attribute name."""
        raw = self.model_dump(by_alias=True)
        if name in raw:
            return raw[name]
        return self.model_dump().get(name)


# ============================================================================
# Reference data
# ============================================================================

class TickerDetails(ProviderRecord):
    """Reference record for a listed instrument."""

    ticker: Ticker
    name: str = ""
    market: str | None = None
    locale: str | None = None
    primary_exchange: str | None = None
    type: str | None = None
    active: bool | None = None
    currency_name: str | None = None

    def summary(self) -> str:
        return f"{self.ticker} - {self.name} ({self.market})"


class NewsArticle(ProviderRecord):
    """News article referencing one or more tickers."""

    title: str | None = None
    description: str | None = None
    article_url: str | None = None
    published_utc: datetime | None = None
    author: str | None = None
    tickers: list[str] = Field(default_factory=list)


class Dividend(ProviderRecord):
    """Cash dividend declaration."""

    ticker: str | None = None
    ex_dividend_date: str | None = None
    pay_date: str | None = None
    record_date: str | None = None
    declaration_date: str | None = None
    cash_amount: float | None = None
    frequency: int | None = None


class EarningsQuarter(ProviderRecord):
    """Reported vs. estimated earnings for one period."""

    period: str | None = None
    date: str | None = None
    eps: float | None = None
    eps_estimate: float | None = None
    revenue: float | None = None
    revenue_estimate: float | None = None


class PreviousClose(ProviderRecord):
    """Previous trading day's aggregate bar."""

    ticker: str | None = Field(default=None, alias="T")
    open: float | None = Field(default=None, alias="o")
    high: float | None = Field(default=None, alias="h")
    low: float | None = Field(default=None, alias="l")
    close: float = Field(alias="c")
    volume: float | None = Field(default=None, alias="v")
    vwap: float | None = Field(default=None, alias="vw")
    timestamp_ms: int | None = Field(default=None, alias="t")

    @property
    def timestamp(self) -> datetime | None:
        if self.timestamp_ms is None:
            return None
        return datetime.fromtimestamp(self.timestamp_ms / 1000, tz=timezone.utc)


class MarketStatus(ProviderRecord):
    """Current open/closed state of markets and exchanges."""

    market: str | None = None
    server_time: str | None = Field(default=None, alias="serverTime")
    exchanges: dict[str, str] = Field(default_factory=dict)
    currencies: dict[str, str] = Field(default_factory=dict)

    @field_validator("exchanges", "currencies", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return v or {}

    def status_for(self, market: str = "us") -> str | None:
        """Status for "us" (overall), an exchange, or a currency market."""
        key = (market or "us").lower()
        if key == "us":
            return self.market
        return self.exchanges.get(key) or self.currencies.get(key)

