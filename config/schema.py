"""
Configuration schema with validation.

All configuration is validated at load time using Pydantic.
"""

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator


class ApiKeysConfig(BaseModel):
    """API key configuration (file, environment, or credential store)."""

    polygon: str | None = Field(default=None, description="Polygon.io API key")

    @field_validator("polygon")
    @classmethod
    def blank_is_unset(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class CacheTtlConfig(BaseModel):
    """Cache TTL configuration by data category."""

    price_minutes: int = Field(default=1, ge=1, le=60)
    reference_hours: int = Field(default=24, ge=1, le=168)
    news_minutes: int = Field(default=60, ge=5, le=240)
    corporate_action_hours: int = Field(default=24, ge=1, le=168)
    market_minutes: int = Field(default=1, ge=1, le=60)

    def get_timedelta(self, category: str) -> timedelta:
        """Get timedelta for a category."""
        mapping = {
            "price": timedelta(minutes=self.price_minutes),
            "reference": timedelta(hours=self.reference_hours),
            "news": timedelta(minutes=self.news_minutes),
            "corporate_action": timedelta(hours=self.corporate_action_hours),
            "market": timedelta(minutes=self.market_minutes),
        }
        return mapping.get(category, timedelta(hours=1))


class RateLimitsConfig(BaseModel):
    """Rate limits per source (requests per minute)."""

    # Polygon free tier allows 5 calls/minute
    polygon: int = Field(default=5, ge=1, le=6000)


class HttpConfig(BaseModel):
    """HTTP client configuration."""

    base_url: str = Field(default="https://api.polygon.io", min_length=1)
    timeout_seconds: float = Field(default=10.0, ge=1.0, le=60.0)
    user_agent: str = Field(default="Polycell/1.0", min_length=1)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        if not (v.startswith("http://") or v.startswith("https://")):
            raise ValueError("base_url must start with http:// or https://")
        return v.rstrip("/")


class BatchConfig(BaseModel):
    """Parallel per-ticker fetching."""

    concurrency: int = Field(default=5, ge=1, le=32, description="Requests in flight per batch")
    delay_seconds: float = Field(default=1.0, ge=0.0, le=60.0, description="Pause between batches")


class IndicatorDefaultsConfig(BaseModel):
    """Defaults substituted when a caller omits indicator arguments."""

    period: int = Field(default=14, ge=1, le=500)
    bollinger_period: int = Field(default=20, ge=1, le=500)
    std_dev_multiplier: float = Field(default=2.0, gt=0.0, le=10.0)
    fast_period: int = Field(default=12, ge=1, le=500)
    slow_period: int = Field(default=26, ge=2, le=500)
    signal_period: int = Field(default=9, ge=1, le=500)
    lookback_days: int = Field(default=30, ge=1, le=3650)

    @field_validator("slow_period")
    @classmethod
    def slow_gt_fast(cls, v: int, info) -> int:
        fast = info.data.get("fast_period", 12)
        if v <= fast:
            raise ValueError("slow_period must be greater than fast_period")
        return v


class OutputConfig(BaseModel):
    """Table rendering preferences."""

    missing_value: str = Field(default="N/A")
    date_format: str = Field(default="%Y-%m-%d")
    decimals: int = Field(default=4, ge=0, le=10)


class PolycellConfig(BaseModel):
    """
    Root configuration model.

    All settings are validated on load.
    """

    # Default tickers for batch commands
    watchlist: list[str] = Field(default_factory=lambda: [
        "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA",
    ])

    # Subsections
    api_keys: ApiKeysConfig = Field(default_factory=ApiKeysConfig)
    cache_ttl: CacheTtlConfig = Field(default_factory=CacheTtlConfig)
    rate_limits: RateLimitsConfig = Field(default_factory=RateLimitsConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    indicators: IndicatorDefaultsConfig = Field(default_factory=IndicatorDefaultsConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("watchlist")
    @classmethod
    def validate_tickers(cls, v: list[str]) -> list[str]:
        """Validate ticker format."""
        validated = []
        for ticker in v:
            ticker = ticker.upper().strip()
            if not ticker or len(ticker) > 12:
                raise ValueError(f"Invalid ticker format: {ticker}")
            validated.append(ticker)
        return validated
