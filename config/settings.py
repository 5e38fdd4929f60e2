from dataclasses import dataclass, field
from datetime import timedelta
from functools import lru_cache

from domain import Category

from .loader import get_config
from .schema import PolycellConfig


@dataclass
class Settings:
    """Runtime configuration derived from the validated config file."""

    # Cache TTLs by category
    cache_ttl: dict[Category, timedelta] = field(default_factory=lambda: {
        Category.PRICE: timedelta(minutes=1),
        Category.REFERENCE: timedelta(days=1),
        Category.NEWS: timedelta(hours=1),
        Category.CORPORATE_ACTION: timedelta(days=1),
        Category.MARKET: timedelta(minutes=1),
    })

    # Rate limit settings (requests per minute)
    rate_limits: dict[str, int] = field(default_factory=lambda: {
        "polygon": 5,
    })

    # Batch fetching
    batch_concurrency: int = 5
    batch_delay_seconds: float = 1.0

    # HTTP settings
    base_url: str = "https://api.polygon.io"
    request_timeout: float = 10.0
    user_agent: str = "Polycell/1.0"

    config: PolycellConfig = field(default_factory=PolycellConfig)

    @classmethod
    def from_config(cls, config: PolycellConfig) -> "Settings":
        ttl = config.cache_ttl
        return cls(
            cache_ttl={
                Category.PRICE: ttl.get_timedelta("price"),
                Category.REFERENCE: ttl.get_timedelta("reference"),
                Category.NEWS: ttl.get_timedelta("news"),
                Category.CORPORATE_ACTION: ttl.get_timedelta("corporate_action"),
                Category.MARKET: ttl.get_timedelta("market"),
            },
            rate_limits={"polygon": config.rate_limits.polygon},
            batch_concurrency=config.batch.concurrency,
            batch_delay_seconds=config.batch.delay_seconds,
            base_url=config.http.base_url,
            request_timeout=config.http.timeout_seconds,
            user_agent=config.http.user_agent,
            config=config,
        )


@lru_cache
def get_settings() -> Settings:
    """Get singleton settings instance."""
    return Settings.from_config(get_config())


def reload_settings() -> Settings:
    """Drop cached config and settings, then load them again."""
    get_config.cache_clear()
    get_settings.cache_clear()
    return get_settings()
