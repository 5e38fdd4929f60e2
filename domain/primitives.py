import math
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

from .enums import Category


@dataclass(frozen=True)
class Observation:
    """
    Immutable fact collected from an external source.

    This is the input primitive - raw data before reshaping or analysis.
    """
    source: str
    timestamp: datetime
    category: Category
    data: dict[str, Any]
    ticker: str | None = None
    reliability: float = 1.0  # 0-1, based on source reputation

    def __post_init__(self) -> None:
        if not 0.0 <= self.reliability <= 1.0:
            raise ValueError(f"reliability must be 0-1, got {self.reliability}")


@dataclass(frozen=True)
class PriceBar:
    """
    One OHLCV observation.

    Prices must be finite and non-negative, volume a non-negative integer.
    Timestamps are UTC with millisecond resolution.
    """
    open: float
    high: float
    low: float
    close: float
    volume: int
    timestamp: datetime

    def __post_init__(self) -> None:
        for name in ("open", "high", "low", "close"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be finite and non-negative, got {value}")
        if isinstance(self.volume, bool) or not isinstance(self.volume, int) or self.volume < 0:
            raise ValueError(f"volume must be a non-negative integer, got {self.volume!r}")

    @property
    def date(self) -> date:
        return self.timestamp.date()

    @classmethod
    def from_epoch_ms(
        cls,
        open: float,
        high: float,
        low: float,
        close: float,
        volume: int,
        timestamp_ms: int,
    ) -> "PriceBar":
        """Build a bar from a provider's millisecond epoch timestamp."""
        ts = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
        return cls(open=open, high=high, low=low, close=close, volume=volume, timestamp=ts)
