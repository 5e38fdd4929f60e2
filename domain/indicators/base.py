"""Base types for technical indicators."""

from dataclasses import dataclass, field
from datetime import date
from typing import Any


@dataclass(frozen=True)
class IndicatorParams:
    """Per-call indicator tunables.

    Attributes:
        period: Window length for SMA/EMA/RSI/Bollinger/ATR
        std_dev_multiplier: Band width in standard deviations (Bollinger only)
        fast_period: MACD fast EMA period
        slow_period: MACD slow EMA period
        signal_period: MACD signal EMA period
    """
    period: int = 14
    std_dev_multiplier: float = 2.0
    fast_period: int = 12
    slow_period: int = 26
    signal_period: int = 9

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "std_dev_multiplier": self.std_dev_multiplier,
            "fast_period": self.fast_period,
            "slow_period": self.slow_period,
            "signal_period": self.signal_period,
        }


@dataclass(frozen=True)
class IndicatorResult:
    """Computed indicator channels aligned to the input date axis.

    Channels are compact: the first ``offset`` input dates (the warm-up)
    have no value. Value j of every channel belongs to ``dates[offset + j]``.

    Example:
        >>> result = IndicatorResult(
        ...     name="SMA",
        ...     params=IndicatorParams(period=3),
        ...     dates=[date(2024, 1, d) for d in range(1, 6)],
        ...     channels={"sma": [2.0, 3.0, 4.0]},
        ...     offset=2,
        ... )
        >>> result.rows()[0]
        (datetime.date(2024, 1, 3), 2.0)
    """
    name: str
    params: IndicatorParams
    dates: list[date] | list[int]  # positional indices when no calendar is known
    channels: dict[str, list[float]]
    offset: int
    ticker: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for channel, values in self.channels.items():
            if self.offset + len(values) > len(self.dates):
                raise ValueError(
                    f"channel '{channel}' has {len(values)} values but only "
                    f"{len(self.dates) - self.offset} dates after offset {self.offset}"
                )

    @property
    def channel_names(self) -> list[str]:
        return list(self.channels)

    @property
    def output_dates(self) -> list:
        """Dates that carry a value."""
        length = len(next(iter(self.channels.values()), []))
        return self.dates[self.offset:self.offset + length]

    def rows(self) -> list[tuple]:
        """(date, value, ...) tuples, one value per channel."""
        columns = [self.channels[name] for name in self.channels]
        return [
            (day, *(column[j] for column in columns))
            for j, day in enumerate(self.output_dates)
        ]

    def latest(self) -> dict[str, float]:
        """Most recent value of each channel."""
        return {name: values[-1] for name, values in self.channels.items() if values}
