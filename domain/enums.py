from enum import Enum, auto


class Category(Enum):
    """Type of observation data."""
    PRICE = auto()
    REFERENCE = auto()
    NEWS = auto()
    CORPORATE_ACTION = auto()  # dividends, earnings
    MARKET = auto()


class IndicatorName(str, Enum):
    """Technical indicators the calculator can produce."""
    SMA = "SMA"
    EMA = "EMA"
    RSI = "RSI"
    MACD = "MACD"
    BOLLINGER = "BOLLINGER"
    ATR = "ATR"

    @classmethod
    def parse(cls, value: str) -> "IndicatorName | None":
        """Case-insensitive lookup, None if unknown."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None
