from .primitives import Observation, PriceBar
from .enums import Category, IndicatorName
from .failures import FailureKind, IndicatorFailure, is_failure
from .series import (
    bars_from_records,
    coerce_series,
    dates_of,
    extract_closes,
    extract_hlc,
    validate_numeric,
    validate_period,
    validate_series,
)
from .models import (
    TickerDetails,
    NewsArticle,
    Dividend,
    EarningsQuarter,
    PreviousClose,
    MarketStatus,
)
from .indicators import (
    IndicatorParams,
    IndicatorResult,
    compute_indicator,
    compute_from_values,
)

__all__ = [
    # Primitives (observation layer)
    "Observation",
    "PriceBar",
    # Enums
    "Category",
    "IndicatorName",
    # Failures
    "FailureKind",
    "IndicatorFailure",
    "is_failure",
    # Series preprocessing
    "bars_from_records",
    "coerce_series",
    "dates_of",
    "extract_closes",
    "extract_hlc",
    "validate_numeric",
    "validate_period",
    "validate_series",
    # Reference data models
    "TickerDetails",
    "NewsArticle",
    "Dividend",
    "EarningsQuarter",
    "PreviousClose",
    "MarketStatus",
    # Indicators
    "IndicatorParams",
    "IndicatorResult",
    "compute_indicator",
    "compute_from_values",
]
