from .sources import (
    DataSource,
    AdapterError,
    RateLimitError,
    FetchError,
    ParseError,
    DataError,
    ValidationError,
    ErrorCode,
    HTTP_STATUS_CODES,
)

__all__ = [
    "DataSource",
    # Errors
    "AdapterError",
    "RateLimitError",
    "FetchError",
    "ParseError",
    "DataError",
    "ValidationError",
    # Error codes
    "ErrorCode",
    "HTTP_STATUS_CODES",
]
