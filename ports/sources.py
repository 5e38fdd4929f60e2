"""
Data source ports and error types.

Defines the protocol market data adapters implement and the exceptions they
raise at the network boundary. The indicator engine itself never raises;
see domain.failures for its error values.

Every exception carries an ErrorCode, the source that raised it and a small
context dict. ``message`` is the bare human-readable text; ``str(exc)``
prefixes it with the code and source for logs.
"""

from abc import abstractmethod
from datetime import datetime, timedelta
from enum import Enum
from typing import Protocol, runtime_checkable, Any

from domain import Observation, Category


# ============================================================================
# Error Codes
# ============================================================================

class ErrorCode(str, Enum):
    """Stable identifiers for boundary failures."""

    # Network (1xx)
    NETWORK_TIMEOUT = "E101"
    NETWORK_CONNECTION = "E102"
    NETWORK_DNS = "E103"
    NETWORK_SSL = "E104"

    # HTTP status (2xx)
    HTTP_CLIENT_ERROR = "E201"
    HTTP_SERVER_ERROR = "E202"
    HTTP_RATE_LIMITED = "E203"
    HTTP_UNAUTHORIZED = "E204"
    HTTP_FORBIDDEN = "E205"
    HTTP_NOT_FOUND = "E206"

    # Response body (3xx)
    PARSE_JSON = "E301"

    # Response content (4xx)
    DATA_INVALID = "E402"
    DATA_EMPTY = "E404"

    # Request arguments (5xx)
    VALIDATION_TICKER = "E501"
    VALIDATION_PARAM = "E502"
    VALIDATION_DATE = "E503"
    VALIDATION_API_KEY = "E504"

    UNKNOWN = "E999"


HTTP_STATUS_CODES = {
    401: ErrorCode.HTTP_UNAUTHORIZED,
    403: ErrorCode.HTTP_FORBIDDEN,
    404: ErrorCode.HTTP_NOT_FOUND,
}

# (substrings of the lowercased error text, code, reason); first match wins
NETWORK_FAILURES = (
    (("timeout", "timed out"), ErrorCode.NETWORK_TIMEOUT, "Request timed out"),
    (("ssl", "certificate"), ErrorCode.NETWORK_SSL, "SSL/TLS error"),
    (("name resolution", "nodename"), ErrorCode.NETWORK_DNS, "DNS resolution failed"),
)


# ============================================================================
# Error Classes
# ============================================================================

class AdapterError(Exception):
    """Base exception for failures talking to a data provider."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        source: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        self.message = message
        self.code = code
        self.source = source
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now()

        prefix = f"[{code.value}]" + (f"[{source}]" if source else "")
        super().__init__(f"{prefix} {message}")

    def to_dict(self) -> dict[str, Any]:
        """Structured form for log ``extra`` fields."""
        return {
            "code": self.code.value,
            "message": self.message,
            "source": self.source,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": repr(self.cause) if self.cause else None,
        }


class RateLimitError(AdapterError):
    """The provider answered 429, or the local limiter refused the request."""

    def __init__(
        self,
        retry_after: timedelta | None = None,
        source: str | None = None,
        limit: int | None = None,
    ):
        self.retry_after = retry_after
        self.limit = limit

        context: dict[str, Any] = {}
        message = "Rate limit exceeded"
        if retry_after is not None:
            seconds = max(retry_after.total_seconds(), 0.0)
            context["retry_after_seconds"] = seconds
            message = f"{message}, retry after {seconds:.0f}s"
        if limit is not None:
            context["limit"] = limit

        super().__init__(message, ErrorCode.HTTP_RATE_LIMITED, source, context)


class FetchError(AdapterError):
    """HTTP error status or network failure. ``status_code`` is None for the latter."""

    def __init__(
        self,
        source: str,
        reason: str,
        code: ErrorCode = ErrorCode.UNKNOWN,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        self.reason = reason
        self.url = url
        self.status_code = status_code

        context: dict[str, Any] = {"url": url} if url else {}
        if status_code is not None:
            context["status_code"] = status_code

        super().__init__(reason, code, source, context, cause)

    @classmethod
    def from_http_error(
        cls,
        source: str,
        status_code: int,
        url: str | None = None,
        response_body: str | None = None,
    ) -> "FetchError":
        """
        Error for a non-2xx response.

        Raises:
            RateLimitError: For 429, which is never returned as a FetchError
        """
        if status_code == 429:
            raise RateLimitError(source=source)

        if status_code in HTTP_STATUS_CODES:
            code = HTTP_STATUS_CODES[status_code]
        elif 400 <= status_code < 500:
            code = ErrorCode.HTTP_CLIENT_ERROR
        else:
            code = ErrorCode.HTTP_SERVER_ERROR

        reason = f"HTTP {status_code}"
        if response_body:
            reason = f"{reason}: {response_body[:100]}"
        return cls(source, reason, code, url=url, status_code=status_code)

    @classmethod
    def from_network_error(
        cls,
        source: str,
        error: Exception,
        url: str | None = None,
    ) -> "FetchError":
        """Error for a request that never got a response."""
        text = str(error).lower()
        for needles, code, reason in NETWORK_FAILURES:
            if any(needle in text for needle in needles):
                break
        else:
            code, reason = ErrorCode.NETWORK_CONNECTION, f"Connection error: {error}"
        return cls(source, reason, code, url=url, cause=error)


class ParseError(AdapterError):
    """Response body is not the JSON object the endpoint promises."""

    def __init__(
        self,
        source: str,
        reason: str,
        raw_content: str | None = None,
        cause: Exception | None = None,
    ):
        context = {"raw_preview": raw_content[:200]} if raw_content else {}
        super().__init__(f"Failed to parse JSON: {reason}", ErrorCode.PARSE_JSON, source, context, cause)


class DataError(AdapterError):
    """Well-formed response whose content cannot be used."""

    def __init__(
        self,
        source: str,
        reason: str,
        code: ErrorCode = ErrorCode.DATA_INVALID,
        field: str | None = None,
    ):
        super().__init__(reason, code, source, {"field": field} if field else {})

    @classmethod
    def empty(cls, source: str, description: str = "No data") -> "DataError":
        """No results; ``description`` is shown to the user as-is."""
        return cls(source, description, ErrorCode.DATA_EMPTY)

    @classmethod
    def malformed(cls, source: str, record_type: str, detail: str) -> "DataError":
        return cls(source, f"Malformed {record_type} record: {detail}", field=record_type)


class ValidationError(AdapterError):
    """Request arguments rejected before anything is sent."""

    def __init__(
        self,
        reason: str,
        field: str,
        value: Any = None,
        source: str | None = None,
        code: ErrorCode = ErrorCode.VALIDATION_PARAM,
    ):
        self.field = field
        context: dict[str, Any] = {"field": field}
        if value is not None:
            context["value"] = str(value)[:50]
        super().__init__(reason, code, source, context)

    @classmethod
    def invalid_ticker(cls, ticker: str, reason: str = "Invalid format") -> "ValidationError":
        # A missing ticker reports the bare reason
        message = f"Invalid ticker '{ticker}': {reason}" if ticker else reason
        return cls(message, "ticker", ticker or None, code=ErrorCode.VALIDATION_TICKER)

    @classmethod
    def bad_date(cls, field: str, value: Any, source: str | None = None) -> "ValidationError":
        return cls("Date format must be YYYY-MM-DD", field, value, source, ErrorCode.VALIDATION_DATE)

    @classmethod
    def missing_api_key(cls, source: str) -> "ValidationError":
        return cls(
            "API key not set. Please set your Polygon.io API key.",
            "api_key",
            source=source,
            code=ErrorCode.VALIDATION_API_KEY,
        )


# ============================================================================
# Ports
# ============================================================================

@runtime_checkable
class DataSource(Protocol):
    """
    Protocol for market data adapters.

    Implementations must:
    - Take credentials explicitly (no process-global key)
    - Refuse requests over the configured rate with RateLimitError
    - Cache responses per request for a category-specific TTL
    - Fail with the exceptions above, never with partial data
    """

    @property
    def source_name(self) -> str:
        """Unique identifier for this data source."""
        ...

    @property
    def category(self) -> Category:
        """Default category, used for cache TTLs."""
        ...

    def is_configured(self) -> bool:
        """True when credentials are present."""
        ...

    @abstractmethod
    def fetch(self, **kwargs) -> list[Observation]:
        """
        Fetch one request's observations.

        Raises:
            ValidationError: If arguments or credentials are missing/invalid
            RateLimitError: If rate limit exceeded
            FetchError: On HTTP or network failure
            ParseError: If the body is not JSON
            DataError: If the response has no usable content
        """
        ...

    def is_cache_valid(self) -> bool:
        """True while any cached response is still fresh."""
        ...

    def clear_cache(self) -> None:
        ...
