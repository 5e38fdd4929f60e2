"""
Base adapter: response cache, rate limiter and the HTTP/JSON request path.

Subclasses implement ``_fetch_impl`` and build URLs; ``fetch`` wraps it with
a per-request cache lookup and a rate-limit check, and every request goes
through ``_get_json`` so status codes, network failures and bad bodies map
onto the ports exceptions the same way for every endpoint.
"""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from collections.abc import Callable
from typing import Any
import json
import logging
import re
import threading
import time
import urllib.error
import urllib.parse
import urllib.request

from domain import Observation, Category
from ports import AdapterError, RateLimitError, FetchError, ParseError, ValidationError
from config import Settings, get_settings

logger = logging.getLogger(__name__)

# Letters/numbers plus the dot, dash and colon Polygon uses (BRK.B, X:BTCUSD)
TICKER_PATTERN = re.compile(r"^[A-Z0-9.:\-]{1,12}$")

# Query parameters never written to logs
SECRET_PARAMS = frozenset({"apiKey", "apikey", "token"})

DEFAULT_TTL = timedelta(hours=1)


def redact_url(url: str) -> str:
    """Replace credential query values with '***'."""
    parts = urllib.parse.urlsplit(url)
    if not parts.query:
        return url
    pairs = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
    query = urllib.parse.urlencode([(k, "***" if k in SECRET_PARAMS else v) for k, v in pairs])
    return urllib.parse.urlunsplit(parts._replace(query=query))


@dataclass
class _CacheEntry:
    observations: list[Observation]
    expires_at: float = field(default=0.0)

    def fresh(self) -> bool:
        return time.monotonic() < self.expires_at


class RateLimiter:
    """
    Sliding-window limiter: at most ``max_requests`` per ``window_seconds``.

    Shared by every thread using the same adapter. Refuses instead of
    blocking; the refusal carries how long until a slot frees up, which
    BatchRunner waits out before retrying.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sent: deque[float] = deque()
        self._lock = threading.Lock()

    def acquire(self) -> None:
        """
        Take a slot for one request.

        Raises:
            RateLimitError: If the window is full
        """
        with self._lock:
            now = self._clock()
            while self._sent and self._sent[0] <= now - self.window_seconds:
                self._sent.popleft()

            if len(self._sent) >= self.max_requests:
                wait = self._sent[0] + self.window_seconds - now
                raise RateLimitError(retry_after=timedelta(seconds=wait), limit=self.max_requests)

            self._sent.append(now)


class BaseAdapter(ABC):
    """
    Base class for data source adapters.

    Responses are cached per distinct ``fetch`` arguments for the TTL of
    the request's category (``category_for``). Cache hits do not count
    against the rate limit.
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()
        self._cache: dict[str, _CacheEntry] = {}
        self._cache_lock = threading.Lock()
        self._rate_limiter = RateLimiter(self._settings.rate_limits.get(self.source_name, 60))

    @property
    @abstractmethod
    def source_name(self) -> str:
        ...

    @property
    @abstractmethod
    def category(self) -> Category:
        ...

    @property
    def reliability(self) -> float:
        """0-1, stamped on every Observation."""
        return 0.8

    def is_configured(self) -> bool:
        return True

    def category_for(self, **kwargs) -> Category:
        """Category of one request; sources serving several kinds override this."""
        return self.category

    # ========================================================================
    # Cache
    # ========================================================================

    def _cache_key(self, **kwargs) -> str:
        args = ",".join(f"{k}={v}" for k, v in sorted(kwargs.items()) if v is not None)
        return f"{self.source_name}:{args}"

    def _cached(self, key: str) -> list[Observation] | None:
        with self._cache_lock:
            entry = self._cache.get(key)
        if entry is None or not entry.fresh():
            return None
        logger.debug(f"Cache hit: {key}")
        return entry.observations

    def _store(self, key: str, observations: list[Observation], category: Category) -> None:
        ttl = self._settings.cache_ttl.get(category, DEFAULT_TTL)
        entry = _CacheEntry(observations, time.monotonic() + ttl.total_seconds())
        with self._cache_lock:
            self._cache[key] = entry
        logger.debug(f"Cached {len(observations)} observation(s): {key} (TTL={ttl})")

    def is_cache_valid(self) -> bool:
        with self._cache_lock:
            return any(entry.fresh() for entry in self._cache.values())

    def clear_cache(self) -> None:
        with self._cache_lock:
            self._cache.clear()

    # ========================================================================
    # Fetch
    # ========================================================================

    def fetch(self, **kwargs) -> list[Observation]:
        """
        Observations for one request, from cache when fresh.

        Raises:
            ValidationError: If request parameters are invalid
            RateLimitError: If rate limit exceeded
            FetchError: If fetch fails
        """
        key = self._cache_key(**kwargs)
        cached = self._cached(key)
        if cached is not None:
            return cached

        self._check_request(**kwargs)
        self._rate_limiter.acquire()

        try:
            observations = self._fetch_impl(**kwargs)
        except AdapterError:
            raise
        except Exception as e:
            raise FetchError(self.source_name, str(e), cause=e) from e

        self._store(key, observations, self.category_for(**kwargs))
        return observations

    def _check_request(self, **kwargs) -> None:
        """
        Reject bad arguments before a rate-limit slot is taken.

        Raises:
            ValidationError: If request parameters or credentials are invalid
        """

    @abstractmethod
    def _fetch_impl(self, **kwargs) -> list[Observation]:
        """Uncached, unthrottled fetch. Called by fetch()."""
        ...

    def _observe(
        self,
        data: dict[str, Any],
        ticker: str | None = None,
        category: Category | None = None,
        timestamp: datetime | None = None,
    ) -> Observation:
        return Observation(
            source=self.source_name,
            timestamp=timestamp or datetime.now(),
            category=category or self.category,
            data=data,
            ticker=ticker,
            reliability=self.reliability,
        )

    # ========================================================================
    # HTTP
    # ========================================================================

    def _get(self, url: str) -> bytes:
        """
        GET ``url`` and return the body.

        Raises:
            RateLimitError: On 429
            FetchError: On any other HTTP error status or network failure
        """
        safe_url = redact_url(url)
        request = urllib.request.Request(url, headers={"User-Agent": self._settings.user_agent})
        log_extra: dict[str, Any] = {"source": self.source_name, "url": safe_url}

        logger.debug(f"GET {safe_url}", extra=log_extra)
        started = time.monotonic()
        try:
            with urllib.request.urlopen(request, timeout=self._settings.request_timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as e:
            log_extra.update(status=e.code, elapsed_ms=int((time.monotonic() - started) * 1000))
            logger.warning(f"HTTP {e.code} from {safe_url}", extra=log_extra)
            raise FetchError.from_http_error(self.source_name, e.code, url=safe_url) from e
        except (urllib.error.URLError, TimeoutError) as e:
            reason = getattr(e, "reason", e)
            log_extra.update(error=str(reason), elapsed_ms=int((time.monotonic() - started) * 1000))
            logger.warning(f"Network error for {safe_url}: {reason}", extra=log_extra)
            raise FetchError.from_network_error(self.source_name, e, url=safe_url) from e

        log_extra.update(status=200, size=len(body), elapsed_ms=int((time.monotonic() - started) * 1000))
        logger.debug(f"200 OK ({len(body)} bytes)", extra=log_extra)
        return body

    def _get_json(self, url: str) -> dict[str, Any]:
        """
        GET ``url`` and decode a JSON object.

        Raises:
            FetchError: On HTTP or network errors
            ParseError: If the body is not a JSON object
        """
        body = self._get(url)
        text = body.decode("utf-8", errors="replace")
        try:
            parsed = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid JSON from {redact_url(url)}: {e}", extra={"source": self.source_name})
            raise ParseError(self.source_name, str(e), raw_content=text, cause=e) from e

        if not isinstance(parsed, dict):
            raise ParseError(self.source_name, f"expected an object, got {type(parsed).__name__}")
        return parsed

    # ========================================================================
    # Argument checks
    # ========================================================================

    def _validate_ticker(self, ticker: str) -> str:
        """
        Uppercased ticker.

        Raises:
            ValidationError: If missing or not a Polygon-style symbol
        """
        if not ticker:
            raise ValidationError.invalid_ticker("", "Missing required parameter: ticker")

        ticker = ticker.strip().upper()
        if not TICKER_PATTERN.match(ticker):
            raise ValidationError.invalid_ticker(
                ticker, "Must be 1-12 letters, numbers, dots, colons, or dashes"
            )
        return ticker

    def _validate_limit(self, limit: int, max_limit: int = 1000) -> int:
        """
        Raises:
            ValidationError: If limit is outside 1..max_limit
        """
        if not 1 <= limit <= max_limit:
            raise ValidationError(
                f"Limit must be between 1 and {max_limit}, got {limit}",
                "limit",
                limit,
                self.source_name,
            )
        return limit
