from .base import BaseAdapter, RateLimiter, redact_url
from .polygon import PolygonAdapter

__all__ = [
    "BaseAdapter",
    "RateLimiter",
    "redact_url",
    "PolygonAdapter",
]
