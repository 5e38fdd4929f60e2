"""
Shared fixtures.

Every test runs in an empty working directory with no Polygon key in the
environment and a private credential store, so nothing on the developer's
machine leaks into results.
"""

from datetime import datetime, timezone

import pytest

from config import Settings, get_config, get_settings


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("POLYGON_API_KEY", raising=False)
    monkeypatch.delenv("POLYCELL_POLYGON_KEY", raising=False)
    monkeypatch.delenv("POLYCELL_WATCHLIST", raising=False)
    monkeypatch.setenv("POLYCELL_CREDENTIALS_PATH", str(tmp_path / "credentials.json"))
    get_config.cache_clear()
    get_settings.cache_clear()
    yield
    get_config.cache_clear()
    get_settings.cache_clear()


@pytest.fixture
def settings():
    """Built-in defaults, no file or environment lookups."""
    return Settings()


def bar_record(day: int, close: float, spread: float = 1.0, volume: float = 1_000_000) -> dict:
    """Polygon aggregate record for 2024-01-{day} 00:00 UTC."""
    ts = datetime(2024, 1, day, tzinfo=timezone.utc)
    return {
        "o": close,
        "h": close + spread,
        "l": close - spread,
        "c": close,
        "v": volume,
        "t": int(ts.timestamp() * 1000),
    }


@pytest.fixture
def bar_records():
    """Twenty daily bars, 2024-01-01 .. 2024-01-20, closes 100..119."""
    return [bar_record(day, 99.0 + day) for day in range(1, 21)]


@pytest.fixture
def make_record():
    return bar_record
