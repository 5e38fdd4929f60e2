"""
Configuration loader.

Layers, lowest priority first:
1. Built-in defaults (config/schema.py)
2. Stored credential (config/credentials.py), for the Polygon key only
3. TOML file: explicit path, else polycell.toml / .polycell.toml in the
   working directory, else ~/.config/polycell/config.toml
4. Environment, after reading a .env file from the working directory
"""

import logging
import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from .credentials import CredentialStore
from .schema import PolycellConfig

logger = logging.getLogger(__name__)

CONFIG_PATHS = [
    Path("polycell.toml"),
    Path(".polycell.toml"),
    Path.home() / ".config" / "polycell" / "config.toml",
]

ENV_PREFIX = "POLYCELL_"

# First non-empty variable wins
POLYGON_KEY_VARS = (f"{ENV_PREFIX}POLYGON_KEY", "POLYGON_API_KEY")


class ConfigError(Exception):
    """Unreadable or invalid configuration."""

    def __init__(self, message: str, source: str | None = None, field: str | None = None):
        self.source = source
        self.field = field
        super().__init__(message)

    def __str__(self) -> str:
        text = super().__str__()
        if self.field:
            text = f"{text} (field: {self.field})"
        if self.source:
            text = f"{text} in {self.source}"
        return text

    @classmethod
    def from_validation(cls, error: ValidationError, source: str | None = None) -> "ConfigError":
        """First pydantic error, located by dotted field path."""
        first = error.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or None
        return cls(f"Invalid configuration: {first.get('msg', error)}", source=source, field=field)


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to parse TOML: {e}", source=str(path)) from e
    logger.info(f"Loaded config from: {path}")
    return data


def _file_layer(config_path: Path | str | None) -> tuple[dict[str, Any], Path | None]:
    """Contents of the config file in use and its path (None when there is none)."""
    if config_path:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}", source=str(path))
        return _read_toml(path), path

    path = next((p for p in CONFIG_PATHS if p.exists()), None)
    if path is None:
        return {}, None
    return _read_toml(path), path


def _env_layer() -> dict[str, Any]:
    """Overrides taken from environment variables."""
    layer: dict[str, Any] = {}

    key = next((os.environ[name] for name in POLYGON_KEY_VARS if os.environ.get(name)), None)
    if key:
        layer["api_keys"] = {"polygon": key}
        logger.debug("Loaded Polygon API key from environment")

    if watchlist := os.environ.get(f"{ENV_PREFIX}WATCHLIST"):
        layer["watchlist"] = [t.strip() for t in watchlist.split(",") if t.strip()]

    return layer


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursive dict merge; override wins."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(
    config_path: Path | str | None = None,
    use_dotenv: bool = True,
    credential_store: CredentialStore | None = None,
) -> PolycellConfig:
    """
    Load and validate configuration.

    Args:
        config_path: Explicit config file; must exist when given
        use_dotenv: Read ./.env first (never overrides variables already set)
        credential_store: Consulted only when no other layer sets a key

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    if use_dotenv:
        load_dotenv(Path(".env"), override=False)

    file_data, path = _file_layer(config_path)
    data = _merge(file_data, _env_layer())

    if not (data.get("api_keys") or {}).get("polygon"):
        store = credential_store or CredentialStore()
        if stored := store.get():
            data = _merge(data, {"api_keys": {"polygon": stored}})
            logger.debug(f"Loaded Polygon API key from {store.path}")

    try:
        return PolycellConfig(**data)
    except ValidationError as e:
        raise ConfigError.from_validation(e, source=str(path) if path else None) from e


@lru_cache
def get_config() -> PolycellConfig:
    """Process-wide configuration, loaded on first use."""
    return load_config()
