"""
Persistent API key storage.

A small JSON key-value file holding credentials under fixed string keys.
The loader reads it as the lowest-priority source of the Polygon key; the
``set-key`` CLI command writes it. Nothing here is process-global: callers
read the key once and pass it explicitly to the adapter.
"""

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

POLYGON_KEY = "polygonApiKey"

DEFAULT_PATH = Path.home() / ".config" / "polycell" / "credentials.json"


class CredentialStore:
    """JSON file mapping credential names to values."""

    def __init__(self, path: Path | str | None = None):
        env_path = os.environ.get("POLYCELL_CREDENTIALS_PATH")
        self.path = Path(path or env_path or DEFAULT_PATH)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable credential store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed credential store {self.path}")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str = POLYGON_KEY) -> str | None:
        value = self._read().get(key)
        return value or None

    def set(self, value: str, key: str = POLYGON_KEY) -> None:
        """Store a credential, creating the file with owner-only permissions."""
        value = value.strip()
        if not value:
            raise ValueError("No API key provided.")

        data = self._read()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        os.chmod(self.path, 0o600)
        logger.info(f"Stored credential '{key}' in {self.path}")

    def clear(self, key: str = POLYGON_KEY) -> bool:
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return True
