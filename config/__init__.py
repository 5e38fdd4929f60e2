from .settings import Settings, get_settings, reload_settings
from .loader import ConfigError, load_config, get_config
from .schema import PolycellConfig
from .credentials import CredentialStore, POLYGON_KEY

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "ConfigError",
    "load_config",
    "get_config",
    "PolycellConfig",
    "CredentialStore",
    "POLYGON_KEY",
]
