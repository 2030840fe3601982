"""
Configuration loaders.

App config:   reads zerodha.yaml (optional), validates against a JSON Schema.
Credentials:  CLI option > environment > fail; never read from the config file.
"""

from config.credentials import (
    ENV_ACCESS_TOKEN,
    ENV_API_KEY,
    ENV_API_SECRET,
    ENV_REFRESH_TOKEN,
    Credentials,
    CredentialsError,
    resolve_credentials,
)
from config.loader import (
    AppConfig,
    AuthConfig,
    BatchConfig,
    ConfigError,
    KiteConfig,
    LoggingConfig,
    OrdersConfig,
    load_config,
)

__all__ = [
    # App config (YAML)
    "AppConfig",
    "AuthConfig",
    "BatchConfig",
    "ConfigError",
    "KiteConfig",
    "LoggingConfig",
    "OrdersConfig",
    "load_config",
    # Credentials
    "Credentials",
    "CredentialsError",
    "ENV_ACCESS_TOKEN",
    "ENV_API_KEY",
    "ENV_API_SECRET",
    "ENV_REFRESH_TOKEN",
    "resolve_credentials",
]
