"""
Config loader: YAML file -> validated -> frozen dataclass tree.

Secrets never come from the config file; see config.credentials.
A missing default config file means built-in defaults.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml

from broker.kite_client import DEFAULT_BASE_URL, DEFAULT_LOGIN_URL
from broker.models import VALIDITY_DAY, VARIETY_REGULAR

logger = logging.getLogger("zerodha.config")

DEFAULT_CONFIG_PATH = "zerodha.yaml"

BATCH_POLICIES = ("isolate", "stop-on-error")

CONFIG_SCHEMA: dict[str, Any] = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "kite": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "base_url": {"type": "string", "minLength": 1},
                "login_url": {"type": "string", "minLength": 1},
                "timeout_sec": {"type": "number", "exclusiveMinimum": 0},
            },
        },
        "orders": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "variety": {"type": "string", "enum": ["regular", "amo", "co", "iceberg", "auction"]},
                "validity": {"type": "string", "enum": ["DAY", "IOC", "TTL"]},
            },
        },
        "batch": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "policy": {"type": "string", "enum": list(BATCH_POLICIES)},
            },
        },
        "auth": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "token_cache": {"type": "string"},
            },
        },
        "logging": {
            "type": "object",
            "additionalProperties": False,
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]},
                "structured_logs": {"type": "boolean"},
                "webhook_url": {"type": "string"},
            },
        },
    },
}


class ConfigError(Exception):
    """Raised when the config file cannot be read or fails validation."""


@dataclass(frozen=True)
class KiteConfig:
    base_url: str = DEFAULT_BASE_URL
    login_url: str = DEFAULT_LOGIN_URL
    timeout_sec: float = 7.0


@dataclass(frozen=True)
class OrdersConfig:
    variety: str = VARIETY_REGULAR
    validity: str = VALIDITY_DAY


@dataclass(frozen=True)
class BatchConfig:
    policy: str = "isolate"


@dataclass(frozen=True)
class AuthConfig:
    token_cache: str = ""


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "WARNING"
    structured_logs: bool = False
    webhook_url: str = ""


@dataclass(frozen=True)
class AppConfig:
    kite: KiteConfig = field(default_factory=KiteConfig)
    orders: OrdersConfig = field(default_factory=OrdersConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _validate(raw: dict[str, Any], path: Path) -> None:
    try:
        jsonschema.validate(instance=raw, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        location = ".".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"{path}: invalid config at {location}: {exc.message}") from exc


def load_config(path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from a YAML file.

    With no *path*, ``zerodha.yaml`` in the working directory is used if it
    exists, otherwise defaults. An explicitly given path must exist.
    """
    if path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)
        if not config_path.exists():
            logger.debug("No %s found, using defaults", DEFAULT_CONFIG_PATH)
            return AppConfig()
    else:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"{config_path}: invalid YAML: {exc}") from exc

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(raw).__name__}")
    _validate(raw, config_path)

    k_raw = raw.get("kite", {})
    kite_cfg = KiteConfig(
        base_url=k_raw.get("base_url", DEFAULT_BASE_URL),
        login_url=k_raw.get("login_url", DEFAULT_LOGIN_URL),
        timeout_sec=float(k_raw.get("timeout_sec", 7.0)),
    )

    o_raw = raw.get("orders", {})
    orders_cfg = OrdersConfig(
        variety=o_raw.get("variety", VARIETY_REGULAR),
        validity=o_raw.get("validity", VALIDITY_DAY),
    )

    b_raw = raw.get("batch", {})
    batch_cfg = BatchConfig(policy=b_raw.get("policy", "isolate"))

    a_raw = raw.get("auth", {})
    auth_cfg = AuthConfig(token_cache=str(a_raw.get("token_cache", "")))

    l_raw = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=l_raw.get("level", "WARNING"),
        structured_logs=bool(l_raw.get("structured_logs", False)),
        webhook_url=str(l_raw.get("webhook_url", "")),
    )

    return AppConfig(
        kite=kite_cfg,
        orders=orders_cfg,
        batch=batch_cfg,
        auth=auth_cfg,
        logging=logging_cfg,
    )
