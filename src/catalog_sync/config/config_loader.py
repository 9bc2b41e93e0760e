"""
Configuration loader for the catalog sync.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from ..core.exceptions import ConfigError
from ..feeds.fetcher import FEED_NAMES


logger = logging.getLogger(__name__)


DEFAULT_FEED_BASE_URL = (
    "https://plano.plus/api/eshop/Feed/GetEshopFeed/05ea5870-0f66-44be-827d-e501879a0330/"
)


class SyncConfig:
    """
    Configuration for the catalog sync.

    Loads a YAML file on top of built-in defaults, then applies
    environment variable overrides (SYNC_*).
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to YAML config file (optional)
        """
        self.config_path = Path(config_path) if config_path else None
        self.config = self._default_config()
        if self.config_path:
            _deep_merge(self.config, self._load_config())
        self._apply_env_overrides()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file."""
        if not self.config_path.exists():
            raise ConfigError(f"Config file not found: {self.config_path}")

        logger.info(f"Loading config from: {self.config_path}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self.config_path}: {e}") from e

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(f"Config file must contain a mapping: {self.config_path}")
        return config

    def _default_config(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "feeds": {
                "base_url": DEFAULT_FEED_BASE_URL,
                "urls": {},
            },
            "http": {
                "timeout": 30,
                "max_retries": 3,
                "backoff_base": 1.0,
                "user_agent": None,
            },
            "runner": {
                "batch_size": 10,
                "cron_batch_size": 50,
                "lock_ttl_seconds": 1800,
                "advance_policy": "retry_in_place",
            },
            "state": {
                "backend": "sqlite",
                "db_path": "local/state/sync_state.db",
                "sqlserver": {
                    "host": "localhost",
                    "port": 1433,
                    "database": "CatalogSync",
                    "user": "sa",
                    "schema": "sync",
                },
            },
            "catalog": {
                "db_path": "local/catalog.db",
            },
            "assets": {
                "base_dir": "local/uploads",
            },
            "snapshot": {
                "path": "local/state/items_snapshot.json",
                "key_field": "Code",
            },
            "logging": {
                "level": "INFO",
                "file": "local/logs/catalog-sync.log",
                "structured": False,
                "max_bytes": 5 * 1024 * 1024,
                "backup_count": 5,
            },
            "trigger": {
                "secret": None,
            },
            "cleanup": {
                "prefix": None,
                "batch": 200,
            },
        }

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to loaded config."""
        base_url = os.environ.get("SYNC_FEED_BASE_URL")
        if base_url:
            self.config["feeds"]["base_url"] = base_url

        urls = self.config["feeds"].setdefault("urls", {}) or {}
        for name in FEED_NAMES:
            url = os.environ.get(f"SYNC_FEED_{name.upper()}_URL")
            if url:
                urls[name] = url
        self.config["feeds"]["urls"] = urls

        overrides = {
            "SYNC_TRIGGER_SECRET": ("trigger", "secret"),
            "SYNC_STATE_DB": ("state", "db_path"),
            "SYNC_STATE_BACKEND": ("state", "backend"),
            "SYNC_LOG_FILE": ("logging", "file"),
            "SYNC_CATALOG_DB": ("catalog", "db_path"),
            "SYNC_ASSET_DIR": ("assets", "base_dir"),
        }
        for env_var, (section, key) in overrides.items():
            value = os.environ.get(env_var)
            if value:
                self.config.setdefault(section, {})[key] = value

    def get_feed_config(self) -> Dict[str, Any]:
        """Get feed configuration."""
        return self.config.get("feeds", {})

    def get_http_config(self) -> Dict[str, Any]:
        """Get HTTP connector configuration."""
        return self.config.get("http", {})

    def get_state_config(self) -> Dict[str, Any]:
        """Get state store configuration."""
        return self.config.get("state", {})

    def get_runner_config(self) -> Dict[str, Any]:
        """Get runner configuration."""
        return self.config.get("runner", {})

    def get_logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.config.get("logging", {})

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dotted key, e.g. "runner.batch_size"."""
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def get_int(self, key: str, default: int) -> int:
        """Get an integer value, raising ConfigError if it is not one."""
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} must be an integer, got {value!r}") from e


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = copy.deepcopy(value)
    return base
