"""
Configuration management for the trade journal importer.

Loads settings from config.yaml and environment variables.
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_FILE = PROJECT_ROOT / "config.yaml"
DATA_DIR = PROJECT_ROOT / "data"

# Ensure directories exist
DATA_DIR.mkdir(exist_ok=True)

# Canonical timezone for every stored entry/exit date and time
TARGET_TIMEZONE = "America/New_York"


def load_config() -> dict[str, Any]:
    """Load configuration from YAML file, layered over the defaults."""
    config = get_default_config()
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE, "r") as f:
            overrides = yaml.safe_load(f) or {}
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(config.get(key), dict):
                config[key] = {**config[key], **value}
            else:
                config[key] = value
    return config


def get_default_config() -> dict[str, Any]:
    """Return default configuration if config.yaml doesn't exist."""
    return {
        "timezone": TARGET_TIMEZONE,
        "imports": {
            "max_upload_mb": 10,
            "default_mode": "append",
            "preview_rows": 5,
            "session_ttl_minutes": 60,
            "broker_timezones": {
                "metatrader": "Europe/Helsinki",
                "ninjatrader": "America/Sao_Paulo",
                "tradovate": "America/New_York",
            },
        },
        "storage": {
            "page_size": 1000,
        },
    }


class Settings:
    """Application settings singleton."""

    _instance = None
    _config: dict[str, Any] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._config = load_config()
        return cls._instance

    @property
    def target_timezone(self) -> str:
        return self._config.get("timezone", TARGET_TIMEZONE)

    @property
    def max_upload_bytes(self) -> int:
        env_value = os.getenv("MAX_UPLOAD_MB")
        if env_value:
            try:
                return int(float(env_value) * 1024 * 1024)
            except ValueError:
                pass
        return int(self.get("imports.max_upload_mb", 10) * 1024 * 1024)

    @property
    def default_import_mode(self) -> str:
        return self.get("imports.default_mode", "append")

    @property
    def preview_rows(self) -> int:
        return self.get("imports.preview_rows", 5)

    @property
    def import_session_ttl_seconds(self) -> float:
        """Idle time after which an import session is evicted from memory."""
        return float(self.get("imports.session_ttl_minutes", 60)) * 60

    @property
    def storage_page_size(self) -> int:
        return self.get("storage.page_size", 1000)

    def default_broker_timezone(self, data_source: str | None) -> str:
        """Broker timezone proposed for a data source before the user picks one."""
        zones = self.get("imports.broker_timezones", {})
        if data_source and data_source in zones:
            return zones[data_source]
        return self.target_timezone

    def get(self, key: str, default: Any = None) -> Any:
        """Get a config value by dot-notation key."""
        keys = key.split(".")
        value = self._config
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
        return value if value is not None else default


# Global settings instance
settings = Settings()


# Environment variable helpers
def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.getenv(key, default)


def get_database_url() -> str:
    """Get database URL from environment or default."""
    default_db = f"sqlite:///{DATA_DIR}/journal.db"
    return os.getenv("DATABASE_URL", default_db)


def get_default_user_id() -> str:
    """User id stamped on imported trades when no caller identity is available."""
    return os.getenv("JOURNAL_USER_ID", "").strip()
