"""Configuration management for the market engine."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from worldmarket.exceptions import ConfigurationError

# Load environment variables
load_dotenv()

STORE_BACKENDS = ("file", "database", "memory")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


@dataclass
class MarketConfig:
    """Application-wide configuration."""

    # Persistence
    data_dir: str = "./economy"
    state_file: str = "state.json"
    ledger_file: str = "ledger.json"
    store_backend: str = "file"  # Options: "file", "database", "memory"
    database_url: str = "sqlite:///./market.db"

    # Reference data
    countries_dir: str = "./map/world/countries"
    catalog_path: Optional[str] = None

    # HTTP
    url_prefix: str = "/api/market"
    snapshot_recent: int = 40
    flask_host: str = "0.0.0.0"
    flask_port: int = 5000
    flask_debug: bool = False

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.store_backend not in STORE_BACKENDS:
            raise ConfigurationError(
                f"store_backend must be one of {', '.join(STORE_BACKENDS)}, got {self.store_backend!r}"
            )
        if self.snapshot_recent < 0:
            raise ConfigurationError(f"snapshot_recent must be >= 0, got {self.snapshot_recent}")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

    @property
    def state_path(self) -> Path:
        return Path(self.data_dir) / self.state_file

    @property
    def ledger_path(self) -> Path:
        return Path(self.data_dir) / self.ledger_file

    @property
    def logging_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())

    @classmethod
    def load(cls) -> "MarketConfig":
        """Load configuration from environment variables."""
        return cls(
            data_dir=os.getenv("MARKET_DATA_DIR", "./economy"),
            state_file=os.getenv("MARKET_STATE_FILE", "state.json"),
            ledger_file=os.getenv("MARKET_LEDGER_FILE", "ledger.json"),
            store_backend=os.getenv("MARKET_STORE_BACKEND", "file").strip().lower(),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./market.db"),
            countries_dir=os.getenv("COUNTRIES_DIR", "./map/world/countries"),
            catalog_path=os.getenv("CATALOG_PATH") or None,
            url_prefix=os.getenv("MARKET_URL_PREFIX", "/api/market"),
            snapshot_recent=_env_int("SNAPSHOT_RECENT", 40),
            flask_host=os.getenv("FLASK_HOST", "0.0.0.0"),
            flask_port=_env_int("FLASK_PORT", 5000),
            flask_debug=_env_bool("FLASK_DEBUG", "False"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_to_file=_env_bool("LOG_TO_FILE", "False"),
            log_dir=os.getenv("LOG_DIR", "logs"),
        )


# Global configuration instance
config: Optional[MarketConfig] = None


def get_config() -> MarketConfig:
    """Get the global configuration instance."""
    global config
    if config is None:
        config = MarketConfig.load()
    return config
