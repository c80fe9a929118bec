"""Tests for environment configuration."""

import logging
from datetime import datetime
from pathlib import Path

import pytest

from worldmarket.config import MarketConfig
from worldmarket.exceptions import ConfigurationError
from worldmarket.utils import configure_logging, log_file_path


class TestMarketConfig:

    def test_defaults(self, monkeypatch):
        for name in ["MARKET_DATA_DIR", "MARKET_STORE_BACKEND", "SNAPSHOT_RECENT", "FLASK_PORT", "FLASK_DEBUG", "CATALOG_PATH"]:
            monkeypatch.delenv(name, raising=False)

        config = MarketConfig.load()
        assert config.store_backend == "file"
        assert config.state_path == Path("./economy") / "state.json"
        assert config.ledger_path == Path("./economy") / "ledger.json"
        assert config.snapshot_recent == 40
        assert config.flask_port == 5000
        assert config.flask_debug is False
        assert config.catalog_path is None
        assert config.url_prefix == "/api/market"

    def test_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("MARKET_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MARKET_STORE_BACKEND", "Database")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///./other.db")
        monkeypatch.setenv("SNAPSHOT_RECENT", "5")
        monkeypatch.setenv("FLASK_DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = MarketConfig.load()
        assert config.state_path == tmp_path / "state.json"
        assert config.store_backend == "database"
        assert config.database_url == "sqlite:///./other.db"
        assert config.snapshot_recent == 5
        assert config.flask_debug is True
        assert config.logging_level == logging.DEBUG

    def test_bad_integer(self, monkeypatch):
        monkeypatch.setenv("FLASK_PORT", "eighty")
        with pytest.raises(ConfigurationError):
            MarketConfig.load()

    def test_unknown_backend(self):
        with pytest.raises(ConfigurationError):
            MarketConfig(store_backend="redis")

    def test_negative_snapshot_recent(self):
        with pytest.raises(ConfigurationError):
            MarketConfig(snapshot_recent=-1)

    def test_unknown_log_level(self):
        with pytest.raises(ConfigurationError):
            MarketConfig(log_level="LOUD")


class TestConfigureLogging:

    @pytest.fixture(autouse=True)
    def reset_handlers(self):
        yield
        configure_logging(MarketConfig(log_level="WARNING"))

    def test_level_from_config(self):
        logger = configure_logging(MarketConfig(log_level="DEBUG"))
        assert logger.name == "worldmarket"
        assert logger.level == logging.DEBUG

    def test_reconfigure_keeps_foreign_handlers(self):
        logger = logging.getLogger("worldmarket")
        foreign = logging.NullHandler()
        logger.addHandler(foreign)
        try:
            configure_logging(MarketConfig())
            configure_logging(MarketConfig())
            owned = [h for h in logger.handlers if h is not foreign]
            assert len(owned) == 1
            assert foreign in logger.handlers
        finally:
            logger.removeHandler(foreign)

    def test_module_records_reach_log_file(self, tmp_path):
        log_dir = tmp_path / "logs"
        configure_logging(MarketConfig(log_to_file=True, log_dir=str(log_dir)))

        logging.getLogger("worldmarket.engine").debug("trade tx_abc recorded")
        configure_logging(MarketConfig(log_level="WARNING"))

        files = list(log_dir.glob("market_*.log"))
        assert len(files) == 1
        assert "worldmarket.engine" in files[0].read_text(encoding="utf-8")
        assert "trade tx_abc recorded" in files[0].read_text(encoding="utf-8")

    def test_log_file_path(self):
        path = log_file_path("logs", now=datetime(2024, 3, 5, 7, 8, 9))
        assert path == Path("logs") / "market_20240305_070809.log"
