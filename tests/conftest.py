"""Shared fixtures for market engine tests."""

import itertools

import pytest

from worldmarket.api import create_app
from worldmarket.config import MarketConfig
from worldmarket.engine import MarketEngine
from worldmarket.storage import InMemoryLedgerStore, InMemoryMarketStateStore


class FixedClock:
    """Deterministic epoch-ms clock that advances one second per call."""

    def __init__(self, start: int = 1_700_000_000_000):
        self._counter = itertools.count(start, 1000)

    def __call__(self) -> int:
        return next(self._counter)


@pytest.fixture
def state_store():
    return InMemoryMarketStateStore()


@pytest.fixture
def ledger_store():
    return InMemoryLedgerStore()


@pytest.fixture
def fixed_clock():
    return FixedClock()


@pytest.fixture
def engine(state_store, ledger_store, fixed_clock):
    return MarketEngine(state_store, ledger_store, clock=fixed_clock)


@pytest.fixture
def app_config(tmp_path):
    return MarketConfig(
        data_dir=str(tmp_path / "economy"),
        store_backend="memory",
        countries_dir=str(tmp_path / "countries"),
        url_prefix="/api/market",
        snapshot_recent=40
    )


@pytest.fixture
def client(engine, app_config):
    app = create_app(engine=engine, config=app_config)
    app.config["TESTING"] = True
    return app.test_client()
