"""Market state and ledger stores."""

from typing import Optional, Tuple

from worldmarket.config import MarketConfig, get_config
from .base import MarketStateStore, LedgerStore
from .memory import InMemoryMarketStateStore, InMemoryLedgerStore
from .files import JsonFileMarketStateStore, JsonFileLedgerStore, atomic_write_json, read_json_document
from .sql import DatabaseMarketStateStore, DatabaseLedgerStore


def create_stores(config: Optional[MarketConfig] = None) -> Tuple[MarketStateStore, LedgerStore]:
    """Build the state and ledger stores for the configured backend."""
    if config is None:
        config = get_config()

    if config.store_backend == "memory":
        return InMemoryMarketStateStore(), InMemoryLedgerStore()

    if config.store_backend == "database":
        return (
            DatabaseMarketStateStore(config.database_url),
            DatabaseLedgerStore(config.database_url)
        )

    return (
        JsonFileMarketStateStore(config.state_path),
        JsonFileLedgerStore(config.ledger_path)
    )


__all__ = [
    "MarketStateStore",
    "LedgerStore",
    "InMemoryMarketStateStore",
    "InMemoryLedgerStore",
    "JsonFileMarketStateStore",
    "JsonFileLedgerStore",
    "DatabaseMarketStateStore",
    "DatabaseLedgerStore",
    "atomic_write_json",
    "read_json_document",
    "create_stores"
]
