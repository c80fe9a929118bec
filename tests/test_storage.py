"""Tests for the market state and ledger stores."""

import json
import threading

import pytest

from worldmarket.config import MarketConfig
from worldmarket.exceptions import StorePersistenceError
from worldmarket.storage import (
    DatabaseLedgerStore,
    DatabaseMarketStateStore,
    InMemoryLedgerStore,
    InMemoryMarketStateStore,
    JsonFileLedgerStore,
    JsonFileMarketStateStore,
    atomic_write_json,
    create_stores,
    read_json_document
)


def _tx(tx_id, item="oil", side="buy", qty=10.0, ppu=12.5):
    return {
        "id": tx_id,
        "actor": "user123",
        "country": None,
        "item": item,
        "qty": qty,
        "price_per_unit": ppu,
        "total_price": round(ppu * qty, 2),
        "side": side,
        "breakdown": {
            "base": 100.0,
            "supplyFactor": 1.0,
            "demandFactor": 1.0,
            "qtyImpact": 1.25,
            "trendFactor": 1.0,
            "countryFactor": 1.0,
            "scarcityFactor": 1.0
        },
        "ts": 1_700_000_000_000
    }


class TestJsonFileMarketStateStore:
    """Atomic JSON document for item state."""

    def test_first_load_creates_empty_document(self, tmp_path):
        path = tmp_path / "economy" / "state.json"
        store = JsonFileMarketStateStore(path)

        assert store.load() == {}
        assert path.exists()
        assert json.loads(path.read_text(encoding="utf-8")) == {}

    def test_save_load_round_trip(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        state = {
            "oil": {"stock": 120.0, "demand": 4.5, "trend": -0.01},
            "iron": {"stock": 0, "demand": 0, "trend": 0, "basePrice": 35}
        }
        store.save(state)
        assert store.load() == state

        store.save(store.load())
        assert store.load() == state

    def test_save_leaves_no_temp_file(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        store.save({"oil": {"stock": 1, "demand": 0, "trend": 0}})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["state.json"]

    def test_corrupt_document_resets_to_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text('{"oil": {"stock": 1', encoding="utf-8")
        assert JsonFileMarketStateStore(path).load() == {}

    def test_wrong_document_type_resets_to_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2, 3]", encoding="utf-8")
        assert JsonFileMarketStateStore(path).load() == {}

    def test_blank_document_is_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("  \n", encoding="utf-8")
        assert JsonFileMarketStateStore(path).load() == {}

    def test_save_item_keeps_other_items(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        store.save({"oil": {"stock": 5, "demand": 0, "trend": 0}})
        store.save_item("iron", {"stock": 7, "demand": 1, "trend": 0})

        assert store.load() == {
            "oil": {"stock": 5, "demand": 0, "trend": 0},
            "iron": {"stock": 7, "demand": 1, "trend": 0}
        }

    def test_save_failure_raises_and_keeps_previous_document(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        store.save({"oil": {"stock": 5, "demand": 0, "trend": 0}})

        with pytest.raises(StorePersistenceError):
            store.save({"oil": {"stock": object()}})

        assert store.load() == {"oil": {"stock": 5, "demand": 0, "trend": 0}}
        assert not (tmp_path / "state.json.tmp").exists()

    def test_save_onto_directory_raises(self, tmp_path):
        target = tmp_path / "state.json"
        target.mkdir()
        with pytest.raises(StorePersistenceError):
            atomic_write_json(target, {})


    def test_non_finite_numbers_are_not_written(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        store.save({"oil": {"stock": 1, "demand": 0, "trend": 0}})

        with pytest.raises(StorePersistenceError):
            store.save({"oil": {"stock": float("inf"), "demand": 0, "trend": 0}})
        assert store.load() == {"oil": {"stock": 1, "demand": 0, "trend": 0}}

    def test_reading_a_missing_document_writes_nothing(self, tmp_path):
        path = tmp_path / "state.json"
        assert read_json_document(path, dict) == {}
        assert not path.exists()

    def test_first_load_does_not_clobber_a_pending_save(self, tmp_path):
        store = JsonFileMarketStateStore(tmp_path / "state.json")
        state = {"oil": {"stock": 7.0, "demand": 0.0, "trend": 0.0}}
        seen = []

        with store._lock:
            reader = threading.Thread(target=lambda: seen.append(store.load()))
            reader.start()
            store._write(state)
        reader.join()

        assert seen == [state]
        assert store.load() == state


class TestJsonFileLedgerStore:
    """Append-only JSON array."""

    def test_empty_on_first_load(self, tmp_path):
        store = JsonFileLedgerStore(tmp_path / "ledger.json")
        assert store.load() == []
        assert json.loads((tmp_path / "ledger.json").read_text(encoding="utf-8")) == []

    def test_append_preserves_order(self, tmp_path):
        store = JsonFileLedgerStore(tmp_path / "ledger.json")
        for i in range(5):
            store.append(_tx(f"tx_{i}"))

        assert [tx["id"] for tx in store.load()] == [f"tx_{i}" for i in range(5)]
        reopened = JsonFileLedgerStore(tmp_path / "ledger.json")
        assert reopened.load() == store.load()

    def test_tail(self, tmp_path):
        store = JsonFileLedgerStore(tmp_path / "ledger.json")
        for i in range(5):
            store.append(_tx(f"tx_{i}"))

        assert [tx["id"] for tx in store.tail(2)] == ["tx_3", "tx_4"]
        assert len(store.tail(50)) == 5
        assert store.tail(0) == []
        assert store.tail(-3) == []

    def test_corrupt_ledger_is_empty(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text("[{]", encoding="utf-8")
        assert JsonFileLedgerStore(path).load() == []

    def test_object_ledger_is_empty(self, tmp_path):
        path = tmp_path / "ledger.json"
        path.write_text('{"id": "tx_1"}', encoding="utf-8")
        assert JsonFileLedgerStore(path).load() == []


class TestInMemoryStores:

    def test_load_returns_copies(self):
        store = InMemoryMarketStateStore({"oil": {"stock": 1, "demand": 0, "trend": 0}})
        loaded = store.load()
        loaded["oil"]["stock"] = 999
        assert store.load()["oil"]["stock"] == 1

    def test_ledger_append_and_tail(self):
        store = InMemoryLedgerStore()
        store.append(_tx("tx_a"))
        store.append(_tx("tx_b"))
        assert [tx["id"] for tx in store.load()] == ["tx_a", "tx_b"]
        assert [tx["id"] for tx in store.tail(1)] == ["tx_b"]


class TestDatabaseStores:
    """SQLAlchemy-backed stores on a throwaway SQLite file."""

    @pytest.fixture
    def database_url(self, tmp_path):
        return f"sqlite:///{tmp_path / 'market.db'}"

    def test_state_round_trip(self, database_url):
        store = DatabaseMarketStateStore(database_url)
        assert store.load() == {}

        state = {
            "oil": {"stock": 10.0, "demand": 2.5, "trend": 0.01},
            "iron": {"stock": 3.0, "demand": 0.0, "trend": 0.0, "basePrice": 40.0}
        }
        store.save(state)
        assert store.load() == state

        store.save({"oil": state["oil"]})
        assert store.load() == {"oil": state["oil"]}

    def test_save_item_upserts(self, database_url):
        store = DatabaseMarketStateStore(database_url)
        store.save_item("oil", {"stock": 1.0, "demand": 0.0, "trend": 0.0})
        store.save_item("oil", {"stock": 2.0, "demand": 0.5, "trend": 0.1})
        store.save_item("iron", {"stock": 9.0, "demand": 0.0, "trend": 0.0})

        assert store.load() == {
            "oil": {"stock": 2.0, "demand": 0.5, "trend": 0.1},
            "iron": {"stock": 9.0, "demand": 0.0, "trend": 0.0}
        }

    def test_ledger_append_and_tail(self, database_url):
        store = DatabaseLedgerStore(database_url)
        for i in range(4):
            store.append(_tx(f"tx_{i}", side="sell" if i % 2 else "buy"))

        loaded = store.load()
        assert [tx["id"] for tx in loaded] == ["tx_0", "tx_1", "tx_2", "tx_3"]
        assert loaded[1] == _tx("tx_1", side="sell")
        assert [tx["id"] for tx in store.tail(2)] == ["tx_2", "tx_3"]
        assert store.tail(0) == []

    def test_duplicate_transaction_id_raises(self, database_url):
        store = DatabaseLedgerStore(database_url)
        store.append(_tx("tx_same"))
        with pytest.raises(StorePersistenceError):
            store.append(_tx("tx_same"))
        assert len(store.load()) == 1


class TestCreateStores:

    def test_file_backend(self, tmp_path):
        config = MarketConfig(data_dir=str(tmp_path), store_backend="file")
        state_store, ledger_store = create_stores(config)
        assert isinstance(state_store, JsonFileMarketStateStore)
        assert isinstance(ledger_store, JsonFileLedgerStore)
        assert state_store.path == tmp_path / "state.json"
        assert ledger_store.path == tmp_path / "ledger.json"

    def test_memory_backend(self):
        state_store, ledger_store = create_stores(MarketConfig(store_backend="memory"))
        assert isinstance(state_store, InMemoryMarketStateStore)
        assert isinstance(ledger_store, InMemoryLedgerStore)

    def test_database_backend(self, tmp_path):
        config = MarketConfig(store_backend="database", database_url=f"sqlite:///{tmp_path / 'm.db'}")
        state_store, ledger_store = create_stores(config)
        assert isinstance(state_store, DatabaseMarketStateStore)
        assert isinstance(ledger_store, DatabaseLedgerStore)


def test_init_db_script_creates_tables(tmp_path, monkeypatch):
    from sqlalchemy import inspect

    from worldmarket.database import get_engine, init_db

    url = f"sqlite:///{tmp_path / 'init.db'}"
    monkeypatch.setattr(init_db, "get_config", lambda: MarketConfig(database_url=url))
    init_db.main()

    assert set(inspect(get_engine(url)).get_table_names()) == {"market_items", "ledger_entries"}
