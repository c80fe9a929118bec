"""Store interfaces for market state and the trade ledger."""

import threading
from abc import ABC, abstractmethod
from typing import List

from worldmarket.models import ItemState, MarketState, Transaction


class MarketStateStore(ABC):
    """
    Durable item -> state snapshot.

    Writes are serialized by a store-level lock; reads never block.
    """

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def load(self) -> MarketState:
        """Return the full mapping, empty if nothing was saved or it is unreadable."""

    @abstractmethod
    def _write(self, state: MarketState) -> None:
        """Persist the full mapping, replacing what was there."""

    def save(self, state: MarketState) -> None:
        with self._lock:
            self._write(state)

    def save_item(self, item_id: str, item_state: ItemState) -> None:
        """Replace one item's state without discarding concurrent writes to other items."""
        with self._lock:
            state = self.load()
            state[item_id] = dict(item_state)
            self._write(state)


class LedgerStore(ABC):
    """Append-only, chronologically ordered transaction log."""

    def __init__(self):
        self._lock = threading.RLock()

    @abstractmethod
    def load(self) -> List[Transaction]:
        """Return every transaction, oldest first."""

    @abstractmethod
    def _append(self, tx: Transaction) -> None:
        """Durably add one transaction at the end of the log."""

    def append(self, tx: Transaction) -> None:
        with self._lock:
            self._append(tx)

    def tail(self, count: int) -> List[Transaction]:
        """Return the most recent count transactions, oldest first."""
        if count <= 0:
            return []
        return self.load()[-count:]
