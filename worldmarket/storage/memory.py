"""In-memory stores, used by tests and the "memory" backend."""

import copy
from typing import List, Optional

from worldmarket.models import MarketState, Transaction
from worldmarket.storage.base import LedgerStore, MarketStateStore


class InMemoryMarketStateStore(MarketStateStore):
    """Keeps the snapshot in a dict. Loads return deep copies, like re-reading a file would."""

    def __init__(self, initial: Optional[MarketState] = None):
        super().__init__()
        self._state: MarketState = copy.deepcopy(initial) if initial else {}

    def load(self) -> MarketState:
        return copy.deepcopy(self._state)

    def _write(self, state: MarketState) -> None:
        self._state = copy.deepcopy(state)


class InMemoryLedgerStore(LedgerStore):

    def __init__(self, initial: Optional[List[Transaction]] = None):
        super().__init__()
        self._entries: List[Transaction] = copy.deepcopy(initial) if initial else []

    def load(self) -> List[Transaction]:
        return copy.deepcopy(self._entries)

    def _append(self, tx: Transaction) -> None:
        self._entries.append(copy.deepcopy(tx))
