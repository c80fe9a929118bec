"""JSON file stores with atomic replace-on-save."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, List, Union

from worldmarket.exceptions import StorePersistenceError
from worldmarket.models import MarketState, Transaction
from worldmarket.storage.base import LedgerStore, MarketStateStore

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def atomic_write_json(path: PathLike, document: Any) -> None:
    """
    Write document as JSON so that readers see either the old or the new file.

    The JSON goes to <path>.tmp, is fsynced, then replaces <path>.

    Raises:
        StorePersistenceError: the document could not be serialized or written
    """
    path = Path(path)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(document, indent=2, allow_nan=False)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to write {path}: {e}")
        try:
            tmp_path.unlink()
        except OSError:
            pass
        raise StorePersistenceError(f"could not write {path.name}") from e

    logger.debug(f"Saved {path}")


def create_if_missing(path: PathLike, lock: Any, empty: Callable[[], Any]) -> None:
    """Write an empty document at path, under the owning store's write lock."""
    path = Path(path)
    if path.exists():
        return
    with lock:
        if path.exists():
            return
        try:
            atomic_write_json(path, empty())
        except StorePersistenceError:
            logger.warning(f"Could not create {path}, continuing with an empty document")


def read_json_document(path: PathLike, empty: Callable[[], Any]) -> Any:
    """
    Read a JSON document without writing anything.

    A missing, unreadable, unparseable or wrongly-typed document yields
    empty(). Nothing is recovered from a corrupt file.
    """
    path = Path(path)
    if not path.exists():
        return empty()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
    except OSError as e:
        logger.warning(f"Failed to read {path}: {e} -- using an empty document")
        return empty()

    if not raw.strip():
        return empty()

    try:
        document = json.loads(raw)
    except ValueError as e:
        logger.warning(f"Corrupt document {path}: {e} -- resetting to empty")
        return empty()

    expected = type(empty())
    if not isinstance(document, expected):
        logger.warning(
            f"Unexpected {type(document).__name__} in {path}, expected {expected.__name__} -- resetting to empty"
        )
        return empty()

    return document


class JsonFileMarketStateStore(MarketStateStore):
    """Market state kept in a single JSON object document."""

    def __init__(self, path: PathLike):
        super().__init__()
        self.path = Path(path)

    def load(self) -> MarketState:
        create_if_missing(self.path, self._lock, dict)
        return read_json_document(self.path, dict)

    def _write(self, state: MarketState) -> None:
        atomic_write_json(self.path, state)


class JsonFileLedgerStore(LedgerStore):
    """
    Ledger kept as a JSON array, rewritten in full on every append.

    Each append costs a read and a rewrite of the whole file, which is fine
    for game-scale request rates.
    """

    def __init__(self, path: PathLike):
        super().__init__()
        self.path = Path(path)

    def load(self) -> List[Transaction]:
        create_if_missing(self.path, self._lock, list)
        return read_json_document(self.path, list)

    def _append(self, tx: Transaction) -> None:
        ledger = self.load()
        ledger.append(tx)
        atomic_write_json(self.path, ledger)
