"""SQLAlchemy-backed stores."""

import logging
from typing import List, Optional, Union
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from worldmarket.database.operations import (
    fetch_transactions,
    get_engine,
    get_session,
    init_database,
    insert_transaction,
    load_items,
    replace_items,
    upsert_item
)
from worldmarket.exceptions import StorePersistenceError
from worldmarket.models import ItemState, MarketState, Transaction
from worldmarket.storage.base import LedgerStore, MarketStateStore

logger = logging.getLogger(__name__)


def _resolve_engine(engine: Union[Engine, str, None]) -> Engine:
    if engine is None or isinstance(engine, str):
        engine = get_engine(engine)
    init_database(engine)
    return engine


class DatabaseMarketStateStore(MarketStateStore):
    """Market state as one row per item. Only stock, demand, trend and basePrice are kept."""

    def __init__(self, engine: Union[Engine, str, None] = None):
        super().__init__()
        self.engine = _resolve_engine(engine)

    def load(self) -> MarketState:
        session = get_session(self.engine)
        try:
            return load_items(session)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load market state: {e} -- using an empty document")
            return {}
        finally:
            session.close()

    def _write(self, state: MarketState) -> None:
        session = get_session(self.engine)
        try:
            replace_items(session, state)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save market state: {e}")
            raise StorePersistenceError("could not save market state") from e
        finally:
            session.close()

    def save_item(self, item_id: str, item_state: ItemState) -> None:
        # A row update already leaves other items untouched
        with self._lock:
            session = get_session(self.engine)
            try:
                upsert_item(session, item_id, item_state)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Failed to save item {item_id}: {e}")
                raise StorePersistenceError(f"could not save item {item_id}") from e
            finally:
                session.close()


class DatabaseLedgerStore(LedgerStore):
    """Ledger as an insert-only table ordered by sequence number."""

    def __init__(self, engine: Union[Engine, str, None] = None):
        super().__init__()
        self.engine = _resolve_engine(engine)

    def _fetch(self, limit: Optional[int] = None) -> List[Transaction]:
        session = get_session(self.engine)
        try:
            return fetch_transactions(session, limit)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load ledger: {e} -- using an empty ledger")
            return []
        finally:
            session.close()

    def load(self) -> List[Transaction]:
        return self._fetch()

    def tail(self, count: int) -> List[Transaction]:
        if count <= 0:
            return []
        return self._fetch(count)

    def _append(self, tx: Transaction) -> None:
        session = get_session(self.engine)
        try:
            insert_transaction(session, tx)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to append transaction {tx.get('id')}: {e}")
            raise StorePersistenceError("could not append to ledger") from e
        finally:
            session.close()
