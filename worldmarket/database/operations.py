"""Database operations for market state and ledger rows."""

from functools import lru_cache
from typing import List, Optional
from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from worldmarket.config import get_config
from worldmarket.database.models import Base, LedgerEntry, MarketItem
from worldmarket.models import ItemState, MarketState, Transaction


@lru_cache(maxsize=None)
def _engine_for(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Flask serves requests from several threads
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


def get_engine(database_url: Optional[str] = None) -> Engine:
    """Get database engine (one per URL)."""
    if database_url is None:
        database_url = get_config().database_url
    return _engine_for(database_url)


def get_session(engine: Optional[Engine] = None) -> Session:
    """Get database session."""
    if engine is None:
        engine = get_engine()
    SessionLocal = sessionmaker(bind=engine)
    return SessionLocal()


def init_database(engine: Optional[Engine] = None):
    """Initialize database tables."""
    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(engine)


def _apply(row: MarketItem, item_state: ItemState):
    row.stock = float(item_state.get("stock", 0) or 0)
    row.demand = float(item_state.get("demand", 0) or 0)
    row.trend = float(item_state.get("trend", 0) or 0)
    base_price = item_state.get("basePrice")
    row.base_price = float(base_price) if base_price is not None else None


def load_items(session: Session) -> MarketState:
    """Read every item row into a MarketState mapping."""
    rows = session.execute(select(MarketItem)).scalars().all()
    return {row.item_id: row.to_item_state() for row in rows}


def replace_items(session: Session, state: MarketState):
    """
    Replace all item rows with the given mapping.

    Caller commits.
    """
    session.execute(delete(MarketItem))
    for item_id, item_state in state.items():
        row = MarketItem(item_id=item_id)
        _apply(row, item_state)
        session.add(row)


def upsert_item(session: Session, item_id: str, item_state: ItemState):
    """Insert or update a single item row. Caller commits."""
    row = session.get(MarketItem, item_id)
    if row is None:
        row = MarketItem(item_id=item_id)
        session.add(row)
    _apply(row, item_state)


def insert_transaction(session: Session, tx: Transaction):
    """Add a ledger row. Caller commits."""
    session.add(LedgerEntry.from_transaction(tx))


def fetch_transactions(session: Session, limit: Optional[int] = None) -> List[Transaction]:
    """
    Read ledger rows oldest first.

    Args:
        session: Database session
        limit: Only the most recent limit rows when given

    Returns:
        List of transactions in insertion order
    """
    query = select(LedgerEntry)
    if limit is None:
        rows = session.execute(query.order_by(LedgerEntry.seq)).scalars().all()
    else:
        rows = session.execute(query.order_by(LedgerEntry.seq.desc()).limit(limit)).scalars().all()
        rows = list(reversed(rows))
    return [row.to_transaction() for row in rows]
