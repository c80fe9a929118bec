"""Database models and operations."""

from .models import Base, MarketItem, LedgerEntry
from .operations import get_engine, get_session, init_database

__all__ = [
    "Base",
    "MarketItem",
    "LedgerEntry",
    "get_engine",
    "get_session",
    "init_database"
]
