"""Database models for market state and the trade ledger."""

import json
from sqlalchemy import BigInteger, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from worldmarket.models import ItemState, Transaction

Base = declarative_base()


class MarketItem(Base):
    """Current snapshot of one tradable item."""
    __tablename__ = "market_items"

    item_id = Column(String(128), primary_key=True)
    stock = Column(Float, nullable=False, default=0.0)
    demand = Column(Float, nullable=False, default=0.0)
    trend = Column(Float, nullable=False, default=0.0)
    base_price = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=func.now(), onupdate=func.now())

    def to_item_state(self) -> ItemState:
        item: ItemState = {
            "stock": self.stock,
            "demand": self.demand,
            "trend": self.trend
        }
        if self.base_price is not None:
            item["basePrice"] = self.base_price
        return item

    def __repr__(self):
        return f"<MarketItem(item_id='{self.item_id}', stock={self.stock}, demand={self.demand})>"


class LedgerEntry(Base):
    """One executed trade. Rows are only ever inserted."""
    __tablename__ = "ledger_entries"

    # Insertion order
    seq = Column(Integer, primary_key=True, autoincrement=True)
    tx_id = Column(String(64), unique=True, nullable=False)

    actor = Column(String(255), nullable=False)
    country = Column(String(128), nullable=True)
    item = Column(String(128), nullable=False, index=True)
    side = Column(String(4), nullable=False)
    qty = Column(Float, nullable=False)
    price_per_unit = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    # Pricing factors (JSON)
    breakdown_json = Column(Text, nullable=False)

    ts = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, default=func.now())

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "LedgerEntry":
        return cls(
            tx_id=tx["id"],
            actor=tx["actor"],
            country=tx.get("country"),
            item=tx["item"],
            side=tx["side"],
            qty=tx["qty"],
            price_per_unit=tx["price_per_unit"],
            total_price=tx["total_price"],
            breakdown_json=json.dumps(tx["breakdown"]),
            ts=tx["ts"]
        )

    def to_transaction(self) -> Transaction:
        return {
            "id": self.tx_id,
            "actor": self.actor,
            "country": self.country,
            "item": self.item,
            "qty": self.qty,
            "price_per_unit": self.price_per_unit,
            "total_price": self.total_price,
            "side": self.side,
            "breakdown": json.loads(self.breakdown_json),
            "ts": self.ts
        }

    def __repr__(self):
        return f"<LedgerEntry(tx_id='{self.tx_id}', item='{self.item}', side='{self.side}')>"
