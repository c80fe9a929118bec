"""State models for the market engine."""

from typing import TypedDict, Dict, Optional, Literal

Side = Literal["buy", "sell"]


class ItemState(TypedDict, total=False):
    """Market snapshot for a single item."""
    stock: float  # Quantity held by the market, never negative
    demand: float  # Accumulated buying pressure, never negative
    trend: float  # Signed drift, unbounded
    basePrice: float  # Optional per-item reference price


class PriceBreakdown(TypedDict):
    """Factors that produced a unit price."""
    base: float
    supplyFactor: float
    demandFactor: float
    qtyImpact: float
    trendFactor: float
    countryFactor: float
    scarcityFactor: float


class PriceResult(TypedDict):
    """Output of the pricing function."""
    price: float  # Rounded to 2 decimals
    breakdown: PriceBreakdown


class Transaction(TypedDict):
    """A ledger entry. Never mutated once appended."""
    id: str
    actor: str
    country: Optional[str]
    item: str
    qty: float
    price_per_unit: float
    total_price: float
    side: Side
    breakdown: PriceBreakdown
    ts: int  # Epoch milliseconds


# Item id -> ItemState, persisted as a single document
MarketState = Dict[str, ItemState]


def default_item_state() -> ItemState:
    """State of an item the market has never seen."""
    return {"stock": 0, "demand": 0, "trend": 0}
