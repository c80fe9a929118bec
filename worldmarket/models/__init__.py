"""Data models for the market engine."""

from .resources import (
    Resources,
    Unspecified,
    Listed,
    Quantified,
    parse_resources
)
from .state import (
    Side,
    ItemState,
    PriceBreakdown,
    PriceResult,
    Transaction,
    MarketState,
    default_item_state
)

__all__ = [
    "Resources",
    "Unspecified",
    "Listed",
    "Quantified",
    "parse_resources",
    "Side",
    "ItemState",
    "PriceBreakdown",
    "PriceResult",
    "Transaction",
    "MarketState",
    "default_item_state"
]
