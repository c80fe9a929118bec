"""Market pricing and state transition.

Pure functions only: no file I/O, no side effects. Prices are computed from
an item's current snapshot, the buyer's country resources and the requested
quantity; the state transition computes the snapshot an item moves to after
a trade.
"""

import math
from decimal import Context, Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from worldmarket.models import (
    ItemState,
    PriceResult,
    Quantified,
    Listed,
    Resources,
    Unspecified,
    parse_resources
)

DEFAULT_BASE_PRICE = 100.0
DEFAULT_MIN_PRICE = 0.01
DEFAULT_MAX_PRICE = 1e9
DEFAULT_SCARCITY_FACTOR = 1.0

# Demand moves per traded unit
BUY_DEMAND_PER_UNIT = 0.1
SELL_DEMAND_PER_UNIT = 0.05
TREND_SENSITIVITY = 0.5

_CENT = Decimal("0.01")
# Enough digits to quantize any finite float to cents
_DECIMAL_CONTEXT = Context(prec=400)


class PricingOptions(BaseModel):
    """Tunable pricing options. Accepts camelCase or snake_case keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_price: Optional[float] = Field(default=None, alias="basePrice")
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    scarcity_factor: Optional[float] = Field(default=None, alias="scarcityFactor")


OptionsLike = Union[PricingOptions, Mapping[str, Any], None]


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value to [low, high]; low wins if the bounds cross."""
    return max(low, min(high, value))


def _quantize(value: float, rounding: str) -> float:
    return float(Decimal(repr(float(value))).quantize(_CENT, rounding=rounding, context=_DECIMAL_CONTEXT))


def round_currency(value: float) -> float:
    """Round half-up to 2 decimal places. Non-finite values are returned as is."""
    if not math.isfinite(value):
        return float(value)
    return _quantize(value, ROUND_HALF_UP)


def _number(value: Any, default: float) -> float:
    """Coerce to a finite float, falling back to default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _option(opts: OptionsLike, camel: str, snake: str) -> Any:
    if opts is None:
        return None
    if isinstance(opts, PricingOptions):
        return getattr(opts, snake)
    if isinstance(opts, Mapping):
        value = opts.get(camel)
        return opts.get(snake) if value is None else value
    return None


def _resources_of(country: Any) -> Resources:
    """Accept a Resources variant, a profile object or a raw profile dict."""
    if country is None:
        return Unspecified()
    if isinstance(country, (Unspecified, Listed, Quantified)):
        return country
    if isinstance(country, Mapping):
        return parse_resources(country.get("resources"))
    return parse_resources(getattr(country, "resources", None))


def country_factor(item_id: str, resources: Resources) -> float:
    """
    Discount for buying in a country that produces the item.

    Returns 1.0 when the item is not local, 0.95 for a listed exporter, and
    for known quantities a factor decaying towards 0.85 as local supply grows.
    A listed quantity of zero gives 0.98.
    """
    if isinstance(resources, Listed):
        return 0.95 if item_id in resources else 1.0
    if isinstance(resources, Quantified) and item_id in resources:
        local_qty = _number(resources.quantity(item_id), 0.0)
        if local_qty > 0:
            return clamp(0.85 + 0.15 * math.exp(-local_qty / 10000), 0.7, 1.0)
        return 0.98
    return 1.0


def _round_within(price: float, low: float, high: float) -> float:
    rounded = round_currency(price)
    if rounded < low:
        rounded = _quantize(low, ROUND_CEILING)
    elif rounded > high:
        rounded = _quantize(high, ROUND_FLOOR)
    return rounded


def compute_price(
    item_id: str,
    state_item: Optional[Mapping[str, Any]] = None,
    country: Any = None,
    qty: Any = 1,
    opts: OptionsLike = None
) -> PriceResult:
    """
    Compute the unit price for a prospective trade.

    Args:
        item_id: Item identifier
        state_item: Current {stock, demand, trend} snapshot; missing fields are 0
        country: Country resources (variant, profile or {"resources": ...} dict) or None
        qty: Requested quantity, coerced to >= 0
        opts: basePrice, minPrice, maxPrice, scarcityFactor

    Returns:
        {"price": float, "breakdown": {...}}; never raises
    """
    base_price = _number(_option(opts, "basePrice", "base_price"), DEFAULT_BASE_PRICE)
    min_price = _number(_option(opts, "minPrice", "min_price"), DEFAULT_MIN_PRICE)
    max_price = _number(_option(opts, "maxPrice", "max_price"), DEFAULT_MAX_PRICE)
    scarcity = _number(_option(opts, "scarcityFactor", "scarcity_factor"), DEFAULT_SCARCITY_FACTOR)

    state_item = state_item if isinstance(state_item, Mapping) else {}
    stock = max(0.0, _number(state_item.get("stock"), 0.0))
    demand = max(0.0, _number(state_item.get("demand"), 0.0))
    trend = _number(state_item.get("trend"), 0.0)
    qty = max(0.0, _number(qty, 0.0))

    country_f = country_factor(item_id, _resources_of(country))

    # ratio > 1 is oversupply, < 1 is scarcity
    ratio = (stock + 1) / (demand + 1)
    supply_f = clamp(ratio ** -0.25, 0.5, 3.0)

    demand_f = clamp(1.0 + (demand / max(1.0, stock + demand)) * 1.2, 0.5, 3.0)

    # Slippage: orders large relative to stock pay more
    rel_order = qty / (stock + qty) if stock > 0 else 1.0
    qty_impact = 1.0 + rel_order ** 0.6 * 2.0

    trend_f = 1.0 + clamp(trend, -0.5, 0.5)
    scarcity_f = clamp(scarcity, 0.5, 5.0)

    price = base_price * supply_f * demand_f * qty_impact * trend_f * country_f * scarcity_f
    price = clamp(price, min_price, max_price)

    return {
        "price": _round_within(price, min_price, max_price),
        "breakdown": {
            "base": base_price,
            "supplyFactor": supply_f,
            "demandFactor": demand_f,
            "qtyImpact": qty_impact,
            "trendFactor": trend_f,
            "countryFactor": country_f,
            "scarcityFactor": scarcity_f
        }
    }


def simulate_state_after_trade(
    state_item: Optional[Mapping[str, Any]],
    qty: Any,
    side: str
) -> ItemState:
    """
    Compute an item's snapshot after a trade.

    'buy' means the actor buys from the market, so stock falls and demand
    rises; 'sell' replenishes stock and relieves demand. Keys other than
    stock, demand and trend are carried over unchanged.

    Raises:
        ValueError: side is not 'buy' or 'sell'
    """
    if side not in ("buy", "sell"):
        raise ValueError(f"side must be 'buy' or 'sell', got {side!r}")

    state_item = state_item if isinstance(state_item, Mapping) else {}
    stock = max(0.0, _number(state_item.get("stock"), 0.0))
    demand = max(0.0, _number(state_item.get("demand"), 0.0))
    trend = _number(state_item.get("trend"), 0.0)
    qty = max(0.0, _number(qty, 0.0))

    if side == "buy":
        new_stock = max(0.0, stock - qty)
        demand_delta = qty * BUY_DEMAND_PER_UNIT
    else:
        new_stock = stock + qty
        demand_delta = -qty * SELL_DEMAND_PER_UNIT

    new_demand = max(0.0, demand + demand_delta)
    trend_delta = (demand_delta / max(1.0, stock + qty)) * TREND_SENSITIVITY

    next_state: ItemState = dict(state_item)
    next_state.update({
        "stock": new_stock,
        "demand": new_demand,
        "trend": trend + trend_delta
    })
    return next_state
