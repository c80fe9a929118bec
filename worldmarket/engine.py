"""Market engine: quotes, trades and snapshots over the state and ledger stores."""

import json
import logging
import math
import random
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple, Union

from worldmarket.config import MarketConfig, get_config
from worldmarket.countries import CountryDirectory
from worldmarket.models import (
    MarketState,
    PriceBreakdown,
    Transaction,
    default_item_state
)
from worldmarket.pricing import (
    OptionsLike,
    PricingOptions,
    compute_price,
    round_currency,
    simulate_state_after_trade
)
from worldmarket.storage import LedgerStore, MarketStateStore, create_stores

logger = logging.getLogger(__name__)

MISSING_ITEM = "MissingItem"
INVALID_QUANTITY = "InvalidQuantity"
INVALID_SIDE = "InvalidSide"

SIDES = ("buy", "sell")
ANONYMOUS_ACTOR = "anon"
DEFAULT_RECENT_LEDGER = 20


@dataclass(frozen=True)
class Failure:
    """A request rejected before any store was touched."""
    code: str
    reason: str

    ok = False

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.reason, "code": self.code}


@dataclass(frozen=True)
class Quote:
    price: float
    breakdown: PriceBreakdown

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {"price": self.price, "breakdown": dict(self.breakdown)}


@dataclass(frozen=True)
class TradeReceipt:
    tx: Transaction

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {"tx": dict(self.tx)}


@dataclass(frozen=True)
class Snapshot:
    state: MarketState
    recent: List[Transaction]

    ok = True

    def to_dict(self) -> Dict[str, Any]:
        return {"state": self.state, "recent": self.recent}


class KeyedLocks:
    """One lock per key, dropped again once no caller holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, callers holding or waiting]
        self._locks: Dict[str, List[Any]] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


def _base36(number: int) -> str:
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    if number == 0:
        return "0"
    out = []
    while number:
        number, rem = divmod(number, 36)
        out.append(digits[rem])
    return "".join(reversed(out))


def make_tx_id(now_ms: Optional[int] = None) -> str:
    """Time-ordered-ish id: tx_<ms base36>_<random base36>."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"tx_{_base36(now_ms)}_{_base36(random.randint(10000, 99999))}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _parse_qty(qty: Any) -> Optional[float]:
    """Positive finite quantity, or None."""
    if qty is None or isinstance(qty, bool):
        return None
    try:
        value = float(qty)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value) or value <= 0:
        return None
    return value


class MarketEngine:
    """
    Prices and executes trades against the market snapshot.

    Trades on the same item are serialized; trades on different items run
    independently. Quotes and snapshots never take locks.
    """

    def __init__(
        self,
        state_store: MarketStateStore,
        ledger_store: LedgerStore,
        countries: Optional[Any] = None,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[int], str]] = None
    ):
        """
        Initialize the market engine.

        Args:
            state_store: Item snapshot store
            ledger_store: Transaction log
            countries: Anything with lookup(country_id) -> profile or None
            clock: Returns the current time in epoch milliseconds
            id_factory: Builds a transaction id from a timestamp
        """
        self.state_store = state_store
        self.ledger_store = ledger_store
        self.countries = countries
        self.clock = clock or _now_ms
        self.id_factory = id_factory or make_tx_id
        self._item_locks = KeyedLocks()

    @classmethod
    def from_config(cls, config: Optional[MarketConfig] = None) -> "MarketEngine":
        """Build an engine with the configured stores and country directory."""
        if config is None:
            config = get_config()
        state_store, ledger_store = create_stores(config)
        return cls(state_store, ledger_store, countries=CountryDirectory(config.countries_dir))

    def _country(self, country_id: Optional[str]) -> Any:
        if not country_id or self.countries is None:
            return None
        profile = self.countries.lookup(country_id)
        if profile is None:
            logger.debug(f"Unknown country {country_id!r}, pricing without country context")
        return profile

    @staticmethod
    def _options(opts: OptionsLike, item_state: Dict[str, Any]) -> Dict[str, Any]:
        """Pricing options, with the item's own basePrice used when none is given."""
        if isinstance(opts, PricingOptions):
            merged = opts.model_dump(by_alias=True, exclude_none=True)
        else:
            merged = dict(opts or {})
        if merged.get("basePrice") is None and merged.get("base_price") is None:
            if item_state.get("basePrice") is not None:
                merged["basePrice"] = item_state["basePrice"]
        return merged

    @staticmethod
    def _validate(item_id: Any, qty: Any) -> Tuple[Optional[Failure], float]:
        if not item_id or not isinstance(item_id, str):
            return Failure(MISSING_ITEM, "missing itemId"), 0.0
        parsed = _parse_qty(qty)
        if parsed is None:
            return Failure(INVALID_QUANTITY, "qty must be > 0"), 0.0
        return None, parsed

    @staticmethod
    def _item_state(state: MarketState, item_id: str) -> Dict[str, Any]:
        """The stored entry for item_id; missing or malformed entries read as the default."""
        item_state = state.get(item_id)
        if item_state is None:
            return default_item_state()
        if not isinstance(item_state, Mapping):
            logger.warning(f"Ignoring malformed state for {item_id!r}: {item_state!r}")
            return default_item_state()
        return dict(item_state)

    def item_ids(self) -> List[str]:
        """Items currently present in the market snapshot."""
        return list(self.state_store.load().keys())

    def get_quote(
        self,
        item_id: str,
        qty: Any = 1,
        country_id: Optional[str] = None,
        opts: OptionsLike = None
    ) -> Union[Quote, Failure]:
        """
        Price a hypothetical trade without changing anything.

        Returns:
            Quote, or Failure (MissingItem, InvalidQuantity)
        """
        failure, qty = self._validate(item_id, qty)
        if failure:
            return failure

        state = self.state_store.load()
        item_state = self._item_state(state, item_id)
        result = compute_price(
            item_id, item_state, self._country(country_id), qty, self._options(opts, item_state)
        )

        logger.debug(f"Quote {item_id} x{qty} country={country_id}: {result['price']}")
        return Quote(price=result["price"], breakdown=result["breakdown"])

    def execute_trade(
        self,
        item_id: str,
        qty: Any,
        side: str = "buy",
        actor: Optional[str] = ANONYMOUS_ACTOR,
        country_id: Optional[str] = None,
        opts: OptionsLike = None
    ) -> Union[TradeReceipt, Failure]:
        """
        Buy from or sell to the market.

        The price comes from the pre-trade snapshot. The item's new state is
        saved before the transaction is appended to the ledger.

        Returns:
            TradeReceipt, or Failure (MissingItem, InvalidQuantity, InvalidSide)

        Raises:
            StorePersistenceError: the state or the ledger could not be written
        """
        failure, qty = self._validate(item_id, qty)
        if failure:
            return failure
        if side not in SIDES:
            return Failure(INVALID_SIDE, 'side must be "buy" or "sell"')

        with self._item_locks.hold(item_id):
            state = self.state_store.load()
            item_state = self._item_state(state, item_id)

            price_result = compute_price(
                item_id, item_state, self._country(country_id), qty, self._options(opts, item_state)
            )
            price_per_unit = price_result["price"]
            total = round_currency(price_per_unit * qty)
            next_state = simulate_state_after_trade(item_state, qty, side)

            amounts = (total, next_state["stock"], next_state["demand"], next_state["trend"])
            if not all(math.isfinite(amount) for amount in amounts):
                return Failure(INVALID_QUANTITY, "qty is too large")

            self.state_store.save_item(item_id, next_state)

            ts = self.clock()
            tx: Transaction = {
                "id": self.id_factory(ts),
                "actor": actor or ANONYMOUS_ACTOR,
                "country": country_id or None,
                "item": item_id,
                "qty": qty,
                "price_per_unit": price_per_unit,
                "total_price": total,
                "side": side,
                "breakdown": price_result["breakdown"],
                "ts": ts
            }

            try:
                self.ledger_store.append(tx)
            except Exception:
                # State is saved at this point, so log the full record
                logger.error(f"Trade applied to market state but not logged: {json.dumps(tx)}")
                raise

        logger.info(
            f"Trade {tx['id']}: {tx['actor']} {side} {qty:g} {item_id} "
            f"@ {price_per_unit} = {total} (stock now {next_state['stock']:g})"
        )
        return TradeReceipt(tx=tx)

    def get_market_snapshot(self, recent_ledger: Any = DEFAULT_RECENT_LEDGER) -> Snapshot:
        """Full market state plus the last recent_ledger transactions."""
        try:
            count = int(recent_ledger)
        except (TypeError, ValueError):
            count = DEFAULT_RECENT_LEDGER
        state = self.state_store.load()
        recent = self.ledger_store.tail(max(0, count))
        return Snapshot(state=state, recent=recent)
