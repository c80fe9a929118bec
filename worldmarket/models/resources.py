"""Country resource profiles.

Country files describe local resources either as a plain list of item ids
(the country exports the item, quantity unknown) or as a mapping of item id
to available quantity. Both shapes are normalized once into one of three
variants so the pricing code never has to sniff JSON shapes.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Union


@dataclass(frozen=True)
class Unspecified:
    """No usable resource information."""

    def __contains__(self, item_id: str) -> bool:
        return False


@dataclass(frozen=True)
class Listed:
    """Items the country is known to export, without quantities."""
    items: FrozenSet[str] = frozenset()

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.items


@dataclass(frozen=True)
class Quantified:
    """Locally available quantity per item."""
    quantities: Dict[str, float] = field(default_factory=dict)

    def __contains__(self, item_id: str) -> bool:
        return item_id in self.quantities

    def quantity(self, item_id: str) -> Optional[float]:
        return self.quantities.get(item_id)


Resources = Union[Unspecified, Listed, Quantified]


def _to_quantity(value: Any) -> float:
    """Coerce a raw quantity; null, non-numeric and non-finite become 0."""
    if isinstance(value, bool):
        return float(value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def parse_resources(raw: Any) -> Resources:
    """
    Build a Resources variant from the raw value found in a country file.

    Args:
        raw: list of ids, list of {"id", "qty"} objects, id -> quantity
            mapping, single id string, or anything else

    Returns:
        Listed, Quantified or Unspecified
    """
    if isinstance(raw, (Unspecified, Listed, Quantified)):
        return raw

    if isinstance(raw, str):
        return Listed(frozenset([raw])) if raw else Unspecified()

    if isinstance(raw, (list, tuple, set, frozenset)):
        entries = list(raw)
        if all(isinstance(entry, str) for entry in entries):
            return Listed(frozenset(entries)) if entries else Unspecified()

        # Mixed list: strings count as one unit, objects carry their own qty
        quantities: Dict[str, float] = {}
        for entry in entries:
            if isinstance(entry, str):
                quantities[entry] = quantities.get(entry, 0.0) + 1.0
            elif isinstance(entry, dict) and entry.get("id"):
                item_id = str(entry["id"])
                qty = _to_quantity(entry.get("qty")) or 1.0
                quantities[item_id] = quantities.get(item_id, 0.0) + qty
        return Quantified(quantities) if quantities else Unspecified()

    if isinstance(raw, dict):
        if not raw:
            return Unspecified()
        return Quantified({str(k): _to_quantity(v) for k, v in raw.items()})

    return Unspecified()
