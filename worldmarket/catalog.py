"""Tradable item catalog."""

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

CATALOG: Dict[str, Dict[str, Any]] = {
    "oil": {
        "label": "Oil",
        "unit": "barrel",
        "icon": "🛢️",
        "category": "energy"
    },
    "iron": {
        "label": "Iron",
        "unit": "ton",
        "icon": "⛓️",
        "category": "raw"
    }
}


class Catalog:
    """
    Item metadata, either built in or read from a JSON object file.

    A catalog_path that cannot be read falls back to the built-in entries.
    """

    def __init__(self, catalog_path: Optional[Union[str, Path]] = None,
                 entries: Optional[Dict[str, Dict[str, Any]]] = None):
        self.catalog_path = Path(catalog_path) if catalog_path else None
        self._entries = copy.deepcopy(entries) if entries is not None else None

    def _load_file(self) -> Optional[Dict[str, Dict[str, Any]]]:
        try:
            with open(self.catalog_path, "r", encoding="utf-8") as f:
                parsed = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read catalog {self.catalog_path}: {e} -- using built-in catalog")
            return None
        if not isinstance(parsed, dict):
            logger.warning(f"Catalog {self.catalog_path} is not a JSON object -- using built-in catalog")
            return None
        return {
            str(item_id): meta if isinstance(meta, dict) else {}
            for item_id, meta in parsed.items()
        }

    def reload(self) -> int:
        """Re-read the catalog file. Returns the number of entries."""
        self._entries = None
        return len(self.entries)

    @property
    def entries(self) -> Dict[str, Dict[str, Any]]:
        if self._entries is None:
            loaded = self._load_file() if self.catalog_path else None
            self._entries = loaded if loaded is not None else copy.deepcopy(CATALOG)
        return self._entries

    def get_item_meta(self, item_id: str) -> Optional[Dict[str, Any]]:
        return self.entries.get(item_id)

    def list_items(self, fallback_ids: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """
        Catalog entries as [{id, name, ...meta}].

        With an empty catalog, fallback_ids (usually the items present in the
        market state) are listed with their id as name.
        """
        entries = self.entries
        if not entries:
            return [{"id": item_id, "name": item_id} for item_id in fallback_ids]

        items = []
        for item_id, meta in entries.items():
            name = meta.get("label") or meta.get("name") or item_id
            items.append({"id": item_id, "name": name, **meta})
        return items
