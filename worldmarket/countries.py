"""Read-only country index used to bias prices by local resources.

Country files live in a directory of JSON documents owned by the map
generator. Only a light summary is extracted from each; files that fail to
parse are skipped.
"""

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from worldmarket.models import Listed, Quantified, Resources, Unspecified, parse_resources

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountryProfile:
    """Summary of a country record."""
    id: str
    name: str
    continent: Optional[str] = None
    population: float = 0
    resources: Resources = field(default_factory=Unspecified)
    borders: Tuple[str, ...] = ()
    source_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        resources = self.resources
        if isinstance(resources, Listed):
            resources_out: Any = sorted(resources.items)
        elif isinstance(resources, Quantified):
            resources_out = dict(resources.quantities)
        else:
            resources_out = None
        return {
            "id": self.id,
            "name": self.name,
            "continent": self.continent,
            "population": self.population,
            "resources": resources_out,
            "borders": list(self.borders)
        }


def _population(raw: Any) -> float:
    if isinstance(raw, dict):
        raw = raw.get("value")
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, (int, float)):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            return float(raw)
        except ValueError:
            return 0
    return 0


def _borders(parsed: Dict[str, Any]) -> Tuple[str, ...]:
    geography = parsed.get("geography") if isinstance(parsed.get("geography"), dict) else {}
    raw = (
        geography.get("borders")
        or geography.get("borderCountries")
        or parsed.get("borders")
        or parsed.get("neighbors")
        or []
    )
    if isinstance(raw, str):
        raw = [part.strip() for part in raw.split(",") if part.strip()]
    if not isinstance(raw, list):
        return ()
    return tuple(str(b).lower() for b in raw)


def build_profile(parsed: Dict[str, Any], filename: str = "") -> CountryProfile:
    """
    Extract a CountryProfile from a raw country record.

    Resources come from economy.resources, falling back to a top-level
    resources or raw_resources key.
    """
    stem = Path(filename).stem if filename else ""
    economy = parsed.get("economy") if isinstance(parsed.get("economy"), dict) else {}
    geography = parsed.get("geography") if isinstance(parsed.get("geography"), dict) else {}
    metadata = parsed.get("metadata") if isinstance(parsed.get("metadata"), dict) else {}

    country_id = parsed.get("id") or parsed.get("iso_a3") or parsed.get("iso") or stem
    name = (
        parsed.get("name")
        or parsed.get("title")
        or parsed.get("country")
        or parsed.get("country_name")
        or parsed.get("full_name")
        or stem
    )
    continent = (
        parsed.get("continent")
        or parsed.get("region")
        or geography.get("continent")
        or metadata.get("continent")
    )
    raw_resources = economy.get("resources") or parsed.get("resources") or parsed.get("raw_resources")

    return CountryProfile(
        id=str(country_id).lower(),
        name=str(name),
        continent=str(continent).lower() if continent else None,
        population=_population(parsed.get("population")),
        resources=parse_resources(raw_resources),
        borders=_borders(parsed),
        source_file=filename or None
    )


class CountryDirectory:
    """
    Country lookup over a directory of <country>.json files.

    Records are indexed by lowercase id, name and file basename on first use
    and cached until refresh().
    """

    def __init__(self, countries_dir: Union[str, Path]):
        self.countries_dir = Path(countries_dir)
        self._lock = threading.Lock()
        self._loaded = False
        self._by_key: Dict[str, CountryProfile] = {}
        self._by_file: Dict[str, CountryProfile] = {}
        self._profiles: List[CountryProfile] = []

    def load_all(self, force: bool = False) -> int:
        """
        Load every country file into the cache.

        Args:
            force: Re-read files even if already loaded

        Returns:
            Number of countries indexed
        """
        with self._lock:
            if self._loaded and not force:
                return len(self._profiles)

            by_key: Dict[str, CountryProfile] = {}
            by_file: Dict[str, CountryProfile] = {}
            profiles: List[CountryProfile] = []

            if not self.countries_dir.is_dir():
                logger.warning(f"Countries directory not found: {self.countries_dir}")
            else:
                for path in sorted(self.countries_dir.iterdir()):
                    if path.suffix.lower() != ".json":
                        continue
                    try:
                        with open(path, "r", encoding="utf-8") as f:
                            parsed = json.load(f)
                        if not isinstance(parsed, dict):
                            raise ValueError("country record is not an object")
                        profile = build_profile(parsed, path.name)
                    except (OSError, ValueError) as e:
                        logger.warning(f"Skipping country file {path.name}: {e}")
                        continue

                    profiles.append(profile)
                    by_key.setdefault(profile.id, profile)
                    by_key.setdefault(profile.name.lower(), profile)
                    by_file[path.stem.lower()] = profile

            self._by_key = by_key
            self._by_file = by_file
            self._profiles = profiles
            self._loaded = True
            logger.info(f"Loaded {len(profiles)} countries from {self.countries_dir}")
            return len(profiles)

    def refresh(self) -> int:
        """Force reload from disk."""
        return self.load_all(force=True)

    def lookup(self, country_id: Optional[str]) -> Optional[CountryProfile]:
        """Resolve a country by id, file basename or exact name. Never raises."""
        if not country_id:
            return None
        try:
            self.load_all()
            key = str(country_id).lower()
            return self._by_key.get(key) or self._by_file.get(key)
        except Exception:
            logger.exception(f"Country lookup failed for {country_id!r}")
            return None

    def find(self, query: Optional[str]) -> Optional[CountryProfile]:
        """Like lookup, then falls back to a case-insensitive name substring match."""
        profile = self.lookup(query)
        if profile is not None or not query:
            return profile
        needle = str(query).lower()
        for candidate in self._profiles:
            if needle in candidate.name.lower():
                return candidate
        return None

    def all_summaries(self) -> List[CountryProfile]:
        """One profile per country file, in file name order."""
        self.load_all()
        return list(self._profiles)


class StaticCountryLookup:
    """Country lookup over an in-memory mapping of id -> raw record."""

    def __init__(self, records: Mapping[str, Mapping[str, Any]]):
        self._profiles: Dict[str, CountryProfile] = {}
        for country_id, record in records.items():
            record = dict(record or {})
            record.setdefault("id", country_id)
            self._profiles[str(country_id).lower()] = build_profile(record)

    def lookup(self, country_id: Optional[str]) -> Optional[CountryProfile]:
        if not country_id:
            return None
        return self._profiles.get(str(country_id).lower())
