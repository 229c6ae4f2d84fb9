"""
Property Store

Geospatial store of normalised listings. The selector and the search
routes only depend on the PropertyStore interface; the in-memory
implementation keeps records in insertion order with optional JSON
file persistence.
"""

from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from core.models import PropertyRecord
from core.valuation.models import Category, GeoPoint
from utils.config import Config


logger = logging.getLogger(__name__)


# Earth radius in kilometres
EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in kilometres using Haversine formula.

    Args:
        lat1, lon1: First point coordinates (degrees)
        lat2, lon2: Second point coordinates (degrees)

    Returns:
        Distance in kilometres
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(dlon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


class PropertyStore(ABC):
    """Abstract interface for the geospatial listing store."""

    @abstractmethod
    async def find_near(
        self,
        point: GeoPoint,
        radius_km: float,
        category: Optional[Category] = None,
        limit: int = 10,
    ) -> List[PropertyRecord]:
        """Records within radius_km of point, nearest first."""

    @abstractmethod
    async def find_by_region(self, name: str, limit: int = 10) -> List[PropertyRecord]:
        """Records whose governorate, city or address contains name (case-insensitive)."""

    @abstractmethod
    async def sample(self, limit: int = 10) -> List[PropertyRecord]:
        """Any records, in arbitrary order."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[PropertyRecord]:
        """Fetch a single record by ID."""

    @abstractmethod
    async def add(self, record: PropertyRecord) -> bool:
        """Insert a record. Returns False if it duplicates an existing one."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored records."""

    @abstractmethod
    async def stats_by_region(self) -> List[dict[str, Any]]:
        """Price statistics grouped by city/state, largest groups first."""


class InMemoryPropertyStore(PropertyStore):
    """
    Store backed by a list, with optional JSON file persistence.

    Duplicates are rejected by ID and by (address, price), matching the
    import pipeline's de-duplication rule.
    """

    def __init__(self, persist_path: Optional[str] = None):
        """
        Initialise store.

        Args:
            persist_path: Optional path to persist records to a JSON file
        """
        self._records: List[PropertyRecord] = []
        self._by_id: dict[str, PropertyRecord] = {}
        self._persist_path = Path(persist_path) if persist_path else None

        if self._persist_path and self._persist_path.exists():
            self._load_from_file()

    def _save_to_file(self) -> None:
        """Persist data to file."""
        if not self._persist_path:
            return

        data = {
            "properties": [r.to_dict() for r in self._records],
            "saved_at": datetime.utcnow().isoformat(),
        }

        self._persist_path.parent.mkdir(parents=True, exist_ok=True)
        self._persist_path.write_text(json.dumps(data, indent=2))

    def _load_from_file(self) -> None:
        """Load data from file."""
        try:
            data = json.loads(self._persist_path.read_text())
            for item in data.get("properties", []):
                self._insert(PropertyRecord.from_dict(item))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            # Start fresh rather than refusing to boot
            logger.warning("Could not load property store from %s: %s", self._persist_path, e)

    def _insert(self, record: PropertyRecord) -> bool:
        if record.id in self._by_id or self._is_duplicate(record):
            return False
        self._records.append(record)
        self._by_id[record.id] = record
        return True

    def _is_duplicate(self, record: PropertyRecord) -> bool:
        if not record.address or record.price is None:
            return False
        return any(
            r.address == record.address and r.price == record.price
            for r in self._records
        )

    # =========================================================================
    # Queries
    # =========================================================================

    async def find_near(
        self,
        point: GeoPoint,
        radius_km: float,
        category: Optional[Category] = None,
        limit: int = 10,
    ) -> List[PropertyRecord]:
        ranked = []
        for record in self._records:
            if category is not None and record.category != category:
                continue
            distance = haversine_km(point.lat, point.lng, record.latitude, record.longitude)
            if distance <= radius_km:
                ranked.append((distance, record))

        ranked.sort(key=lambda pair: pair[0])
        return [record for _, record in ranked[:limit]]

    async def find_by_region(self, name: str, limit: int = 10) -> List[PropertyRecord]:
        return [r for r in self._records if r.matches_region(name)][:limit]

    async def sample(self, limit: int = 10) -> List[PropertyRecord]:
        return self._records[:limit]

    async def get(self, record_id: str) -> Optional[PropertyRecord]:
        return self._by_id.get(record_id)

    async def add(self, record: PropertyRecord) -> bool:
        inserted = self._insert(record)
        if inserted:
            self._save_to_file()
        else:
            logger.info("Property already exists: %s", record.address or record.id)
        return inserted

    async def count(self) -> int:
        return len(self._records)

    async def stats_by_region(self) -> List[dict[str, Any]]:
        groups: dict[tuple[str, str], List[PropertyRecord]] = {}
        for record in self._records:
            groups.setdefault(record.region_key, []).append(record)

        stats = []
        for (city, state), records in groups.items():
            prices = [r.price for r in records if r.price is not None]
            ppsf = [
                v for v in (r.to_observation().resolved_price_per_sqft() for r in records)
                if v is not None
            ]
            stats.append({
                "city": city,
                "state": state,
                "count": len(records),
                "avgPrice": _round_or_none(sum(prices) / len(prices)) if prices else None,
                "minPrice": _round_or_none(min(prices)) if prices else None,
                "maxPrice": _round_or_none(max(prices)) if prices else None,
                "avgPricePerSqFt": _round_or_none(sum(ppsf) / len(ppsf)) if ppsf else None,
            })

        stats.sort(key=lambda s: s["count"], reverse=True)
        return stats


def _round_or_none(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


# Singleton instance for the application
_property_store: Optional[PropertyStore] = None


def get_property_store() -> PropertyStore:
    """Get the property store singleton (persisted under DATA_DIR)."""
    global _property_store
    if _property_store is None:
        config = Config.load()
        _property_store = InMemoryPropertyStore(
            persist_path=str(Path(config.data_dir) / "properties.json")
        )
    return _property_store


def reset_property_store(store: Optional[PropertyStore] = None) -> None:
    """Replace (or clear) the singleton. Used by tests and the CLI."""
    global _property_store
    _property_store = store
