"""
Nearby property search.

Reuses the selection stage machinery with a "stop at the first
non-empty stage" predicate: each widening step only runs when nothing
has been found yet.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from core.errors import NoComparablesError, NotFoundError
from core.geocoder import GeocodeResult, Geocoder
from core.models import PropertyRecord
from core.store import PropertyStore
from core.valuation.models import GeoPoint
from core.valuation.selection import (
    DEFAULT_STAGE_TIMEOUT_SECONDS,
    ComparableSelector,
    FillTarget,
    nearby_stage,
    region_stage,
    sample_stage,
)


logger = logging.getLogger(__name__)


DEFAULT_SEARCH_LIMIT = 20
ADDRESS_SEARCH_RADIUS_KM = 5.0


async def _run(
    selector: ComparableSelector,
    point: GeoPoint,
    limit: int,
) -> List[PropertyRecord]:
    try:
        result = await selector.select(
            point,
            category=None,
            min_desired=1,
            max_desired=limit,
            synthesize_placeholder=False,
        )
    except NoComparablesError:
        return []
    return result.records


async def find_nearby(
    store: PropertyStore,
    geocoder: Optional[Geocoder],
    point: GeoPoint,
    radius_km: float,
    limit: int = DEFAULT_SEARCH_LIMIT,
    stage_timeout: float = DEFAULT_STAGE_TIMEOUT_SECONDS,
) -> List[PropertyRecord]:
    """
    Records near a point: radius, double radius, region text, anything.

    Returns an empty list only when the store is empty.
    """
    selector = ComparableSelector(
        store,
        geocoder,
        stages=[
            nearby_stage("nearby", radius_km, match_category=False, fill=FillTarget.MAX),
            nearby_stage("nearby_wider", radius_km * 2, match_category=False, fill=FillTarget.MAX),
            region_stage(fill=FillTarget.MAX),
            sample_stage(fill=FillTarget.MAX),
        ],
        stage_timeout=stage_timeout,
    )
    records = await _run(selector, point, limit)
    logger.info("Found %d properties near [%s, %s]", len(records), point.lat, point.lng)
    return records


async def search_by_address(
    store: PropertyStore,
    geocoder: Geocoder,
    address: str,
    limit: int = DEFAULT_SEARCH_LIMIT,
    stage_timeout: float = DEFAULT_STAGE_TIMEOUT_SECONDS,
) -> tuple[GeocodeResult, List[PropertyRecord]]:
    """
    Geocode an address, then search: 5 km, region text, 10 km, anything.

    Raises:
        NotFoundError: If the address cannot be geocoded
    """
    location = await geocoder.geocode(address)
    if location is None:
        raise NotFoundError(f"Location not found: {address}")

    selector = ComparableSelector(
        store,
        geocoder,
        stages=[
            nearby_stage("nearby", ADDRESS_SEARCH_RADIUS_KM, match_category=False, fill=FillTarget.MAX),
            region_stage(fill=FillTarget.MAX, region=location.region),
            nearby_stage("nearby_wider", ADDRESS_SEARCH_RADIUS_KM * 2, match_category=False, fill=FillTarget.MAX),
            sample_stage(fill=FillTarget.MAX),
        ],
        stage_timeout=stage_timeout,
    )
    records = await _run(selector, location.point, limit)
    return location, records
