"""
Property Routes - Stored listing queries

Nearby and address search reuse the staged selection machinery, so a
sparse area still returns the closest useful records rather than an
empty list.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.errors import NotFoundError, ValidationError
from core.geocoder import Geocoder, get_geocoder
from core.search import DEFAULT_SEARCH_LIMIT, find_nearby, search_by_address
from core.store import PropertyStore, get_property_store
from core.validation import validate_coordinates


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/properties", tags=["properties"])

DEFAULT_NEARBY_RADIUS_METERS = 5000
MAX_LIMIT = 100


# =============================================================================
# Queries
# =============================================================================


@router.get("/nearby")
async def nearby_properties(
    lat: float = Query(..., description="Latitude"),
    lng: float = Query(..., description="Longitude"),
    radius: float = Query(DEFAULT_NEARBY_RADIUS_METERS, description="Search radius in metres"),
    limit: int = Query(DEFAULT_SEARCH_LIMIT, description="Maximum records returned"),
    store: PropertyStore = Depends(get_property_store),
    geocoder: Geocoder = Depends(get_geocoder),
):
    """Properties near a point, nearest first."""
    point = validate_coordinates(lat, lng)
    if radius <= 0:
        raise ValidationError(f"radius must be positive, got {radius}")
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_LIMIT}, got {limit}")

    records = await find_nearby(store, geocoder, point, radius / 1000, limit=limit)
    return [r.to_dict() for r in records]


@router.get("/search")
async def search_properties(
    address: Optional[str] = Query(None, description="Free-text address"),
    store: PropertyStore = Depends(get_property_store),
    geocoder: Geocoder = Depends(get_geocoder),
):
    """Geocode an address and return properties around it."""
    if not address or not address.strip():
        raise ValidationError("Address is required")

    location, records = await search_by_address(store, geocoder, address.strip())
    return {
        "geocodedLocation": location.to_dict(),
        "properties": [r.to_dict() for r in records],
    }


@router.get("/stats/by-region")
async def region_stats(store: PropertyStore = Depends(get_property_store)):
    """Listing counts and price statistics grouped by city and state."""
    return {"success": True, "stats": await store.stats_by_region()}


@router.get("/{property_id}")
async def get_property(
    property_id: str,
    store: PropertyStore = Depends(get_property_store),
):
    """Single property by ID."""
    record = await store.get(property_id)
    if record is None:
        raise NotFoundError(f"Property not found: {property_id}")
    return record.to_dict()
