"""
Valuation Routes - Land value estimation API

POST /api/valuation/estimate values a parcel from nearby comparable
listings. A low-confidence or fallback estimate is still a 200; only
invalid input (400) and an exhausted selection with placeholders
disabled (404) are errors.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends

from core.geocoder import Geocoder, get_geocoder
from core.store import PropertyStore, get_property_store
from core.validation import parse_valuation_request
from core.valuation_service import LandValuationService
from utils.config import Config


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/valuation", tags=["valuation"])


def get_config() -> Config:
    return Config.load()


def get_valuation_service(
    config: Config = Depends(get_config),
    store: PropertyStore = Depends(get_property_store),
    geocoder: Geocoder = Depends(get_geocoder),
) -> LandValuationService:
    """Service wired to the store and geocoder singletons."""
    return LandValuationService.from_config(config, store, geocoder)


# =============================================================================
# Estimate
# =============================================================================


@router.post("/estimate")
async def estimate_land_value(
    payload: dict[str, Any] = Body(...),
    service: LandValuationService = Depends(get_valuation_service),
):
    """
    Estimate land value.

    Body: {lat, lng, area, category | zoning, features: {nearWater,
    roadAccess, utilities}}. Area is in square feet.
    """
    request = parse_valuation_request(payload)
    report = await service.estimate(request)
    return report.to_dict()
