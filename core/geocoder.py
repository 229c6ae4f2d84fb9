"""
Geocoding collaborators.

Maps free-text addresses to coordinates and administrative components,
and coordinates back to a region name used by the region-text selection
stage.

Available geocoders:
- GoogleGeocoder: Google Geocoding API over HTTP
- StaticRegionGeocoder: offline lookup against known region centroids
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

import requests

from core.store import haversine_km
from core.valuation.models import GeoPoint
from utils.config import Config


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
USER_AGENT = "LandValuationEngine/1.0"
REQUEST_TIMEOUT_SECONDS = 5

# Approximate centroids (lat, lng) of the Tunisian governorates
REGION_CENTROIDS: dict[str, tuple[float, float]] = {
    "Tunis": (36.8065, 10.1815),
    "Ariana": (36.8625, 10.1939),
    "Ben Arous": (36.7535, 10.2233),
    "Manouba": (36.8089, 10.0986),
    "Nabeul": (36.4513, 10.6912),
    "Bizerte": (37.2744, 9.8642),
    "Zaghouan": (36.4028, 10.1428),
    "Beja": (36.7256, 9.1844),
    "Jendouba": (36.5012, 8.7550),
    "Kef": (36.1675, 8.7047),
    "Siliana": (36.0875, 9.3909),
    "Sousse": (35.8245, 10.6412),
    "Monastir": (35.7640, 10.7809),
    "Mahdia": (35.5044, 11.0622),
    "Kairouan": (35.6781, 10.0963),
    "Kasserine": (35.1722, 8.8365),
    "Sidi Bouzid": (35.0382, 9.4968),
    "Sfax": (34.7400, 10.7600),
    "Gabes": (33.8828, 10.0982),
    "Medenine": (33.3450, 10.5050),
    "Tataouine": (32.9227, 10.4507),
    "Tozeur": (33.9185, 8.1335),
    "Kebili": (33.7072, 8.9715),
    "Gafsa": (34.4311, 8.7094),
}

# Reverse lookups further than this from every centroid resolve to nothing
MAX_REGION_DISTANCE_KM = 60.0


@dataclass(frozen=True)
class GeocodeResult:
    """A resolved location."""
    lat: float
    lng: float
    formatted_address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    # First administrative_area_level_1 or locality name
    region: str = ""

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lng=self.lng)

    def to_dict(self) -> dict[str, Any]:
        return {
            "lat": self.lat,
            "lng": self.lng,
            "address": self.formatted_address or "Unknown location",
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
        }


class Geocoder(ABC):
    """Abstract geocoder interface."""

    @abstractmethod
    async def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Resolve a free-text address, or None if it cannot be found."""

    @abstractmethod
    async def reverse(self, point: GeoPoint) -> Optional[GeocodeResult]:
        """Resolve coordinates to address components, or None."""


# =============================================================================
# Google Geocoding API
# =============================================================================


def parse_google_result(result: dict[str, Any]) -> GeocodeResult:
    """
    Convert one Google Geocoding API result into a GeocodeResult.

    Args:
        result: An element of the API's "results" array

    Returns:
        GeocodeResult with city, state, postal code and region extracted
    """
    location = result.get("geometry", {}).get("location", {})
    city = state = zip_code = region = ""

    for component in result.get("address_components", []):
        types = component.get("types", [])
        if not region and (
            "administrative_area_level_1" in types or "locality" in types
        ):
            region = component.get("long_name", "")
        if "locality" in types:
            city = component.get("long_name", "")
        elif "administrative_area_level_1" in types:
            state = component.get("short_name", "")
        elif "postal_code" in types:
            zip_code = component.get("long_name", "")

    return GeocodeResult(
        lat=float(location.get("lat", 0.0)),
        lng=float(location.get("lng", 0.0)),
        formatted_address=result.get("formatted_address", ""),
        city=city,
        state=state,
        zip_code=zip_code,
        region=region,
    )


class GoogleGeocoder(Geocoder):
    """
    Google Geocoding API client.

    Requests are blocking (requests.Session) and are run off the event
    loop. Errors propagate; callers decide whether a failed lookup is
    fatal.
    """

    def __init__(
        self,
        api_key: str,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._api_key = api_key
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": USER_AGENT})

    def _request(self, params: dict[str, str]) -> Optional[GeocodeResult]:
        """
        Perform one Geocoding API call.

        Raises:
            requests.RequestException: On network errors.
            ValueError: On an error status from the API.
        """
        response = self._session.get(
            GOOGLE_GEOCODE_URL,
            params={**params, "key": self._api_key},
            timeout=self._timeout,
        )
        response.raise_for_status()
        payload = response.json()

        status = payload.get("status", "")
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise ValueError(
                f"Geocoding API error {status}: {payload.get('error_message', '')}".strip()
            )

        results = payload.get("results", [])
        if not results:
            return None
        return parse_google_result(results[0])

    async def geocode(self, address: str) -> Optional[GeocodeResult]:
        return await asyncio.to_thread(self._request, {"address": address})

    async def reverse(self, point: GeoPoint) -> Optional[GeocodeResult]:
        return await asyncio.to_thread(self._request, {"latlng": f"{point.lat},{point.lng}"})

    def close(self) -> None:
        """Close the session."""
        self._session.close()


# =============================================================================
# Offline region lookup
# =============================================================================


class StaticRegionGeocoder(Geocoder):
    """
    Offline geocoder over a table of region centroids.

    geocode() matches a region name mentioned in the address;
    reverse() picks the nearest centroid within max_distance_km.
    """

    def __init__(
        self,
        centroids: Optional[dict[str, tuple[float, float]]] = None,
        max_distance_km: float = MAX_REGION_DISTANCE_KM,
    ):
        self._centroids = dict(centroids if centroids is not None else REGION_CENTROIDS)
        self._max_distance_km = max_distance_km

    def _result_for(self, region: str, address: str = "") -> GeocodeResult:
        lat, lng = self._centroids[region]
        return GeocodeResult(
            lat=lat,
            lng=lng,
            formatted_address=address or region,
            state=region,
            region=region,
        )

    async def geocode(self, address: str) -> Optional[GeocodeResult]:
        text = address.lower()
        # Longest names first so "Sidi Bouzid" wins over shorter overlaps
        for region in sorted(self._centroids, key=len, reverse=True):
            if region.lower() in text:
                return self._result_for(region, address)
        return None

    async def reverse(self, point: GeoPoint) -> Optional[GeocodeResult]:
        best: Optional[tuple[float, str]] = None
        for region, (lat, lng) in self._centroids.items():
            distance = haversine_km(point.lat, point.lng, lat, lng)
            if best is None or distance < best[0]:
                best = (distance, region)

        if best is None or best[0] > self._max_distance_km:
            return None
        return self._result_for(best[1])


def build_geocoder(config: Config) -> Geocoder:
    """Google when an API key is configured, otherwise the offline table."""
    if config.google_maps_api_key:
        return GoogleGeocoder(config.google_maps_api_key, timeout=config.request_timeout)
    logger.info("GOOGLE_MAPS_API_KEY not set; using offline region geocoder")
    return StaticRegionGeocoder()


# Singleton instance for the application
_geocoder: Optional[Geocoder] = None


def get_geocoder() -> Geocoder:
    """Get the geocoder singleton."""
    global _geocoder
    if _geocoder is None:
        _geocoder = build_geocoder(Config.load())
    return _geocoder


def reset_geocoder(geocoder: Optional[Geocoder] = None) -> None:
    """Replace (or clear) the singleton."""
    global _geocoder
    _geocoder = geocoder
