"""
Data models for the land valuation service.

Stored listings (PropertyRecord) and the subject parcel
(ValuationRequest). Value objects live in core.valuation.models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from core.valuation.models import (
    Category,
    GeoPoint,
    LandFeatures,
    PropertyObservation,
)


@dataclass
class PropertyRecord:
    """
    A normalised listing as held by the property store.

    Prices are in a single reporting currency; area is square feet.
    """
    id: str
    latitude: float
    longitude: float
    price: Optional[float] = None
    area: Optional[float] = None
    price_per_sqft: Optional[float] = None
    category: Category = Category.UNKNOWN
    features: LandFeatures = field(default_factory=LandFeatures)

    # Location text
    address: str = ""
    city: str = ""
    state: str = ""
    governorate: str = ""
    neighborhood: str = ""
    zip_code: str = ""

    # Metadata
    description: str = ""
    source: str = ""
    source_url: str = ""
    listed_date: Optional[str] = None

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lng=self.longitude)

    @property
    def region_key(self) -> tuple[str, str]:
        return (self.city or "", self.state or self.governorate or "")

    def matches_region(self, name: str) -> bool:
        """Case-insensitive substring match on the free-text location fields."""
        needle = name.strip().lower()
        if not needle:
            return False
        return any(
            needle in text.lower()
            for text in (self.governorate, self.city, self.address)
            if text
        )

    def to_observation(self) -> PropertyObservation:
        return PropertyObservation(
            id=self.id,
            price=self.price,
            area=self.area,
            price_per_sqft=self.price_per_sqft,
            category=self.category,
            features=self.features,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output and file persistence."""
        return {
            "id": self.id,
            "location": {"lat": self.latitude, "lng": self.longitude},
            "price": self.price,
            "area": self.area,
            "pricePerSqFt": self.price_per_sqft,
            "zoning": self.category.value,
            "features": self.features.to_dict(),
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "governorate": self.governorate,
            "neighborhood": self.neighborhood,
            "zipCode": self.zip_code,
            "description": self.description,
            "source": self.source,
            "sourceUrl": self.source_url,
            "listedDate": self.listed_date,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PropertyRecord":
        """Inverse of to_dict()."""
        location = data.get("location") or {}
        return cls(
            id=str(data["id"]),
            latitude=float(location["lat"]),
            longitude=float(location["lng"]),
            price=data.get("price"),
            area=data.get("area"),
            price_per_sqft=data.get("pricePerSqFt"),
            category=Category.from_string(data.get("zoning") or "") or Category.UNKNOWN,
            features=LandFeatures.from_dict(data.get("features")),
            address=data.get("address", ""),
            city=data.get("city", ""),
            state=data.get("state", ""),
            governorate=data.get("governorate", ""),
            neighborhood=data.get("neighborhood", ""),
            zip_code=data.get("zipCode", ""),
            description=data.get("description", ""),
            source=data.get("source", ""),
            source_url=data.get("sourceUrl", ""),
            listed_date=data.get("listedDate"),
        )


@dataclass(frozen=True)
class ValuationRequest:
    """The subject parcel being valued."""
    area: float
    category: Category
    features: LandFeatures
    point: GeoPoint
