"""
Listing normaliser.

Converts raw listing dicts (seed files, feeds) to the store's
PropertyRecord schema. Raw listings are loosely typed: prices and areas
may be free text ("150,000 DT", "2.5 acres", "1,200 m2"), features may
be an object or only implied by the description.
"""

import hashlib
import logging
import math
import re
from datetime import datetime
from typing import Any, Optional

from core.models import PropertyRecord
from core.valuation.models import Category, GeoPoint, LandFeatures
from utils.formatting import convert_area


logger = logging.getLogger(__name__)


class ListingRejected(ValueError):
    """A raw listing that cannot become a PropertyRecord."""

    def __init__(self, label: str, reason: str):
        super().__init__(f"{label}: {reason}")
        self.label = label
        self.reason = reason


# =============================================================================
# Parsing patterns
# =============================================================================

_NUMBER = r"([0-9][0-9,]*(?:\.[0-9]+)?)"

# Unit aliases -> utils.formatting unit names
AREA_UNIT_PATTERNS = [
    (re.compile(_NUMBER + r"\s*(?:acres?|ac)\b", re.IGNORECASE), "acres"),
    (re.compile(_NUMBER + r"\s*(?:sq\.?\s*ft|sqft|square\s+feet|ft2|ft²)", re.IGNORECASE), "sqft"),
    (re.compile(_NUMBER + r"\s*(?:m2|m²|sqm|sq\.?\s*m\b|square\s+met(?:er|re)s?)", re.IGNORECASE), "sqm"),
]

UNIT_ALIASES = {
    "sqft": "sqft",
    "sq ft": "sqft",
    "ft2": "sqft",
    "acre": "acres",
    "acres": "acres",
    "ac": "acres",
    "sqm": "sqm",
    "m2": "sqm",
    "m²": "sqm",
}


class ListingNormaliser:
    """
    Raw listing dict -> PropertyRecord.

    Explicit fields always win over anything detected from free text.
    """

    NEAR_WATER_TERMS = ("water", "lake", "river", "creek")
    UTILITY_TERMS = ("utilities", "electric", "water service")
    NO_ROAD_ACCESS_TERM = "no road access"

    # First match wins
    CATEGORY_TERMS = (
        ("residential", Category.RESIDENTIAL),
        ("commercial", Category.COMMERCIAL),
        ("agricultural", Category.AGRICULTURAL),
        ("industrial", Category.INDUSTRIAL),
    )

    def __init__(self, source: str = "import"):
        self._source = source

    # =========================================================================
    # Single listing
    # =========================================================================

    def normalise(
        self,
        raw: dict[str, Any],
        fallback_point: Optional[GeoPoint] = None,
    ) -> PropertyRecord:
        """
        Convert one raw listing.

        Args:
            raw: Raw listing dict
            fallback_point: Coordinates to use when the listing has none

        Raises:
            ListingRejected: If the listing has no usable price or location
        """
        address = str(raw.get("address") or "").strip()
        label = address or str(raw.get("id") or "<unnamed listing>")

        price = self.parse_price(raw.get("price"))
        if price is None:
            raise ListingRejected(label, f"unusable price {raw.get('price')!r}")

        point = self.extract_point(raw) or fallback_point
        if point is None:
            raise ListingRejected(label, "no coordinates")

        text = self._free_text(raw)
        area = self.parse_area(raw.get("area"), raw.get("areaUnit"))
        if area is None and text:
            area = self.parse_area(text)

        price_per_sqft = self.parse_price(raw.get("pricePerSqFt"))
        if price_per_sqft is None and area:
            price_per_sqft = price / area

        record_id = str(raw.get("id") or self.generate_stable_id(address, price, point))

        return PropertyRecord(
            id=record_id,
            latitude=point.lat,
            longitude=point.lng,
            price=price,
            area=area,
            price_per_sqft=price_per_sqft,
            category=self.detect_category(text, raw.get("zoning") or raw.get("category")),
            features=self.detect_features(text, raw.get("features")),
            address=address,
            city=str(raw.get("city") or ""),
            state=str(raw.get("state") or ""),
            governorate=str(raw.get("governorate") or ""),
            neighborhood=str(raw.get("neighborhood") or ""),
            zip_code=str(raw.get("zipCode") or raw.get("zip_code") or ""),
            description=str(raw.get("description") or raw.get("details") or ""),
            source=str(raw.get("source") or self._source),
            source_url=str(raw.get("sourceUrl") or raw.get("url") or ""),
            listed_date=raw.get("listedDate") or datetime.utcnow().date().isoformat(),
        )

    # =========================================================================
    # Field parsers
    # =========================================================================

    @staticmethod
    def parse_price(value: Any) -> Optional[float]:
        """
        Parse a price from a number or text such as "150,000 DT" or "$89,500".

        Returns None unless the result is finite and positive.
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            number = float(value)
        else:
            match = re.search(_NUMBER, str(value))
            if not match:
                return None
            number = float(match.group(1).replace(",", ""))

        return number if math.isfinite(number) and number > 0 else None

    @staticmethod
    def parse_area(value: Any, unit: Optional[str] = None) -> Optional[float]:
        """
        Parse an area into square feet.

        Numbers are taken in `unit` (default sq ft). Text is scanned for
        "<n> acres", "<n> sq ft" or "<n> m2"; a bare number is sq ft.
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            number, from_unit = float(value), UNIT_ALIASES.get((unit or "sqft").lower().strip())
            if from_unit is None:
                return None
        else:
            text = str(value)
            for pattern, pattern_unit in AREA_UNIT_PATTERNS:
                match = pattern.search(text)
                if match:
                    number, from_unit = float(match.group(1).replace(",", "")), pattern_unit
                    break
            else:
                stripped = text.replace(",", "").strip()
                try:
                    number = float(stripped)
                except ValueError:
                    return None
                from_unit = UNIT_ALIASES.get((unit or "sqft").lower().strip(), "sqft")

        if not math.isfinite(number) or number <= 0:
            return None
        return convert_area(number, from_unit, "sqft")

    @classmethod
    def detect_features(cls, text: str, explicit: Any = None) -> LandFeatures:
        """Explicit feature object if given, else keywords in the listing text."""
        if isinstance(explicit, dict):
            return LandFeatures.from_dict(explicit)
        if not text:
            return LandFeatures()

        lowered = text.lower()
        # "water service" is a utility, not a water frontage
        water_text = lowered.replace("water service", "")

        return LandFeatures(
            near_water=any(term in water_text for term in cls.NEAR_WATER_TERMS),
            road_access=cls.NO_ROAD_ACCESS_TERM not in lowered,
            utilities=any(term in lowered for term in cls.UTILITY_TERMS),
        )

    @classmethod
    def detect_category(cls, text: str, explicit: Any = None) -> Category:
        if isinstance(explicit, str):
            category = Category.from_string(explicit)
            if category is not None and category is not Category.UNKNOWN:
                return category

        lowered = (text or "").lower()
        for term, category in cls.CATEGORY_TERMS:
            if term in lowered:
                return category
        return Category.UNKNOWN

    @staticmethod
    def extract_point(raw: dict[str, Any]) -> Optional[GeoPoint]:
        """
        Coordinates from {"location": {"lat", "lng"}}, a GeoJSON point
        ({"coordinates": [lng, lat]}) or top-level lat/lng.
        """
        location = raw.get("location")
        lat = lng = None

        if isinstance(location, dict):
            if "coordinates" in location:
                coords = location.get("coordinates") or []
                if len(coords) == 2:
                    lng, lat = coords
            else:
                lat, lng = location.get("lat"), location.get("lng")
        else:
            lat, lng = raw.get("lat"), raw.get("lng")

        try:
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError):
            return None

        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return None
        # 0,0 is the "no coordinates" marker used by scraped listings
        if lat == 0 and lng == 0:
            return None
        return GeoPoint(lat=lat, lng=lng)

    @staticmethod
    def generate_stable_id(address: str, price: float, point: GeoPoint) -> str:
        """Generate a stable ID for the listing based on content."""
        content = f"{address.lower()}:{price:.2f}:{point.lat:.5f}:{point.lng:.5f}"
        hash_val = hashlib.md5(content.encode()).hexdigest()[:12]
        return f"LV-{hash_val}"

    @staticmethod
    def _free_text(raw: dict[str, Any]) -> str:
        parts = [raw.get("details"), raw.get("description"), raw.get("title")]
        features = raw.get("features")
        if isinstance(features, list):
            parts.extend(str(f) for f in features)
        return " ".join(str(p) for p in parts if p)
