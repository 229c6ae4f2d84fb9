"""
Data models for the valuation engine.

Value objects shared by comparable selection and the estimator:
categories, site features, comparable observations, adjustment
factors and results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from core.errors import SelectionStageError
    from core.models import PropertyRecord


class Category(Enum):
    """
    Zoning / use category of a parcel.

    Used for comparable selection only - never in the estimator math,
    apart from choosing the fallback baseline.
    """
    RESIDENTIAL = "residential"
    COMMERCIAL = "commercial"
    AGRICULTURAL = "agricultural"
    INDUSTRIAL = "industrial"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: str) -> Optional["Category"]:
        """Convert string to Category, case-insensitive."""
        normalised = value.lower().strip()
        for member in cls:
            if member.value == normalised:
                return member
        return None


@dataclass(frozen=True)
class LandFeatures:
    """Boolean site features, each independently affecting value."""
    near_water: bool = False
    road_access: bool = True
    utilities: bool = True

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "LandFeatures":
        """Build from camelCase (wire) or snake_case keys; missing keys use defaults."""
        if not data:
            return cls()

        def pick(camel: str, snake: str, default: bool) -> bool:
            if camel in data:
                return bool(data[camel])
            if snake in data:
                return bool(data[snake])
            return default

        return cls(
            near_water=pick("nearWater", "near_water", False),
            road_access=pick("roadAccess", "road_access", True),
            utilities=pick("utilities", "utilities", True),
        )

    def to_dict(self) -> dict[str, bool]:
        return {
            "nearWater": self.near_water,
            "roadAccess": self.road_access,
            "utilities": self.utilities,
        }


@dataclass(frozen=True)
class GeoPoint:
    """A WGS84 coordinate pair."""
    lat: float
    lng: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lng": self.lng}


def _positive_finite(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


@dataclass(frozen=True)
class PropertyObservation:
    """
    A single comparable listing as consumed by the estimator.

    Constructed fresh per request and never mutated. price_per_sqft
    may be absent; resolved_price_per_sqft() is the only place it is
    derived.
    """
    id: str
    price: Optional[float] = None
    area: Optional[float] = None  # square feet
    price_per_sqft: Optional[float] = None
    category: Category = Category.UNKNOWN
    features: LandFeatures = field(default_factory=LandFeatures)

    # Synthesized by the selector when the store is empty
    is_placeholder: bool = False

    def resolved_price_per_sqft(self) -> Optional[float]:
        """
        Precomputed value if usable, else price / area.

        Returns None when neither yields a finite positive number.
        """
        precomputed = _positive_finite(self.price_per_sqft)
        if precomputed is not None:
            return precomputed

        price = _positive_finite(self.price)
        area = _positive_finite(self.area)
        if price is None or area is None:
            return None

        derived = price / area
        return derived if math.isfinite(derived) and derived > 0 else None

    def usable_area(self) -> Optional[float]:
        return _positive_finite(self.area)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "price": self.price,
            "area": self.area,
            "pricePerUnitArea": self.resolved_price_per_sqft(),
            "features": self.features.to_dict(),
            "placeholder": self.is_placeholder,
        }


class FactorKind(Enum):
    """What an adjustment factor records."""
    CONDITIONAL = "conditional"  # feature / land-size driven
    MARKET = "market"            # flat market trend, always applied
    CONFIDENCE = "confidence"    # low-confidence annotation, multiplier 1.0


def format_adjustment(multiplier: float) -> str:
    """
    Percentage string for a multiplier.

    1.15 -> "+15%", 0.7 -> "-30%", 1.0 -> "0%".
    """
    percent = round((multiplier - 1.0) * 100, 2)
    if percent == 0:
        return "0%"
    if percent == int(percent):
        text = str(int(abs(percent)))
    else:
        text = f"{abs(percent):g}"
    sign = "+" if percent > 0 else "-"
    return f"{sign}{text}%"


@dataclass(frozen=True)
class AdjustmentFactor:
    """One named multiplicative step, recorded in application order."""
    factor: str
    multiplier: float
    kind: FactorKind = FactorKind.CONDITIONAL

    @property
    def adjustment(self) -> str:
        return format_adjustment(self.multiplier)

    def to_dict(self) -> dict[str, str]:
        return {
            "factor": self.factor,
            "adjustment": self.adjustment,
            "kind": self.kind.value,
        }


@dataclass
class ValuationResult:
    """
    Output of the estimator.

    estimated_value is floor-clamped; base_price_per_sqft is the
    central tendency before any adjustment.
    """
    estimated_value: float
    base_price_per_sqft: float
    adjustment_factors: List[AdjustmentFactor] = field(default_factory=list)
    comparables_used: List[PropertyObservation] = field(default_factory=list)

    # Confidence annotations (also present as CONFIDENCE factors)
    low_confidence: bool = False
    fallback_used: bool = False

    @property
    def comps_used(self) -> int:
        return len(self.comparables_used)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "estimatedValue": round(self.estimated_value, 2),
            "basePricePerUnitArea": round(self.base_price_per_sqft, 4),
            "adjustmentFactors": [f.to_dict() for f in self.adjustment_factors],
            "lowConfidence": self.low_confidence,
            "fallbackUsed": self.fallback_used,
            "comparablesUsed": [c.to_dict() for c in self.comparables_used],
        }


@dataclass
class SelectionResult:
    """
    Result of comparable selection.

    Contains the records chosen plus metadata about how they were found.
    """
    records: List["PropertyRecord"] = field(default_factory=list)
    placeholder: Optional[PropertyObservation] = None
    stages_run: List[str] = field(default_factory=list)
    stage_errors: List["SelectionStageError"] = field(default_factory=list)

    @property
    def observations(self) -> List[PropertyObservation]:
        """What the estimator consumes."""
        if self.placeholder is not None:
            return [self.placeholder]
        return [r.to_observation() for r in self.records]

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def placeholder_used(self) -> bool:
        return self.placeholder is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "stages": list(self.stages_run),
            "stageErrors": [e.to_dict() for e in self.stage_errors],
            "placeholderUsed": self.placeholder_used,
        }
