"""
Request Validation - Fail-fast checks at the service boundary

Every function raises ValidationError with a precise message; nothing
is coerced into a default when the caller supplied a bad value.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from core.errors import ValidationError
from core.models import ValuationRequest
from core.valuation.models import Category, GeoPoint, LandFeatures


# Categories a caller may request a valuation for
VALUATION_CATEGORIES = (
    Category.RESIDENTIAL,
    Category.COMMERCIAL,
    Category.AGRICULTURAL,
    Category.INDUSTRIAL,
)

FEATURE_KEYS = ("nearWater", "roadAccess", "utilities")


def _to_float(value: Any, name: str) -> float:
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValidationError(f"{name} must be a finite number")
    return number


def validate_coordinates(lat: Any, lng: Any) -> GeoPoint:
    """Latitude in [-90, 90], longitude in [-180, 180]."""
    lat_value = _to_float(lat, "lat")
    lng_value = _to_float(lng, "lng")

    if not -90 <= lat_value <= 90:
        raise ValidationError(f"lat must be between -90 and 90, got {lat_value}")
    if not -180 <= lng_value <= 180:
        raise ValidationError(f"lng must be between -180 and 180, got {lng_value}")

    return GeoPoint(lat=lat_value, lng=lng_value)


def validate_area(area: Any) -> float:
    """Area must be a positive number of square feet."""
    value = _to_float(area, "area")
    if value <= 0:
        raise ValidationError(f"area must be positive, got {value}")
    return value


def parse_category(value: Any, allow_unknown: bool = False) -> Category:
    """
    Parse a category name.

    Args:
        value: Category string (case-insensitive) or Category
        allow_unknown: Accept Category.UNKNOWN (stored listings only)
    """
    if isinstance(value, Category):
        category = value
    elif isinstance(value, str):
        category = Category.from_string(value)
    else:
        category = None

    if category is None or (category is Category.UNKNOWN and not allow_unknown):
        allowed = ", ".join(c.value for c in VALUATION_CATEGORIES)
        raise ValidationError(f"Invalid category: {value!r} (expected one of {allowed})")
    return category


def parse_features(value: Any) -> LandFeatures:
    """Features must be an object of booleans; None means defaults."""
    if value is None:
        return LandFeatures()
    if not isinstance(value, dict):
        raise ValidationError("features must be an object")

    for key in FEATURE_KEYS:
        if key in value and not isinstance(value[key], bool):
            raise ValidationError(f"features.{key} must be a boolean")

    return LandFeatures.from_dict(value)


def parse_valuation_request(payload: Optional[dict[str, Any]]) -> ValuationRequest:
    """
    Validate a raw valuation request body.

    Accepts "category" or the legacy "zoning" key; category defaults to
    residential when neither is given.

    Raises:
        ValidationError: On the first invalid field
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be an object")

    point = validate_coordinates(payload.get("lat"), payload.get("lng"))
    area = validate_area(payload.get("area"))

    raw_category = payload.get("category", payload.get("zoning"))
    category = parse_category(raw_category if raw_category is not None else "residential")

    features = parse_features(payload.get("features"))

    return ValuationRequest(area=area, category=category, features=features, point=point)
