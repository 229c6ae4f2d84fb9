"""
Valuation Engine v1.0

Comparable selection and land value estimation from nearby listings:
staged widening over the property store, an IQR-filtered central
tendency and an ordered, auditable list of adjustment factors.
"""

from .models import (
    Category,
    LandFeatures,
    GeoPoint,
    PropertyObservation,
    AdjustmentFactor,
    FactorKind,
    ValuationResult,
    SelectionResult,
    format_adjustment,
)
from .estimator import ValuationEstimator, estimate_value, fallback_price_per_sqft
from .selection import (
    ComparableSelector,
    SelectionStage,
    SelectionContext,
    FillTarget,
    default_stages,
    make_placeholder,
)

__all__ = [
    # Models
    "Category",
    "LandFeatures",
    "GeoPoint",
    "PropertyObservation",
    "AdjustmentFactor",
    "FactorKind",
    "ValuationResult",
    "SelectionResult",
    "format_adjustment",
    # Estimator
    "ValuationEstimator",
    "estimate_value",
    "fallback_price_per_sqft",
    # Selection
    "ComparableSelector",
    "SelectionStage",
    "SelectionContext",
    "FillTarget",
    "default_stages",
    "make_placeholder",
]

__version__ = "1.0"
