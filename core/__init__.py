"""
Land Valuation Engine - Core Business Logic

This module provides the valuation pipeline:
1. Validation (fail-fast request checks)
2. Comparable Selection (staged widening over the property store)
3. Estimation (IQR-filtered central tendency + ordered adjustments)
4. Reporting (location, factors and selection metadata)
"""

# Valuation engine first: core.models builds on its value objects
from .valuation import (
    Category,
    LandFeatures,
    GeoPoint,
    PropertyObservation,
    AdjustmentFactor,
    ValuationResult,
    SelectionResult,
    ValuationEstimator,
    ComparableSelector,
    estimate_value,
)

from .models import PropertyRecord, ValuationRequest

from .errors import (
    LandValuationError,
    ValidationError,
    NotFoundError,
    NoComparablesError,
    InvalidJobTransition,
    SelectionStageError,
)

__all__ = [
    # Valuation engine
    "Category",
    "LandFeatures",
    "GeoPoint",
    "PropertyObservation",
    "AdjustmentFactor",
    "ValuationResult",
    "SelectionResult",
    "ValuationEstimator",
    "ComparableSelector",
    "estimate_value",
    # Records
    "PropertyRecord",
    "ValuationRequest",
    # Errors
    "LandValuationError",
    "ValidationError",
    "NotFoundError",
    "NoComparablesError",
    "InvalidJobTransition",
    "SelectionStageError",
]
