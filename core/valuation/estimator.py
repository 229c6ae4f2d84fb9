"""
Valuation Estimator

Implements:
- Sanitisation (derive / discard price per sq ft)
- Central tendency (IQR-filtered mean blended with median)
- Sequential multiplicative adjustments with an audit trail
- Fallback baseline when no usable comparable exists
- Floor clamp

Pure computation: no I/O, no clock, no randomness.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from core.errors import ValidationError
from .models import (
    AdjustmentFactor,
    Category,
    FactorKind,
    LandFeatures,
    PropertyObservation,
    ValuationResult,
)


# =============================================================================
# Configuration Constants
# =============================================================================

# Quartile analysis needs at least this many usable comparables
MIN_COMPS_FOR_QUARTILES = 4
IQR_FENCE = 1.5

# Blend of IQR-filtered mean and full-set median
MEAN_WEIGHT = 0.7
MEDIAN_WEIGHT = 0.3

# Feature multipliers
WATER_PROXIMITY_MULTIPLIER = 1.15
NO_ROAD_ACCESS_MULTIPLIER = 0.70
NO_UTILITIES_MULTIPLIER = 0.80

# Land size vs. mean comparable area
LARGE_LAND_RATIO = 1.5
SMALL_LAND_RATIO = 0.5
LARGE_LAND_MULTIPLIER = 0.95
SMALL_LAND_MULTIPLIER = 1.05

MARKET_TREND_MULTIPLIER = 1.03

# Minimum reported value in the reporting currency
MIN_ESTIMATED_VALUE = 1000.0

# Conservative price per sq ft used when no comparable data exists
FALLBACK_PRICE_PER_SQFT = {
    Category.RESIDENTIAL: 15.0,
    Category.COMMERCIAL: 25.0,
    Category.INDUSTRIAL: 12.0,
    Category.AGRICULTURAL: 4.0,
    Category.UNKNOWN: 10.0,
}

# Factor labels
FACTOR_WATER = "Water Proximity"
FACTOR_NO_ROAD = "No Road Access"
FACTOR_NO_UTILITIES = "No Utilities"
FACTOR_LARGE_LAND = "Large Land Size"
FACTOR_SMALL_LAND = "Small Land Size"
FACTOR_MARKET_TREND = "Market Trend Adjustment"
FACTOR_LIMITED_DATA = "Limited Comparable Data"
FACTOR_FALLBACK = "Default Estimate (No Comparable Data)"


def fallback_price_per_sqft(category: Category) -> float:
    return FALLBACK_PRICE_PER_SQFT.get(category, FALLBACK_PRICE_PER_SQFT[Category.UNKNOWN])


@dataclass
class CentralTendency:
    """Statistics behind the base price per sq ft."""
    base_price_per_sqft: float
    sample_size: int
    retained: int
    median: Optional[float] = None
    mean: Optional[float] = None

    @property
    def outliers_removed(self) -> int:
        return self.sample_size - self.retained

    @property
    def used_quartiles(self) -> bool:
        return self.sample_size >= MIN_COMPS_FOR_QUARTILES


class ValuationEstimator:
    """
    Comparable-based land value estimator.

    Pipeline order:
    1. SANITISE - keep comps with a usable price per sq ft
    2. CENTRAL TENDENCY - IQR mean/median blend, or simple mean for 1-3 comps
    3. RAW ESTIMATE - base x subject area
    4. ADJUST - water, road, utilities, land size, market trend
    5. FALLBACK - category baseline when nothing usable remains
    6. CLAMP - floor at MIN_ESTIMATED_VALUE
    """

    def __init__(self, min_estimated_value: float = MIN_ESTIMATED_VALUE):
        self._min_estimated_value = min_estimated_value

    def estimate(
        self,
        area: float,
        comparables: Optional[Iterable[PropertyObservation]],
        features: Optional[LandFeatures] = None,
        category: Category = Category.UNKNOWN,
    ) -> ValuationResult:
        """
        Estimate the value of a parcel.

        Args:
            area: Subject area in square feet (must be positive)
            comparables: Comparable observations; may be empty or contain
                unusable entries
            features: Subject site features (defaults apply if None)
            category: Subject category, used only for the fallback baseline

        Returns:
            ValuationResult with estimate, base price and ordered factors

        Raises:
            ValidationError: If area is not a finite positive number
        """
        area = self._validate_area(area)
        features = features or LandFeatures()

        usable = self._sanitise(comparables or [])
        if not usable:
            return self._fallback(area, features, category)

        factors: List[AdjustmentFactor] = []
        values = [ppsf for _, ppsf in usable]
        tendency = self._central_tendency(values)

        if not tendency.used_quartiles:
            factors.append(
                AdjustmentFactor(FACTOR_LIMITED_DATA, 1.0, FactorKind.CONFIDENCE)
            )

        value = tendency.base_price_per_sqft * area
        value = self._apply_feature_adjustments(value, features, factors)

        if tendency.used_quartiles:
            value = self._apply_land_size_adjustment(
                value, area, [obs for obs, _ in usable], factors
            )

        value = self._apply(value, FACTOR_MARKET_TREND, MARKET_TREND_MULTIPLIER, factors, FactorKind.MARKET)

        return ValuationResult(
            estimated_value=self._clamp(value),
            base_price_per_sqft=tendency.base_price_per_sqft,
            adjustment_factors=factors,
            comparables_used=[obs for obs, _ in usable],
            low_confidence=not tendency.used_quartiles,
            fallback_used=False,
        )

    # =========================================================================
    # Pipeline steps
    # =========================================================================

    @staticmethod
    def _validate_area(area: float) -> float:
        if isinstance(area, bool):
            raise ValidationError("area must be a positive number")
        try:
            value = float(area)
        except (TypeError, ValueError):
            raise ValidationError(f"area must be a positive number, got {area!r}")
        if not math.isfinite(value) or value <= 0:
            raise ValidationError(f"area must be a positive number, got {area!r}")
        return value

    @staticmethod
    def _sanitise(
        comparables: Iterable[PropertyObservation],
    ) -> List[Tuple[PropertyObservation, float]]:
        """Pair each usable comp with its resolved price per sq ft, in input order."""
        usable = []
        for comp in comparables:
            if not isinstance(comp, PropertyObservation) or comp.is_placeholder:
                continue
            ppsf = comp.resolved_price_per_sqft()
            if ppsf is not None:
                usable.append((comp, ppsf))
        return usable

    def _central_tendency(self, values: Sequence[float]) -> CentralTendency:
        n = len(values)

        if n < MIN_COMPS_FOR_QUARTILES:
            mean = sum(values) / n
            return CentralTendency(
                base_price_per_sqft=mean,
                sample_size=n,
                retained=n,
                mean=mean,
            )

        ordered = sorted(values)

        # Floor-indexed positional quartiles, no interpolation
        q1 = ordered[int(n * 0.25)]
        q3 = ordered[int(n * 0.75)]
        iqr = q3 - q1
        lower = q1 - IQR_FENCE * iqr
        upper = q3 + IQR_FENCE * iqr

        retained = [v for v in ordered if lower <= v <= upper]
        mean = sum(retained) / len(retained)
        median = self._median(ordered)

        return CentralTendency(
            base_price_per_sqft=MEAN_WEIGHT * mean + MEDIAN_WEIGHT * median,
            sample_size=n,
            retained=len(retained),
            median=median,
            mean=mean,
        )

    @staticmethod
    def _median(ordered: Sequence[float]) -> float:
        n = len(ordered)
        mid = n // 2
        if n % 2 == 1:
            return ordered[mid]
        return (ordered[mid - 1] + ordered[mid]) / 2

    def _apply_feature_adjustments(
        self,
        value: float,
        features: LandFeatures,
        factors: List[AdjustmentFactor],
    ) -> float:
        if features.near_water:
            value = self._apply(value, FACTOR_WATER, WATER_PROXIMITY_MULTIPLIER, factors)
        if not features.road_access:
            value = self._apply(value, FACTOR_NO_ROAD, NO_ROAD_ACCESS_MULTIPLIER, factors)
        if not features.utilities:
            value = self._apply(value, FACTOR_NO_UTILITIES, NO_UTILITIES_MULTIPLIER, factors)
        return value

    def _apply_land_size_adjustment(
        self,
        value: float,
        area: float,
        comparables: Sequence[PropertyObservation],
        factors: List[AdjustmentFactor],
    ) -> float:
        areas = [a for a in (c.usable_area() for c in comparables) if a is not None]
        if not areas:
            return value

        mean_area = sum(areas) / len(areas)
        if area > LARGE_LAND_RATIO * mean_area:
            return self._apply(value, FACTOR_LARGE_LAND, LARGE_LAND_MULTIPLIER, factors)
        if area < SMALL_LAND_RATIO * mean_area:
            return self._apply(value, FACTOR_SMALL_LAND, SMALL_LAND_MULTIPLIER, factors)
        return value

    def _fallback(
        self,
        area: float,
        features: LandFeatures,
        category: Category,
    ) -> ValuationResult:
        """Category baseline; feature adjustments only, no land size or trend."""
        base = fallback_price_per_sqft(category)
        factors: List[AdjustmentFactor] = []

        value = self._apply_feature_adjustments(base * area, features, factors)
        factors.append(AdjustmentFactor(FACTOR_FALLBACK, 1.0, FactorKind.CONFIDENCE))

        return ValuationResult(
            estimated_value=self._clamp(value),
            base_price_per_sqft=base,
            adjustment_factors=factors,
            comparables_used=[],
            low_confidence=True,
            fallback_used=True,
        )

    @staticmethod
    def _apply(
        value: float,
        name: str,
        multiplier: float,
        factors: List[AdjustmentFactor],
        kind: FactorKind = FactorKind.CONDITIONAL,
    ) -> float:
        factors.append(AdjustmentFactor(name, multiplier, kind))
        return value * multiplier

    def _clamp(self, value: float) -> float:
        if value < self._min_estimated_value:
            return self._min_estimated_value
        return value


def estimate_value(
    area: float,
    comparables: Optional[Iterable[PropertyObservation]],
    features: Optional[LandFeatures] = None,
    category: Category = Category.UNKNOWN,
) -> ValuationResult:
    """Convenience wrapper around a default ValuationEstimator."""
    return ValuationEstimator().estimate(area, comparables, features, category)
