"""
Land Valuation Service - Integrated selection + estimation pipeline

Validated request -> comparable selection -> estimator -> report.
The reverse-geocoded subject address is informational only; a failed
lookup never fails the valuation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from core.geocoder import GeocodeResult, Geocoder
from core.models import ValuationRequest
from core.store import PropertyStore
from core.valuation import (
    ComparableSelector,
    SelectionResult,
    ValuationEstimator,
    ValuationResult,
)
from core.valuation.selection import (
    DEFAULT_STAGE_TIMEOUT_SECONDS,
    MAX_DESIRED_COMPS,
    MIN_DESIRED_COMPS,
    NEARBY_RADIUS_KM,
)
from utils.config import Config


logger = logging.getLogger(__name__)


@dataclass
class ValuationReport:
    """
    Valuation enriched with the subject location and selection metadata.
    """
    request: ValuationRequest
    valuation: ValuationResult
    selection: SelectionResult
    location: Optional[GeocodeResult] = None

    @property
    def estimated_value(self) -> float:
        return self.valuation.estimated_value

    @property
    def low_confidence(self) -> bool:
        return self.valuation.low_confidence or self.selection.placeholder_used

    def to_dict(self) -> dict[str, Any]:
        """Boundary JSON shape."""
        valuation = self.valuation.to_dict()
        comparables = valuation.pop("comparablesUsed")

        if self.location is not None:
            location = self.location.to_dict()
            location["lat"] = self.request.point.lat
            location["lng"] = self.request.point.lng
        else:
            location = {
                **self.request.point.to_dict(),
                "address": "Unknown location",
                "city": "",
                "state": "",
                "zipCode": "",
            }

        valuation.update({
            "areaInSqFt": self.request.area,
            "category": self.request.category.value,
            "lowConfidence": self.low_confidence,
        })

        return {
            "location": location,
            "valuation": valuation,
            "comparablesUsed": comparables,
            "selection": self.selection.to_dict(),
        }


class LandValuationService:
    """
    Orchestrates comparable selection and estimation for one request.

    Holds no per-request state; safe to share between concurrent requests.
    """

    def __init__(
        self,
        store: PropertyStore,
        geocoder: Optional[Geocoder] = None,
        estimator: Optional[ValuationEstimator] = None,
        min_comparables: int = MIN_DESIRED_COMPS,
        max_comparables: int = MAX_DESIRED_COMPS,
        stage_timeout: float = DEFAULT_STAGE_TIMEOUT_SECONDS,
        radius_km: float = NEARBY_RADIUS_KM,
        allow_placeholder: bool = True,
    ):
        self._geocoder = geocoder
        self._selector = ComparableSelector(
            store,
            geocoder,
            stage_timeout=stage_timeout,
            radius_km=radius_km,
        )
        self._estimator = estimator or ValuationEstimator()
        self._min_comparables = min_comparables
        self._max_comparables = max_comparables
        self._allow_placeholder = allow_placeholder

    @classmethod
    def from_config(
        cls,
        config: Config,
        store: PropertyStore,
        geocoder: Optional[Geocoder] = None,
    ) -> "LandValuationService":
        return cls(
            store,
            geocoder,
            min_comparables=config.min_comparables,
            max_comparables=config.max_comparables,
            stage_timeout=config.stage_timeout_seconds,
            radius_km=config.nearby_radius_km,
            allow_placeholder=config.allow_placeholder_comparable,
        )

    async def estimate(self, request: ValuationRequest) -> ValuationReport:
        """
        Value a subject parcel.

        Raises:
            NoComparablesError: If selection found nothing and placeholders
                are disabled
        """
        selection = await self._selector.select(
            request.point,
            request.category,
            min_desired=self._min_comparables,
            max_desired=self._max_comparables,
            synthesize_placeholder=self._allow_placeholder,
        )

        valuation = self._estimator.estimate(
            request.area,
            selection.observations,
            request.features,
            request.category,
        )

        location = await self._describe_location(request)

        logger.info(
            "Valued %.0f sq ft %s parcel at %.2f from %d comparables%s",
            request.area,
            request.category.value,
            valuation.estimated_value,
            valuation.comps_used,
            " (fallback baseline)" if valuation.fallback_used else "",
        )

        return ValuationReport(
            request=request,
            valuation=valuation,
            selection=selection,
            location=location,
        )

    async def _describe_location(self, request: ValuationRequest) -> Optional[GeocodeResult]:
        if self._geocoder is None:
            return None
        try:
            return await self._geocoder.reverse(request.point)
        except Exception as e:
            logger.warning(
                "Reverse geocoding failed for (%s, %s): %s",
                request.point.lat, request.point.lng, e,
            )
            return None
