"""
Comparable Selection

Staged widening over the property store:
1. Same category within the preferred radius
2. Any category within double the radius
3. Region name text match (via reverse geocoding)
4. Unfiltered sample
5. Synthesized placeholder when the store is empty

Each stage is a single bounded collaborator call. A failing or slow
stage counts as zero results; the next stage runs instead.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence

from core.errors import NoComparablesError, SelectionStageError, ValidationError
from .estimator import fallback_price_per_sqft
from .models import (
    Category,
    GeoPoint,
    PropertyObservation,
    SelectionResult,
)

if TYPE_CHECKING:
    from core.geocoder import Geocoder
    from core.models import PropertyRecord
    from core.store import PropertyStore


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Constants
# =============================================================================

# Radius of the first stage; the second stage doubles it
NEARBY_RADIUS_KM = 10.0

MIN_DESIRED_COMPS = 5
MAX_DESIRED_COMPS = 10

# Upper bound for each collaborator call
DEFAULT_STAGE_TIMEOUT_SECONDS = 3.0


# =============================================================================
# Stage Definitions
# =============================================================================


class FillTarget(Enum):
    """How far a stage may grow the selection."""
    MAX = "max"  # up to max_desired
    MIN = "min"  # top up to min_desired only


@dataclass
class SelectionContext:
    """Inputs and running state handed to every stage."""
    point: GeoPoint
    category: Optional[Category]
    min_desired: int
    max_desired: int
    store: "PropertyStore"
    geocoder: Optional["Geocoder"] = None
    selected: List["PropertyRecord"] = field(default_factory=list)
    seen_ids: set = field(default_factory=set)

    @property
    def is_sufficient(self) -> bool:
        return len(self.selected) >= self.min_desired

    @property
    def query_limit(self) -> int:
        # Leave headroom for records already selected by earlier stages
        return self.max_desired + len(self.selected)


StageRunner = Callable[[SelectionContext], Awaitable[List["PropertyRecord"]]]


@dataclass(frozen=True)
class SelectionStage:
    """One selection strategy: (context) -> candidate records."""
    name: str
    run: StageRunner
    fill: FillTarget = FillTarget.MIN


def nearby_stage(
    name: str,
    radius_km: float,
    match_category: bool,
    fill: FillTarget = FillTarget.MIN,
) -> SelectionStage:
    """Records within radius_km of the query point, nearest first."""

    async def run(ctx: SelectionContext) -> List["PropertyRecord"]:
        category = ctx.category if match_category else None
        return await ctx.store.find_near(
            ctx.point,
            radius_km,
            category=category,
            limit=ctx.query_limit,
        )

    return SelectionStage(name=name, run=run, fill=fill)


def region_stage(
    name: str = "region_text_match",
    fill: FillTarget = FillTarget.MIN,
    region: Optional[str] = None,
) -> SelectionStage:
    """
    Records whose location text mentions the point's administrative region.

    The region is reverse-geocoded from the query point unless given.
    """

    async def run(ctx: SelectionContext) -> List["PropertyRecord"]:
        region_name = region
        if not region_name:
            if ctx.geocoder is None:
                return []
            location = await ctx.geocoder.reverse(ctx.point)
            if location is None or not location.region:
                return []
            region_name = location.region
        logger.info("Searching comparables by region name %r", region_name)
        return await ctx.store.find_by_region(region_name, limit=ctx.query_limit)

    return SelectionStage(name=name, run=run, fill=fill)


def sample_stage(name: str = "unfiltered_sample", fill: FillTarget = FillTarget.MIN) -> SelectionStage:
    """Any records at all, in store order."""

    async def run(ctx: SelectionContext) -> List["PropertyRecord"]:
        return await ctx.store.sample(limit=ctx.query_limit)

    return SelectionStage(name=name, run=run, fill=fill)


def default_stages(radius_km: float = NEARBY_RADIUS_KM) -> List[SelectionStage]:
    """Stage order used for valuation."""
    return [
        nearby_stage("nearby_same_category", radius_km, match_category=True, fill=FillTarget.MAX),
        nearby_stage("wider_any_category", radius_km * 2, match_category=False),
        region_stage(),
        sample_stage(),
    ]


def make_placeholder(category: Optional[Category]) -> PropertyObservation:
    """Minimal stand-in observation when the store holds nothing at all."""
    category = category or Category.UNKNOWN
    return PropertyObservation(
        id=f"placeholder-{category.value}",
        price_per_sqft=fallback_price_per_sqft(category),
        category=category,
        is_placeholder=True,
    )


# =============================================================================
# Selector
# =============================================================================


class ComparableSelector:
    """
    Applies selection stages in order until the sufficiency predicate
    (count >= min_desired) holds or every stage has run.
    """

    def __init__(
        self,
        store: "PropertyStore",
        geocoder: Optional["Geocoder"] = None,
        stages: Optional[Sequence[SelectionStage]] = None,
        stage_timeout: float = DEFAULT_STAGE_TIMEOUT_SECONDS,
        radius_km: float = NEARBY_RADIUS_KM,
    ):
        """
        Initialize selector.

        Args:
            store: Geospatial property store
            geocoder: Used by the region stage; that stage is skipped if None
            stages: Custom stage order (default: default_stages(radius_km))
            stage_timeout: Seconds allowed for each stage
            radius_km: First-stage radius for the default stages
        """
        self._store = store
        self._geocoder = geocoder
        self._stages = list(stages) if stages is not None else default_stages(radius_km)
        self._stage_timeout = stage_timeout

    @property
    def stages(self) -> List[SelectionStage]:
        return list(self._stages)

    async def select(
        self,
        point: GeoPoint,
        category: Optional[Category],
        min_desired: int = MIN_DESIRED_COMPS,
        max_desired: int = MAX_DESIRED_COMPS,
        synthesize_placeholder: bool = True,
    ) -> SelectionResult:
        """
        Select comparable records for a query point.

        Args:
            point: Query location
            category: Category to match in category-aware stages
            min_desired: Sufficiency threshold; later stages run only below it
            max_desired: Hard cap on the number of records returned
            synthesize_placeholder: Return a placeholder observation instead
                of raising when nothing is found

        Returns:
            SelectionResult with records (or placeholder) and stage metadata

        Raises:
            ValidationError: If min/max desired are inconsistent
            NoComparablesError: If nothing was found and placeholders are off
        """
        if min_desired < 1 or max_desired < min_desired:
            raise ValidationError(
                f"Invalid comparable bounds: min={min_desired}, max={max_desired}"
            )

        ctx = SelectionContext(
            point=point,
            category=category,
            min_desired=min_desired,
            max_desired=max_desired,
            store=self._store,
            geocoder=self._geocoder,
        )
        result = SelectionResult()

        for stage in self._stages:
            if ctx.is_sufficient:
                break

            result.stages_run.append(stage.name)
            candidates = await self._run_stage(stage, ctx, result)
            cap = max_desired if stage.fill is FillTarget.MAX else min_desired
            added = self._append(ctx, candidates, cap)

            logger.debug(
                "Stage %s returned %d candidates, %d new (total %d)",
                stage.name, len(candidates), added, len(ctx.selected),
            )

        result.records = list(ctx.selected)

        if not result.records:
            if not synthesize_placeholder:
                raise NoComparablesError(
                    f"No comparable properties found near ({point.lat}, {point.lng})"
                )
            result.placeholder = make_placeholder(category)
            logger.warning(
                "No comparables in store for (%s, %s); using %s placeholder",
                point.lat, point.lng, result.placeholder.category.value,
            )
        else:
            logger.info(
                "Selected %d comparables after stages %s",
                len(result.records), ", ".join(result.stages_run),
            )

        return result

    async def _run_stage(
        self,
        stage: SelectionStage,
        ctx: SelectionContext,
        result: SelectionResult,
    ) -> List["PropertyRecord"]:
        """Run one stage; failures and timeouts count as zero results."""
        try:
            records = await asyncio.wait_for(stage.run(ctx), timeout=self._stage_timeout)
        except asyncio.TimeoutError as e:
            error = SelectionStageError(
                stage.name, f"timed out after {self._stage_timeout}s", e
            )
        except Exception as e:
            error = SelectionStageError(stage.name, str(e) or type(e).__name__, e)
        else:
            return list(records or [])

        logger.warning("Selection stage %s failed: %s", stage.name, error.message)
        result.stage_errors.append(error)
        return []

    @staticmethod
    def _append(
        ctx: SelectionContext,
        candidates: Sequence["PropertyRecord"],
        cap: int,
    ) -> int:
        """Append unseen records until cap; returns how many were added."""
        added = 0
        for record in candidates:
            if len(ctx.selected) >= cap:
                break
            if record.id in ctx.seen_ids:
                continue
            ctx.seen_ids.add(record.id)
            ctx.selected.append(record)
            added += 1
        return added
