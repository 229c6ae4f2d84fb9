"""
Tests for the Valuation Estimator

Verifies:
- IQR outlier filtering and the 0.7 mean / 0.3 median blend
- Feature, land size and market trend adjustments, in order
- Limited-data and fallback paths return low-confidence estimates
- Floor clamp
- Identical input gives identical output
"""

import math
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ValidationError
from core.valuation import (
    Category,
    FactorKind,
    LandFeatures,
    PropertyObservation,
    ValuationEstimator,
    estimate_value,
    format_adjustment,
)
from core.valuation.estimator import (
    FACTOR_FALLBACK,
    FACTOR_LARGE_LAND,
    FACTOR_LIMITED_DATA,
    FACTOR_MARKET_TREND,
    FACTOR_NO_ROAD,
    FACTOR_NO_UTILITIES,
    FACTOR_SMALL_LAND,
    FACTOR_WATER,
    MIN_ESTIMATED_VALUE,
)


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def estimator():
    return ValuationEstimator()


@pytest.fixture
def create_comp():
    """Factory fixture for comparable observations with a given price per sq ft."""
    def _create(ppsf: float, area: float = 1000.0, comp_id: str = None) -> PropertyObservation:
        return PropertyObservation(
            id=comp_id or f"comp-{ppsf}-{area}",
            price=ppsf * area,
            area=area,
            price_per_sqft=ppsf,
        )
    return _create


@pytest.fixture
def typical_comps(create_comp):
    """Five comps, one extreme outlier."""
    return [create_comp(v) for v in (10, 11, 12, 13, 100)]


def factor_names(result):
    return [f.factor for f in result.adjustment_factors]


# =============================================================================
# Test: Central Tendency
# =============================================================================

class TestCentralTendency:

    def test_iqr_filtered_mean_blended_with_median(self, estimator, typical_comps):
        """Q1=11, Q3=13 -> 100 is fenced out; mean 11.5, median 12."""
        result = estimator.estimate(1000, typical_comps)

        assert result.base_price_per_sqft == pytest.approx(0.7 * 11.5 + 0.3 * 12)
        assert result.estimated_value == pytest.approx(11.65 * 1000 * 1.03)

    def test_outlier_does_not_drag_base(self, estimator, create_comp):
        """An extreme outlier moves the base only through the median term."""
        clean = [create_comp(v) for v in (10, 11, 12, 13)]
        dirty = clean + [create_comp(10_000)]

        clean_base = estimator.estimate(1000, clean).base_price_per_sqft
        dirty_base = estimator.estimate(1000, dirty).base_price_per_sqft

        assert 10 <= dirty_base <= 13
        assert abs(dirty_base - clean_base) < 1

    def test_outliers_removed_both_sides(self, estimator, create_comp):
        comps = [create_comp(v) for v in (0.01, 20, 21, 22, 23, 24, 500)]

        result = estimator.estimate(1000, comps)

        assert 20 <= result.base_price_per_sqft <= 24

    def test_four_comps_uses_quartiles(self, estimator, create_comp):
        comps = [create_comp(v) for v in (10, 11, 12, 13)]

        result = estimator.estimate(1000, comps)

        assert result.base_price_per_sqft == pytest.approx(11.5)
        assert not result.low_confidence
        assert FACTOR_LIMITED_DATA not in factor_names(result)

    def test_all_comps_used_are_reported(self, estimator, typical_comps):
        """The outlier is excluded from the mean, not from comparables_used."""
        result = estimator.estimate(1000, typical_comps)

        assert result.comps_used == 5


# =============================================================================
# Test: Limited Data
# =============================================================================

class TestLimitedData:

    def test_one_to_three_comps_uses_simple_mean(self, estimator, create_comp):
        result = estimator.estimate(2000, [create_comp(10), create_comp(20)])

        assert result.base_price_per_sqft == pytest.approx(15)
        assert result.estimated_value == pytest.approx(15 * 2000 * 1.03)

    def test_limited_data_flagged_low_confidence(self, estimator, create_comp):
        result = estimator.estimate(1000, [create_comp(10)])

        assert result.low_confidence
        assert not result.fallback_used
        assert factor_names(result)[0] == FACTOR_LIMITED_DATA
        assert result.adjustment_factors[0].kind == FactorKind.CONFIDENCE
        assert result.adjustment_factors[0].adjustment == "0%"

    def test_limited_data_skips_land_size(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(3)]

        result = estimator.estimate(100_000, comps)

        assert FACTOR_LARGE_LAND not in factor_names(result)


# =============================================================================
# Test: Adjustments
# =============================================================================

class TestAdjustments:

    def test_water_increases_value(self, estimator, typical_comps):
        base = estimator.estimate(1000, typical_comps)
        water = estimator.estimate(1000, typical_comps, LandFeatures(near_water=True))

        assert water.estimated_value == pytest.approx(base.estimated_value * 1.15)

    def test_no_road_access_decreases_value(self, estimator, typical_comps):
        base = estimator.estimate(1000, typical_comps)
        no_road = estimator.estimate(1000, typical_comps, LandFeatures(road_access=False))

        assert no_road.estimated_value == pytest.approx(base.estimated_value * 0.70)

    def test_no_utilities_decreases_value(self, estimator, typical_comps):
        base = estimator.estimate(1000, typical_comps)
        no_utils = estimator.estimate(1000, typical_comps, LandFeatures(utilities=False))

        assert no_utils.estimated_value == pytest.approx(base.estimated_value * 0.80)

    def test_large_land_discount(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(4)]

        result = estimator.estimate(2000, comps)

        assert FACTOR_LARGE_LAND in factor_names(result)
        assert result.estimated_value == pytest.approx(10 * 2000 * 0.95 * 1.03)

    def test_small_land_premium(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(4)]

        result = estimator.estimate(400, comps)

        assert FACTOR_SMALL_LAND in factor_names(result)
        assert result.estimated_value == pytest.approx(10 * 400 * 1.05 * 1.03)

    def test_land_size_thresholds_are_strict(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(4)]

        assert FACTOR_LARGE_LAND not in factor_names(estimator.estimate(1500, comps))
        assert FACTOR_SMALL_LAND not in factor_names(estimator.estimate(500, comps))

    def test_factor_order(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(4)]
        features = LandFeatures(near_water=True, road_access=False, utilities=False)

        result = estimator.estimate(5000, comps, features)

        assert factor_names(result) == [
            FACTOR_WATER,
            FACTOR_NO_ROAD,
            FACTOR_NO_UTILITIES,
            FACTOR_LARGE_LAND,
            FACTOR_MARKET_TREND,
        ]

    def test_market_trend_always_last(self, estimator, typical_comps):
        result = estimator.estimate(1000, typical_comps)

        assert factor_names(result) == [FACTOR_MARKET_TREND]
        assert result.adjustment_factors[-1].kind == FactorKind.MARKET

    def test_adjustment_strings(self, estimator, create_comp):
        comps = [create_comp(10, area=1000) for _ in range(4)]
        features = LandFeatures(near_water=True, road_access=False, utilities=False)

        result = estimator.estimate(5000, comps, features)

        assert [f.adjustment for f in result.adjustment_factors] == [
            "+15%", "-30%", "-20%", "-5%", "+3%",
        ]


# =============================================================================
# Test: Sanitisation and Fallback
# =============================================================================

class TestDegradation:

    def test_derives_missing_price_per_sqft(self, estimator):
        comps = [PropertyObservation(id="a", price=20000, area=1000)]

        result = estimator.estimate(1000, comps)

        assert result.base_price_per_sqft == pytest.approx(20)

    def test_invalid_precomputed_value_falls_back_to_ratio(self, estimator):
        comps = [PropertyObservation(id="a", price=20000, area=1000, price_per_sqft=-4)]

        result = estimator.estimate(1000, comps)

        assert result.base_price_per_sqft == pytest.approx(20)

    def test_unusable_comps_discarded(self, estimator, create_comp):
        comps = [
            PropertyObservation(id="no-price", area=1000),
            PropertyObservation(id="zero-area", price=5000, area=0),
            PropertyObservation(id="nan", price_per_sqft=math.nan),
            create_comp(12),
        ]

        result = estimator.estimate(1000, comps)

        assert result.comps_used == 1
        assert result.base_price_per_sqft == pytest.approx(12)

    def test_no_comps_uses_category_fallback(self, estimator):
        result = estimator.estimate(1000, [], category=Category.RESIDENTIAL)

        assert result.fallback_used
        assert result.low_confidence
        assert result.base_price_per_sqft == 15
        assert result.estimated_value == pytest.approx(15000)
        assert factor_names(result) == [FACTOR_FALLBACK]

    @pytest.mark.parametrize("category,ppsf", [
        (Category.COMMERCIAL, 25),
        (Category.INDUSTRIAL, 12),
        (Category.AGRICULTURAL, 4),
        (Category.UNKNOWN, 10),
    ])
    def test_fallback_table(self, estimator, category, ppsf):
        result = estimator.estimate(10_000, None, category=category)

        assert result.base_price_per_sqft == ppsf

    def test_fallback_applies_features_only(self, estimator):
        result = estimator.estimate(
            1000, [], LandFeatures(near_water=True), Category.RESIDENTIAL,
        )

        assert factor_names(result) == [FACTOR_WATER, FACTOR_FALLBACK]
        assert result.estimated_value == pytest.approx(15000 * 1.15)

    def test_placeholder_comparable_triggers_fallback(self, estimator):
        placeholder = PropertyObservation(
            id="placeholder-residential",
            price_per_sqft=15,
            category=Category.RESIDENTIAL,
            is_placeholder=True,
        )

        result = estimator.estimate(1000, [placeholder], category=Category.RESIDENTIAL)

        assert result.fallback_used
        assert result.comps_used == 0

    def test_never_raises_on_junk_comparables(self, estimator):
        result = estimator.estimate(1000, ["junk", None, 42])

        assert result.fallback_used


# =============================================================================
# Test: Clamp, Validation, Determinism
# =============================================================================

class TestBoundaries:

    def test_floor_clamp(self, estimator, create_comp):
        result = estimator.estimate(100, [create_comp(0.5, area=100)])

        assert result.estimated_value == MIN_ESTIMATED_VALUE

    def test_custom_floor(self, create_comp):
        result = ValuationEstimator(min_estimated_value=50_000).estimate(100, [create_comp(10)])

        assert result.estimated_value == 50_000

    @pytest.mark.parametrize("area", [0, -10, math.nan, math.inf, "abc", None, True])
    def test_invalid_area_rejected(self, estimator, create_comp, area):
        with pytest.raises(ValidationError):
            estimator.estimate(area, [create_comp(10)])

    def test_identical_input_identical_output(self, typical_comps):
        features = LandFeatures(near_water=True)

        first = estimate_value(1234, typical_comps, features, Category.RESIDENTIAL)
        second = estimate_value(1234, typical_comps, features, Category.RESIDENTIAL)

        assert first.to_dict() == second.to_dict()

    def test_input_order_does_not_change_base(self, estimator, typical_comps):
        forward = estimator.estimate(1000, typical_comps)
        backward = estimator.estimate(1000, list(reversed(typical_comps)))

        assert forward.base_price_per_sqft == pytest.approx(backward.base_price_per_sqft)


# =============================================================================
# Test: Worked Examples
# =============================================================================

class TestWorkedExamples:

    @pytest.fixture
    def single_comp(self):
        return [PropertyObservation(id="a", price=15000, area=1000)]

    @pytest.fixture
    def four_residential_comps(self):
        return [
            PropertyObservation(id="a", price=50000, area=2500),
            PropertyObservation(id="b", price=60000, area=3000),
            PropertyObservation(id="c", price=45000, area=2200),
            PropertyObservation(id="d", price=55000, area=2600),
        ]

    def test_single_comp_baseline(self, estimator, single_comp):
        result = estimator.estimate(1000, single_comp)

        assert result.estimated_value == pytest.approx(15450)
        assert factor_names(result) == [FACTOR_LIMITED_DATA, FACTOR_MARKET_TREND]

    def test_single_comp_near_water(self, estimator, single_comp):
        result = estimator.estimate(1000, single_comp, LandFeatures(near_water=True))

        assert result.estimated_value == pytest.approx(17767.5)

    def test_four_residential_comps(self, estimator, four_residential_comps):
        features = LandFeatures(near_water=False, road_access=True, utilities=True)

        first = estimator.estimate(2000, four_residential_comps, features, Category.RESIDENTIAL)
        second = estimator.estimate(2000, four_residential_comps, features, Category.RESIDENTIAL)

        # No outliers: mean 20.4021, median 20.2273
        assert first.base_price_per_sqft == pytest.approx(20.34965, abs=1e-5)
        assert first.estimated_value == pytest.approx(41920.28, abs=0.01)
        assert factor_names(first) == [FACTOR_MARKET_TREND]
        assert first.to_dict() == second.to_dict()


class TestFormatAdjustment:

    @pytest.mark.parametrize("multiplier,expected", [
        (1.15, "+15%"),
        (0.7, "-30%"),
        (1.0, "0%"),
        (1.03, "+3%"),
        (0.955, "-4.5%"),
    ])
    def test_percent_strings(self, multiplier, expected):
        assert format_adjustment(multiplier) == expected
