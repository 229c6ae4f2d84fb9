"""
Tests for request validation.
"""

import math
import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ValidationError
from core.validation import (
    parse_category,
    parse_features,
    parse_valuation_request,
    validate_area,
    validate_coordinates,
)
from core.valuation import Category, GeoPoint, LandFeatures


@pytest.fixture
def payload():
    return {
        "lat": 36.8,
        "lng": 10.18,
        "area": 43560,
        "category": "agricultural",
        "features": {"nearWater": True},
    }


class TestCoordinates:

    def test_valid(self):
        assert validate_coordinates("36.8", 10.18) == GeoPoint(36.8, 10.18)

    def test_bounds_inclusive(self):
        assert validate_coordinates(-90, 180) == GeoPoint(-90, 180)

    @pytest.mark.parametrize("lat,lng", [(91, 0), (0, -181), (None, 0), ("x", 0), (math.nan, 0), (True, 0)])
    def test_invalid(self, lat, lng):
        with pytest.raises(ValidationError):
            validate_coordinates(lat, lng)


class TestArea:

    def test_valid(self):
        assert validate_area("1000") == 1000.0

    @pytest.mark.parametrize("area", [0, -1, None, "", "big", math.inf])
    def test_invalid(self, area):
        with pytest.raises(ValidationError):
            validate_area(area)


class TestCategory:

    def test_case_insensitive(self):
        assert parse_category(" Commercial ") is Category.COMMERCIAL

    def test_unknown_rejected_for_requests(self):
        with pytest.raises(ValidationError, match="Invalid category"):
            parse_category("unknown")

    def test_unknown_allowed_when_asked(self):
        assert parse_category("unknown", allow_unknown=True) is Category.UNKNOWN

    @pytest.mark.parametrize("value", ["castle", 3, None])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_category(value)


class TestFeatures:

    def test_none_is_default(self):
        assert parse_features(None) == LandFeatures()

    def test_partial_object(self):
        assert parse_features({"roadAccess": False}) == LandFeatures(road_access=False)

    @pytest.mark.parametrize("value", ["water", [True], 1])
    def test_non_object_rejected(self, value):
        with pytest.raises(ValidationError, match="features must be an object"):
            parse_features(value)

    def test_non_boolean_rejected(self):
        with pytest.raises(ValidationError, match="features.nearWater"):
            parse_features({"nearWater": "yes"})


class TestValuationRequest:

    def test_full_payload(self, payload):
        request = parse_valuation_request(payload)

        assert request.area == 43560
        assert request.category is Category.AGRICULTURAL
        assert request.features.near_water
        assert request.point == GeoPoint(36.8, 10.18)

    def test_zoning_alias(self, payload):
        del payload["category"]
        payload["zoning"] = "industrial"

        assert parse_valuation_request(payload).category is Category.INDUSTRIAL

    def test_category_defaults_to_residential(self, payload):
        del payload["category"]

        assert parse_valuation_request(payload).category is Category.RESIDENTIAL

    def test_non_object_body(self):
        with pytest.raises(ValidationError):
            parse_valuation_request(["not", "an", "object"])

    def test_first_invalid_field_reported(self, payload):
        payload["lat"] = 200
        payload["area"] = -1

        with pytest.raises(ValidationError, match="lat"):
            parse_valuation_request(payload)
