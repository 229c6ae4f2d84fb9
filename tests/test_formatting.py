"""
Tests for formatting and unit conversion utilities.
"""

import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils import convert_area, format_area, format_price


class TestFormatPrice:

    def test_default_usd(self):
        assert format_price(159000) == "$159,000"

    def test_cents(self):
        assert format_price(1234.5, include_cents=True) == "$1,234.50"

    def test_other_currency(self):
        assert format_price(150000, currency="TND") == "TND 150,000"

    @pytest.mark.parametrize("value", [None, float("nan")])
    def test_missing(self, value):
        assert format_price(value) == "Unknown"


class TestFormatArea:

    def test_sqft(self):
        assert format_area(10000) == "10,000 sq ft"

    def test_acres(self):
        assert format_area(108900, unit="acres") == "2.50 acres"

    def test_missing(self):
        assert format_area(None) == "Unknown"


class TestConvertArea:

    def test_acres_to_sqft(self):
        assert convert_area(1, "acres", "sqft") == 43560

    def test_sqm_to_sqft(self):
        assert convert_area(0.092903, "sqm", "sqft") == pytest.approx(1)

    def test_same_unit(self):
        assert convert_area(5, "sqm", "sqm") == 5

    def test_unknown_unit(self):
        with pytest.raises(ValueError):
            convert_area(1, "hectares", "sqft")

