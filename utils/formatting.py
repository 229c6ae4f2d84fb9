"""
Formatting and unit conversion utilities.
"""

import math
from typing import Optional

SQFT_PER_ACRE = 43560.0
SQM_PER_SQFT = 0.092903

# Square feet per unit
_AREA_UNITS = {
    "sqft": 1.0,
    "acres": SQFT_PER_ACRE,
    "sqm": 1.0 / SQM_PER_SQFT,
}


def _is_missing(value: Optional[float]) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def format_price(
    price: Optional[float],
    currency: str = "USD",
    include_cents: bool = False,
) -> str:
    """
    Format a price for display.

    Args:
        price: The amount in whole currency units.
        currency: Currency code (default USD).
        include_cents: Show two decimal places.

    Returns:
        Formatted price string, or "Unknown" for missing values.
    """
    if _is_missing(price):
        return "Unknown"

    symbols = {
        "USD": "$",
        "GBP": "£",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    if include_cents:
        return f"{symbol}{price:,.2f}"
    return f"{symbol}{round(price):,}"


def format_area(area: Optional[float], unit: str = "sqft") -> str:
    """
    Format an area given in square feet.

    Args:
        area: Area in square feet.
        unit: Display unit, "sqft" or "acres".

    Returns:
        Formatted area string, or "Unknown" for missing values.
    """
    if _is_missing(area):
        return "Unknown"

    if unit == "acres":
        return f"{area / SQFT_PER_ACRE:.2f} acres"

    return f"{round(area):,} sq ft"


def convert_area(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert between area units (sqft, acres, sqm).

    Raises:
        ValueError: On an unknown unit.
    """
    if from_unit not in _AREA_UNITS or to_unit not in _AREA_UNITS:
        raise ValueError(f"Invalid unit conversion: {from_unit} -> {to_unit}")

    if from_unit == to_unit:
        return value

    return value * _AREA_UNITS[from_unit] / _AREA_UNITS[to_unit]

