"""
Utility modules for the valuation service.
"""

from .formatting import format_price, format_area, convert_area
from .config import Config

__all__ = ["format_price", "format_area", "convert_area", "Config"]
