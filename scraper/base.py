"""
Base listing source interface.
"""

from abc import ABC, abstractmethod
from typing import Any, List


# Raw listings are plain dicts until ListingNormaliser has seen them
RawListing = dict[str, Any]


class ListingSource(ABC):
    """Abstract base class for raw listing sources."""

    name: str = "unknown"

    @abstractmethod
    async def fetch_listings(self, location: str, radius_miles: int) -> List[RawListing]:
        """
        Fetch raw listings around a location.

        Args:
            location: Free-text location the import was requested for
            radius_miles: Search radius in miles

        Returns:
            List of raw listing dicts, not yet normalised.
        """
        pass

    def close(self) -> None:
        """Release any held resources."""
