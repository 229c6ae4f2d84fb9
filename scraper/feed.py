"""
HTTP feed listing source.

Fetches raw listings from a JSON endpoint that accepts location and
radius query parameters. Rate-limited with a descriptive User-Agent.
"""

import asyncio
import logging
import time
from typing import List, Optional

import requests

from .base import ListingSource, RawListing


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

USER_AGENT = "LandValuationResearchBot/1.0"
REQUEST_DELAY_SECONDS = 1.5
REQUEST_TIMEOUT_SECONDS = 30


class FeedListingSource(ListingSource):
    """
    Listing source for a JSON listings feed.

    Features:
    - Rate-limited requests (>=1.5s between calls)
    - Custom User-Agent for identification
    - Blocking HTTP kept off the event loop
    """

    name = "feed"

    def __init__(
        self,
        url: str,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._url = url
        self._timeout = timeout
        self._last_request_time: float = 0
        self._session = session or requests.Session()
        self._session.headers.update({
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        })

    def _rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        elapsed = time.time() - self._last_request_time
        if elapsed < REQUEST_DELAY_SECONDS:
            time.sleep(REQUEST_DELAY_SECONDS - elapsed)
        self._last_request_time = time.time()

    def fetch(self, location: str, radius_miles: int) -> List[RawListing]:
        """
        Fetch listings synchronously.

        Raises:
            requests.RequestException: On network errors.
            ValueError: If the payload is not a list of listings.
        """
        self._rate_limit()

        response = self._session.get(
            self._url,
            params={"location": location, "radius": radius_miles},
            timeout=self._timeout,
        )
        response.raise_for_status()

        payload = response.json()
        if isinstance(payload, dict):
            payload = payload.get("properties", payload.get("listings", []))
        if not isinstance(payload, list):
            raise ValueError("Listing feed returned an unexpected payload")

        listings = [item for item in payload if isinstance(item, dict)]
        logger.info("Fetched %d listings from %s", len(listings), self._url)
        return listings

    async def fetch_listings(self, location: str, radius_miles: int) -> List[RawListing]:
        return await asyncio.to_thread(self.fetch, location, radius_miles)

    def close(self) -> None:
        """Close the session."""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
