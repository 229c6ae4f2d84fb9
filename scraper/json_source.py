"""
JSON file listing source.

Reads raw listings from a local JSON file: either a bare list or an
object with a "properties" list. Used for seed data and offline imports.
"""

import json
import logging
from pathlib import Path
from typing import List, Union

from .base import ListingSource, RawListing


logger = logging.getLogger(__name__)


DEFAULT_SEED_PATH = Path(__file__).parent / "data" / "seed_properties.json"


class JsonFileListingSource(ListingSource):
    """Listing source backed by a JSON file on disk."""

    name = "json_file"

    def __init__(self, path: Union[str, Path] = DEFAULT_SEED_PATH):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> List[RawListing]:
        """
        Read every listing in the file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a list of listing objects
        """
        data = json.loads(self._path.read_text())
        if isinstance(data, dict):
            data = data.get("properties", [])
        if not isinstance(data, list):
            raise ValueError(f"{self._path}: expected a list of listings")

        listings = [item for item in data if isinstance(item, dict)]
        skipped = len(data) - len(listings)
        if skipped:
            logger.warning("Skipped %d non-object entries in %s", skipped, self._path)
        return listings

    async def fetch_listings(self, location: str, radius_miles: int) -> List[RawListing]:
        # The file is not spatially indexed; the import job filters nothing out
        return self.load()
