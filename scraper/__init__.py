"""
Scraper module for importing property listings.

Available sources:
- JsonFileListingSource: Raw listings from a local JSON file (seed data)
- FeedListingSource: Raw listings from a JSON HTTP feed
"""

from .base import ListingSource
from .json_source import JsonFileListingSource, DEFAULT_SEED_PATH
from .feed import FeedListingSource
from .normalise import ListingNormaliser, ListingRejected
from .importer import (
    ImportSummary,
    build_listing_source,
    get_listing_source,
    import_listings,
    reset_listing_source,
    run_import_job,
    seed_store_if_empty,
)

__all__ = [
    "ListingSource",
    "JsonFileListingSource",
    "DEFAULT_SEED_PATH",
    "FeedListingSource",
    "ListingNormaliser",
    "ListingRejected",
    "ImportSummary",
    "build_listing_source",
    "get_listing_source",
    "import_listings",
    "reset_listing_source",
    "run_import_job",
    "seed_store_if_empty",
]
