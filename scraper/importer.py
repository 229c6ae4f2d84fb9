"""
Listing import pipeline.

fetch -> geocode missing coordinates -> normalise -> add to store,
advancing an ImportJob as it goes. Also seeds an empty store on first run.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from core.geocoder import Geocoder
from core.jobs import ImportJob, ImportJobRegistry
from core.store import PropertyStore
from core.valuation.models import GeoPoint
from utils.config import Config

from .base import ListingSource
from .feed import FeedListingSource
from .json_source import DEFAULT_SEED_PATH, JsonFileListingSource
from .normalise import ListingNormaliser, ListingRejected


logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """Counts for one import run."""
    fetched: int = 0
    imported: int = 0
    duplicates: int = 0
    rejected: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "fetched": self.fetched,
            "imported": self.imported,
            "duplicates": self.duplicates,
            "rejected": self.rejected,
        }


def build_listing_source(config: Config) -> ListingSource:
    """The configured HTTP feed, or the bundled seed file when none is set."""
    if config.listing_feed_url:
        return FeedListingSource(config.listing_feed_url, timeout=config.request_timeout)
    return JsonFileListingSource()


# Shared across import jobs so the feed session and its rate limit persist
_listing_source: Optional[ListingSource] = None


def get_listing_source() -> ListingSource:
    """Get the listing source singleton."""
    global _listing_source
    if _listing_source is None:
        _listing_source = build_listing_source(Config.load())
    return _listing_source


def reset_listing_source(source: Optional[ListingSource] = None) -> None:
    """Replace (or clear) the singleton, closing the previous source."""
    global _listing_source
    if _listing_source is not None and _listing_source is not source:
        _listing_source.close()
    _listing_source = source


async def _locate_listing(
    raw: dict[str, Any],
    geocoder: Optional[Geocoder],
) -> dict[str, Any]:
    """
    Geocode a listing address when the listing carries no coordinates.

    Failures leave the listing unchanged; the normaliser then falls back
    to the job's reference point.
    """
    if geocoder is None or ListingNormaliser.extract_point(raw) or not raw.get("address"):
        return raw

    try:
        result = await geocoder.geocode(str(raw["address"]))
    except Exception as e:
        logger.warning("Error geocoding address %s: %s", raw["address"], e)
        return raw

    if result is None:
        return raw

    located = dict(raw)
    located["location"] = {"lat": result.lat, "lng": result.lng}
    for key, value in (("city", result.city), ("state", result.state), ("zipCode", result.zip_code)):
        if not located.get(key):
            located[key] = value
    return located


async def import_listings(
    store: PropertyStore,
    raw_listings: list[dict[str, Any]],
    normaliser: Optional[ListingNormaliser] = None,
    geocoder: Optional[Geocoder] = None,
    fallback_point: Optional[GeoPoint] = None,
    registry: Optional[ImportJobRegistry] = None,
    job_id: Optional[str] = None,
) -> ImportSummary:
    """
    Normalise raw listings and add them to the store.

    Progress is reported on the job (40% -> 100%) when a registry and
    job_id are given.
    """
    normaliser = normaliser or ListingNormaliser()
    summary = ImportSummary(fetched=len(raw_listings))

    for index, raw in enumerate(raw_listings, start=1):
        located = await _locate_listing(raw, geocoder)
        try:
            record = normaliser.normalise(located, fallback_point)
        except ListingRejected as e:
            logger.warning("Rejected listing %s", e)
            summary.rejected += 1
            continue

        if await store.add(record):
            summary.imported += 1
        else:
            summary.duplicates += 1

        if registry is not None and job_id is not None:
            registry.update_progress(
                job_id,
                40 + int(59 * index / len(raw_listings)),
                f"Processed {index} of {len(raw_listings)} listings",
            )

    return summary


async def run_import_job(
    job_id: str,
    registry: ImportJobRegistry,
    store: PropertyStore,
    geocoder: Geocoder,
    source: ListingSource,
) -> ImportJob:
    """
    Background listing import for one job.

    Failures after the job has started are recorded on it as FAILED.

    Raises:
        NotFoundError: If the job is not in the registry
        InvalidJobTransition: If the job is not QUEUED
    """
    job = registry.start(job_id)
    logger.info("Starting import job %s for %s (%d miles)", job_id, job.location, job.radius_miles)

    try:
        reference = await geocoder.geocode(job.location)
        if reference is None:
            return registry.fail(job_id, f"Location not found: {job.location}")

        registry.update_progress(job_id, 10, f"Fetching listings near {reference.formatted_address}")
        raw_listings = await source.fetch_listings(job.location, job.radius_miles)
        registry.update_progress(job_id, 40, f"Fetched {len(raw_listings)} listings")

        summary = await import_listings(
            store,
            raw_listings,
            normaliser=ListingNormaliser(source=source.name),
            geocoder=geocoder,
            fallback_point=reference.point,
            registry=registry,
            job_id=job_id,
        )
    except Exception as e:
        logger.exception("Import job %s failed", job_id)
        return registry.fail(job_id, str(e) or type(e).__name__)

    logger.info("Import job %s finished: %s", job_id, summary.to_dict())
    return registry.complete(job_id, imported=summary.imported, rejected=summary.rejected)


async def seed_store_if_empty(
    store: PropertyStore,
    path: Union[str, Path] = DEFAULT_SEED_PATH,
) -> int:
    """
    Load the seed listings into an empty store.

    Returns:
        Number of records added (0 when the store already had data).
    """
    existing = await store.count()
    if existing > 0:
        logger.info("Store already has %d properties. Skipping seed import.", existing)
        return 0

    raw_listings = JsonFileListingSource(path).load()
    summary = await import_listings(store, raw_listings, ListingNormaliser(source="seed"))
    logger.info(
        "Seeded store with %d properties (%d rejected)",
        summary.imported, summary.rejected,
    )
    return summary.imported
