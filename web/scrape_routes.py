"""
Scrape Routes - Background listing imports

POST /api/scrape/listings queues an import job and returns at once;
GET /api/scrape/status/{job_id} reports its progress.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, Field

from core.errors import ValidationError
from core.geocoder import Geocoder, get_geocoder
from core.jobs import ImportJobRegistry, get_job_registry
from core.store import PropertyStore, get_property_store
from scraper import ListingSource, get_listing_source, run_import_job


# =============================================================================
# Router Setup
# =============================================================================

router = APIRouter(prefix="/api/scrape", tags=["scrape"])


# =============================================================================
# Request Models
# =============================================================================


class ScrapeRequest(BaseModel):
    """Request body for a listing import."""
    location: str
    radius: int = Field(30, ge=1, le=100, description="Radius in miles")


# =============================================================================
# Jobs
# =============================================================================


@router.post("/listings")
async def start_listing_import(
    body: ScrapeRequest,
    background_tasks: BackgroundTasks,
    registry: ImportJobRegistry = Depends(get_job_registry),
    store: PropertyStore = Depends(get_property_store),
    geocoder: Geocoder = Depends(get_geocoder),
    source: ListingSource = Depends(get_listing_source),
):
    """Queue a background import of listings around a location."""
    location = body.location.strip()
    if not location:
        raise ValidationError("Location is required")

    registry.prune()
    job = registry.create(location, body.radius)
    background_tasks.add_task(run_import_job, job.job_id, registry, store, geocoder, source)

    return {
        "success": True,
        "message": "Scraping initiated",
        "jobId": job.job_id,
        "estimatedCompletionTime": job.estimated_completion_at.isoformat(),
        "statusEndpoint": f"/api/scrape/status/{job.job_id}",
    }


@router.get("/status/{job_id}")
async def import_status(
    job_id: str,
    registry: ImportJobRegistry = Depends(get_job_registry),
):
    """Current state of an import job."""
    job = registry.get(job_id)
    if job is None:
        return {
            "success": True,
            "jobId": job_id,
            "status": "unknown",
            "message": "Job not found or completed",
        }
    return {"success": True, **job.to_dict()}
