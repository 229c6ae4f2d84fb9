"""
Import Job Registry

Tracks background listing-import jobs as an explicit keyed store with
defined transitions:

    queued -> running -> completed
                      -> failed

Any other transition raises InvalidJobTransition.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional

from core.errors import InvalidJobTransition, NotFoundError


# Estimated duration reported to clients when a job is queued
ESTIMATED_JOB_DURATION = timedelta(minutes=5)

# Finished jobs older than this are dropped by prune()
JOB_RETENTION = timedelta(hours=1)


class JobStatus(Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


ALLOWED_TRANSITIONS: dict[JobStatus, tuple[JobStatus, ...]] = {
    JobStatus.QUEUED: (JobStatus.RUNNING, JobStatus.FAILED),
    JobStatus.RUNNING: (JobStatus.COMPLETED, JobStatus.FAILED),
    JobStatus.COMPLETED: (),
    JobStatus.FAILED: (),
}


@dataclass
class ImportJob:
    """State of one listing-import job."""
    job_id: str
    location: str
    radius_miles: int
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    message: str = "Job queued, waiting to start"
    started_at: Optional[datetime] = None
    estimated_completion_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Outcome counters
    imported: int = 0
    rejected: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
            "location": self.location,
            "radius": self.radius_miles,
            "startTime": self.started_at.isoformat() if self.started_at else None,
            "estimatedCompletionTime": (
                self.estimated_completion_at.isoformat()
                if self.estimated_completion_at else None
            ),
            "completionTime": self.completed_at.isoformat() if self.completed_at else None,
            "imported": self.imported,
            "rejected": self.rejected,
        }


class ImportJobRegistry:
    """
    Keyed store of import jobs.

    Updates are guarded by a lock: jobs are advanced from background
    tasks while status requests read them.
    """

    def __init__(self):
        self._jobs: dict[str, ImportJob] = {}
        self._lock = threading.Lock()

    def create(self, location: str, radius_miles: int, now: Optional[datetime] = None) -> ImportJob:
        now = now or datetime.utcnow()
        job = ImportJob(
            job_id=f"job_{uuid.uuid4().hex[:12]}",
            location=location,
            radius_miles=radius_miles,
            started_at=now,
            estimated_completion_at=now + ESTIMATED_JOB_DURATION,
        )
        with self._lock:
            self._jobs[job.job_id] = job
        return job

    def get(self, job_id: str) -> Optional[ImportJob]:
        return self._jobs.get(job_id)

    def _require(self, job_id: str) -> ImportJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Job not found: {job_id}")
        return job

    def _transition(self, job_id: str, target: JobStatus) -> ImportJob:
        job = self._require(job_id)
        if target not in ALLOWED_TRANSITIONS[job.status]:
            raise InvalidJobTransition(
                f"Job {job_id} cannot move from {job.status.value} to {target.value}"
            )
        job.status = target
        return job

    def start(self, job_id: str) -> ImportJob:
        with self._lock:
            job = self._transition(job_id, JobStatus.RUNNING)
            job.message = "Import in progress"
            return job

    def update_progress(self, job_id: str, progress: int, message: str) -> ImportJob:
        with self._lock:
            job = self._require(job_id)
            if job.status is not JobStatus.RUNNING:
                raise InvalidJobTransition(
                    f"Job {job_id} is {job.status.value}; progress applies to running jobs only"
                )
            job.progress = max(job.progress, min(100, int(progress)))
            job.message = message
            return job

    def complete(
        self,
        job_id: str,
        imported: int,
        rejected: int,
        now: Optional[datetime] = None,
    ) -> ImportJob:
        with self._lock:
            job = self._transition(job_id, JobStatus.COMPLETED)
            job.progress = 100
            job.imported = imported
            job.rejected = rejected
            job.message = f"Import completed: {imported} imported, {rejected} rejected"
            job.completed_at = now or datetime.utcnow()
            return job

    def fail(self, job_id: str, error: str, now: Optional[datetime] = None) -> ImportJob:
        with self._lock:
            job = self._transition(job_id, JobStatus.FAILED)
            job.progress = 100
            job.message = f"Import failed: {error}"
            job.completed_at = now or datetime.utcnow()
            return job

    def prune(self, now: Optional[datetime] = None, max_age: timedelta = JOB_RETENTION) -> int:
        """Drop finished jobs older than max_age. Returns how many were removed."""
        now = now or datetime.utcnow()
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.status.is_terminal
                and job.completed_at is not None
                and now - job.completed_at > max_age
            ]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)


# Singleton instance for the application
_job_registry: Optional[ImportJobRegistry] = None


def get_job_registry() -> ImportJobRegistry:
    """Get the import job registry singleton."""
    global _job_registry
    if _job_registry is None:
        _job_registry = ImportJobRegistry()
    return _job_registry


def reset_job_registry() -> None:
    """Clear the singleton. Used by tests."""
    global _job_registry
    _job_registry = None
