"""
Error taxonomy for the land valuation engine.

Each error carries the HTTP status the web layer maps it to.
Low-confidence results are NOT errors - they are flagged on the
ValuationResult via an AdjustmentFactor.
"""

from __future__ import annotations

from typing import Optional


class LandValuationError(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        return type(self).__name__


class ValidationError(LandValuationError):
    """Malformed or out-of-range input. Always recoverable by the caller."""

    status_code = 400


class NotFoundError(LandValuationError):
    """A requested record or location does not exist."""

    status_code = 404


class NoComparablesError(LandValuationError):
    """
    Every selection stage failed and no placeholder could be synthesized.

    Distinct from the fallback baseline case, which is a successful
    low-confidence result.
    """

    status_code = 404


class InvalidJobTransition(LandValuationError):
    """An import job was moved to a state its current state cannot reach."""

    status_code = 409


class SelectionStageError(LandValuationError):
    """
    A store or geocoder failure during one widening stage.

    Never raised out of the selector: it is recorded on the
    SelectionResult and the stage is treated as empty.
    """

    def __init__(self, stage: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.cause = cause

    def to_dict(self) -> dict:
        return {"stage": self.stage, "message": self.message}
