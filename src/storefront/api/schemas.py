"""Pydantic schemas for the maintenance API."""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CleanupRequest(BaseModel):
    as_of: datetime | None = None  # Optional: defaults to now


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StageReportResponse(BaseModel):
    stage: str
    scanned: int = 0
    expired: int = 0
    succeeded: int = 0
    failed: int = 0
    release_failures: int = 0
    error: str | None = None
    duration_ms: float = 0.0
    has_errors: bool = False


class CleanupReportResponse(BaseModel):
    run_id: str
    started_at: datetime
    finished_at: datetime | None = None
    has_errors: bool
    stages: list[StageReportResponse]


class CleanupStatsResponse(BaseModel):
    expired_reservations: int
    expired_carts: int
    pending_orders: int
    expired_orders: int
    expired_payments: int
