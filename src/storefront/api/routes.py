"""FastAPI routes for triggering expiry cleanup by hand."""

import structlog
from fastapi import APIRouter, HTTPException

from storefront.api.schemas import (
    CleanupReportResponse,
    CleanupRequest,
    CleanupStatsResponse,
    StageReportResponse,
)
from storefront.cleanup.orchestrator import CleanupOrchestrator

logger = structlog.get_logger(__name__)

maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


def get_orchestrator() -> CleanupOrchestrator:
    return CleanupOrchestrator.from_settings()


@maintenance_router.post("/cleanup", response_model=CleanupReportResponse)
async def run_cleanup(body: CleanupRequest | None = None) -> CleanupReportResponse:
    as_of = body.as_of if body else None
    report = get_orchestrator().run_cleanup(as_of)
    return CleanupReportResponse(**report.to_dict())


@maintenance_router.get("/cleanup/stats", response_model=CleanupStatsResponse)
async def cleanup_stats() -> CleanupStatsResponse:
    return CleanupStatsResponse(**get_orchestrator().get_cleanup_stats())


@maintenance_router.post("/cleanup/{stage}", response_model=StageReportResponse)
async def run_cleanup_stage(stage: str, body: CleanupRequest | None = None) -> StageReportResponse:
    stages = dict(get_orchestrator().stages())
    if stage not in stages:
        raise HTTPException(status_code=404, detail=f"Unknown cleanup stage: {stage}")

    as_of = body.as_of if body else None
    try:
        report = stages[stage](as_of)
    except Exception as e:
        logger.error("Cleanup stage failed", stage=stage, error=str(e))
        raise HTTPException(status_code=500, detail=f"Cleanup stage {stage} failed: {e}") from e
    return StageReportResponse(**report.to_dict())
