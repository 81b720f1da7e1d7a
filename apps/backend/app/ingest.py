"""
Ingestion trigger endpoints (scheduler and admin).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.config import IngestSettings
from app.db_config import db_config
from app.job_store import JobStore, StoreError, get_job_store
from app.rate_limit import limiter, RATE_LIMIT_INGEST
from crawler.plugins import UnknownSourceError
from orchestrator import IngestAbortedError, IngestionOrchestrator
from security.admin_auth import ingest_trigger_required

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/ingest", tags=["ingest"])


class IngestRequest(BaseModel):
    sources: Optional[List[str]] = None


class BackfillRequest(BaseModel):
    batchSize: int = Field(25, ge=1, le=200)
    source: Optional[str] = None


class LocationBackfillRequest(BaseModel):
    batchSize: int = Field(100, ge=1, le=500)
    source: Optional[str] = None


class LinkCheckRequest(BaseModel):
    limit: int = Field(200, ge=1, le=1000)


def get_store() -> JobStore:
    """Dependency: the job store, or 503 when no database is configured."""
    if not db_config.is_db_enabled:
        raise HTTPException(status_code=503, detail="Database not configured")
    try:
        return get_job_store()
    except StoreError as e:
        logger.error(f"[ingest] Job store unavailable: {e}")
        raise HTTPException(status_code=503, detail="Database not configured")


def get_settings() -> IngestSettings:
    return IngestSettings.from_env()


def get_ingestion_orchestrator(
    store: JobStore = Depends(get_store),
    settings: IngestSettings = Depends(get_settings),
) -> IngestionOrchestrator:
    return IngestionOrchestrator(store, settings=settings)


def validate_source(orchestrator: IngestionOrchestrator, source: Optional[str]):
    """Raise 400 for a source name without a plugin."""
    if not source:
        return
    try:
        orchestrator.registry.get_plugin(source)
    except UnknownSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))


def check_cooldown(store: JobStore, settings: IngestSettings):
    """Raise 429 when the last completed run is younger than the cooldown."""
    try:
        last_run = store.last_completed_run_at()
    except Exception as e:
        logger.warning(f"[ingest] Could not read last run time, skipping cooldown check: {e}")
        return

    if last_run is None:
        return

    if last_run.tzinfo is None:
        last_run = last_run.replace(tzinfo=timezone.utc)

    elapsed = datetime.now(timezone.utc) - last_run
    cooldown = timedelta(minutes=settings.cooldown_minutes)
    if elapsed < cooldown:
        retry_after = int((cooldown - elapsed).total_seconds()) + 1
        raise HTTPException(
            status_code=429,
            detail=f"Last run finished {int(elapsed.total_seconds())}s ago, retry in {retry_after}s",
            headers={"Retry-After": str(retry_after)},
        )


@router.post("/run")
@limiter.limit(RATE_LIMIT_INGEST)
async def run_ingest(
    request: Request,
    payload: Optional[IngestRequest] = None,
    caller: str = Depends(ingest_trigger_required),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """
    Run ingestion for the requested sources (default: all).

    Returns the run summary; 500 with the summary when no listings were found.
    """
    sources = payload.sources if payload else None

    try:
        orchestrator.registry.resolve_sources(sources)
    except UnknownSourceError as e:
        raise HTTPException(status_code=400, detail=str(e))

    check_cooldown(orchestrator.store, orchestrator.settings)

    logger.info(f"[ingest] Run triggered by {caller} for {sources or 'all sources'}")
    try:
        summary = await orchestrator.run(sources)
    except IngestAbortedError as e:
        logger.error(f"[ingest] Run aborted: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    if not summary.success:
        return JSONResponse(status_code=500, content=summary.to_dict())
    return summary.to_dict()


@router.post("/backfill-fields")
@limiter.limit(RATE_LIMIT_INGEST)
async def backfill_fields(
    request: Request,
    payload: Optional[BackfillRequest] = None,
    caller: str = Depends(ingest_trigger_required),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """Classify pending listings in one batch."""
    payload = payload or BackfillRequest()
    validate_source(orchestrator, payload.source)

    logger.info(f"[ingest] Field backfill triggered by {caller} (batch={payload.batchSize}, source={payload.source})")
    result = await orchestrator.run_field_backfill(payload.batchSize, source=payload.source)
    return {"status": "ok", "data": result}


@router.post("/backfill-locations")
@limiter.limit(RATE_LIMIT_INGEST)
async def backfill_locations(
    request: Request,
    payload: Optional[LocationBackfillRequest] = None,
    caller: str = Depends(ingest_trigger_required),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """Add region labels to stored locations, or derive missing ones."""
    payload = payload or LocationBackfillRequest()
    validate_source(orchestrator, payload.source)

    logger.info(f"[ingest] Location backfill triggered by {caller} (batch={payload.batchSize}, source={payload.source})")
    result = orchestrator.run_location_backfill(payload.batchSize, source=payload.source)
    return {"status": "ok", "data": result}


@router.post("/check-links")
@limiter.limit(RATE_LIMIT_INGEST)
async def check_links(
    request: Request,
    payload: Optional[LinkCheckRequest] = None,
    caller: str = Depends(ingest_trigger_required),
    orchestrator: IngestionOrchestrator = Depends(get_ingestion_orchestrator),
):
    """Check apply URLs of published listings and store their link status."""
    payload = payload or LinkCheckRequest()

    logger.info(f"[ingest] Link check triggered by {caller} (limit={payload.limit})")
    result = await orchestrator.run_link_check(payload.limit)
    return {"status": "ok", "data": result}
