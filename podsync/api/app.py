"""
FastAPI application exposing the ingestion engine.

Source ingestion returns a job ID immediately (202); the job runs as a
supervised background task and is polled through GET /jobs/{job_id}.
Single-item ingestion runs the pipeline inside the request.

Run with:
    uvicorn podsync.api.app:app --port 8000
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from podsync.config import Settings, get_settings
from podsync.db import (
    Item,
    SourceRecord,
    check_database_connection,
    configure_database,
    init_database,
    list_events,
    log_event,
    store,
)
from podsync.db.events import EVENT_KINDS
from podsync.errors import SourceNotFoundError, UnsupportedUrlError
from podsync.ingestion.urls import canonicalize_item_url, normalize_source_url
from podsync.jobs import JobRegistry, JobSupervisor
from podsync.logger import setup_logging
from podsync.pipeline import Collaborators, ItemPipeline
from podsync.pipeline.orchestrator import BatchOrchestrator
from podsync.sync import ScheduledSweep, SyncChecker


logger = setup_logging(logger_name="api", log_file="logs/api.log")


class IngestSourceRequest(BaseModel):
    sourceUrl: str
    maxItems: Optional[int] = Field(default=None, ge=1)


class IngestItemRequest(BaseModel):
    url: str


class IngestMissingRequest(BaseModel):
    maxItems: Optional[int] = Field(default=None, ge=1)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_item(item: Item, with_transcript: bool = False) -> dict[str, Any]:
    data = {
        "id": item.id,
        "itemId": item.item_id,
        "sourceId": item.source_id,
        "url": item.canonical_url,
        "title": item.title,
        "ownerName": item.owner_name,
        "summary": item.summary,
        "highlight": item.highlight,
        "publishDate": _iso(item.publish_date),
        "ingestedAt": _iso(item.ingested_at),
        "summarizedAt": _iso(item.summarized_at),
    }
    if with_transcript:
        data["transcript"] = item.transcript
    return data


def serialize_source(source: SourceRecord) -> dict[str, Any]:
    ingested = store.count_items_for_source(source.source_id)
    return {
        "sourceId": source.source_id,
        "sourceUrl": source.source_url,
        "itemsIngested": ingested,
        "totalKnownItems": source.total_known_items,
        "missing": max(source.total_known_items - ingested, 0),
        "skipped": store.count_skipped_for_source(source.source_id),
        "newestKnownPublishDate": _iso(source.newest_known_publish_date),
        "lastScannedAt": _iso(source.last_scanned_at),
    }


async def run_sweep_periodically(sweep: ScheduledSweep, minutes: int) -> None:
    while True:
        await asyncio.sleep(minutes * 60)
        try:
            await sweep.run()
        except Exception as e:
            logger.error(f"Interval sweep failed: {e}", exc_info=True)


def create_app(
    settings: Optional[Settings] = None,
    collaborators: Optional[Collaborators] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration (process-wide settings when None).
        collaborators: External calls (yt-dlp and OpenAI when None).
    """
    settings = settings or get_settings()
    collaborators = collaborators or Collaborators()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_database(settings.database_url)
        init_database()
        interval_task = None
        if settings.sweep_interval_minutes > 0:
            logger.info(f"Sweeping sources every {settings.sweep_interval_minutes} minutes")
            interval_task = asyncio.create_task(
                run_sweep_periodically(app.state.sweep, settings.sweep_interval_minutes)
            )
        yield
        if interval_task is not None:
            interval_task.cancel()
        await app.state.supervisor.shutdown()

    app = FastAPI(
        title="podsync",
        description="Bulk ingestion and incremental sync of YouTube channels",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.registry = JobRegistry(
        capacity=settings.job_capacity,
        ttl_seconds=settings.job_ttl_seconds,
        results_limit=settings.job_results_limit,
    )
    app.state.supervisor = JobSupervisor()
    app.state.pipeline = ItemPipeline(settings, collaborators)
    app.state.orchestrator = BatchOrchestrator(settings, collaborators, pipeline=app.state.pipeline)
    app.state.checker = SyncChecker(settings, collaborators)
    app.state.sweep = ScheduledSweep(
        settings, collaborators, orchestrator=app.state.orchestrator, checker=app.state.checker
    )

    @app.exception_handler(UnsupportedUrlError)
    async def unsupported_url_handler(request: Request, exc: UnsupportedUrlError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(SourceNotFoundError)
    async def source_not_found_handler(request: Request, exc: SourceNotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "database": await asyncio.to_thread(check_database_connection),
            "runningJobs": app.state.supervisor.running,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.post("/ingest-source", status_code=202)
    async def ingest_source(request: IngestSourceRequest):
        """Start a background job ingesting a channel or playlist."""
        normalize_source_url(request.sourceUrl)
        job = app.state.orchestrator.launch(
            app.state.registry,
            app.state.supervisor,
            request.sourceUrl,
            max_items=request.maxItems or settings.default_max_items,
        )
        return {"jobId": job.id}

    @app.post("/ingest-item")
    async def ingest_item(request: IngestItemRequest):
        """Ingest one video and wait for the outcome."""
        outcome = await app.state.pipeline.process_url(request.url)
        return {**outcome.to_result(), "itemId": outcome.item_id}

    @app.get("/jobs/{job_id}")
    async def get_job(job_id: str):
        job = app.state.registry.get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found")
        return job.to_status()

    @app.api_route("/sweep", methods=["GET", "POST"])
    async def sweep(secret: Optional[str] = None):
        """Run the scheduled sweep now (external cron trigger)."""
        if not settings.cron_secret or secret != settings.cron_secret:
            raise HTTPException(status_code=401, detail="Unauthorized")
        report = await app.state.sweep.run()
        return report.to_dict()

    @app.get("/check")
    async def check(url: str):
        """Is this video already ingested?"""
        _, canonical_url = canonicalize_item_url(url)
        item = await asyncio.to_thread(store.get_item_by_url, canonical_url)
        if item is None:
            return {"exists": False}
        return {"exists": True, "item": serialize_item(item)}

    @app.get("/items")
    async def items(
        limit: int = Query(default=50, ge=1, le=500),
        offset: int = Query(default=0, ge=0),
        sourceId: Optional[str] = None,
    ):
        rows = await asyncio.to_thread(store.list_items, limit=limit, offset=offset, source_id=sourceId)
        return {"items": [serialize_item(item) for item in rows]}

    @app.get("/items/{item_pk}")
    async def item_detail(item_pk: int):
        item = await asyncio.to_thread(store.get_item, item_pk)
        if item is None:
            raise HTTPException(status_code=404, detail="Item not found")
        return serialize_item(item, with_transcript=True)

    @app.get("/search")
    async def search(
        q: str = Query(min_length=1),
        limit: int = Query(default=20, ge=1, le=100),
    ):
        """Substring search over ingested titles, summaries and transcripts."""
        if not q.strip():
            raise HTTPException(status_code=400, detail="Empty search query")
        rows = await asyncio.to_thread(store.search_items, q, limit)
        return {"query": q, "items": [serialize_item(item) for item in rows]}

    @app.get("/indexed-stats")
    async def indexed_stats():
        stats = await asyncio.to_thread(store.indexed_stats)
        return {
            "totalItems": stats["total_items"],
            "sources": [
                {
                    "sourceId": row["source_id"],
                    "itemsIngested": row["items"],
                    "totalKnownItems": row["total_known_items"],
                    "lastScannedAt": _iso(row["last_scanned_at"]),
                }
                for row in stats["sources"]
            ],
        }

    @app.get("/sources")
    async def sources():
        def overview():
            return [serialize_source(source) for source in store.list_sources()]

        return {"sources": await asyncio.to_thread(overview)}

    @app.post("/sources/{source_id}/refresh")
    async def refresh_source(source_id: str):
        """Refresh the live item count of a source."""
        decision = await app.state.checker.needs_sync(source_id)
        return decision.to_dict()

    @app.post("/sources/{source_id}/ingest-missing", status_code=202)
    async def ingest_missing(source_id: str, request: Optional[IngestMissingRequest] = None):
        """Start a job over a known source's stored URL."""
        source = await asyncio.to_thread(store.get_source, source_id)
        if source is None or not source.source_url:
            raise SourceNotFoundError(f"Source not found or has no URL: {source_id}")
        max_items = (request.maxItems if request else None) or settings.default_max_items
        job = app.state.orchestrator.launch(
            app.state.registry,
            app.state.supervisor,
            source.source_url,
            max_items=max_items,
            source_id=source_id,
        )
        return {"jobId": job.id}

    @app.delete("/sources/{source_id}/skipped")
    async def clear_skipped(source_id: str):
        """Forget every skip decision of a source so its items are retried."""
        deleted = await asyncio.to_thread(store.clear_skips_for_source, source_id)
        await asyncio.to_thread(
            log_event, "info", f"Cleared {deleted} skipped items of {source_id}", {"sourceId": source_id}
        )
        return {"sourceId": source_id, "deleted": deleted}

    @app.get("/logs")
    async def logs(
        type: Optional[str] = None,
        limit: int = Query(default=100, ge=1, le=1000),
    ):
        if type is not None and type not in EVENT_KINDS:
            raise HTTPException(status_code=400, detail=f"Unknown log type: {type}")
        return {
            "logs": [
                {
                    "id": event.id,
                    "type": event.kind,
                    "message": event.message,
                    "details": event.details,
                    "createdAt": _iso(event.created_at),
                }
                for event in await asyncio.to_thread(list_events, limit=limit, kind=type)
            ]
        }

    return app


app = create_app()
