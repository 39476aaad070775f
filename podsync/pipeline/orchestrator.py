"""
Batch orchestrator: one channel/playlist request as a tracked job.

Flow:
    fetching_items  list the source (fatal on failure)
                    resolve the source identity (channel name)
    processing      dedup -> total, optional per-run cap, sequential pipeline
                    calls with a fixed delay between items
    completed       reconcile the source registry when the run caught up

Per-item problems never abort the loop; they are recorded as outcomes.
"""

import asyncio
from typing import Awaitable, Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from podsync.config import Settings, get_settings
from podsync.db import log_event, store
from podsync.ingestion.models import SourceListing
from podsync.jobs import Job, JobRegistry, JobStatus, JobSupervisor
from podsync.logger import log_function, setup_logging

from .dedup import filter_new_items
from .item_pipeline import Collaborators, ItemPipeline, call_blocking
from .models import Outcome, OutcomeStatus


logger = setup_logging(logger_name="orchestrator", log_file="logs/orchestrator.log")


class BatchOrchestrator:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        collaborators: Optional[Collaborators] = None,
        pipeline: Optional[ItemPipeline] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.settings = settings or get_settings()
        self.collaborators = collaborators or Collaborators()
        self.pipeline = pipeline or ItemPipeline(self.settings, self.collaborators)
        self.sleep = sleep

    def launch(
        self,
        registry: JobRegistry,
        supervisor: JobSupervisor,
        source_url: str,
        max_items: Optional[int] = None,
        source_id: Optional[str] = None,
    ) -> Job:
        """Register a job and start it as a supervised background task."""
        job = registry.create(source_url)
        supervisor.submit(job, self.run(job, source_url, max_items=max_items, source_id=source_id))
        return job

    async def resolve_source_identity(self, listing: SourceListing) -> Optional[str]:
        """
        Channel name of a listing.

        Uses the listing's own name, else the owner of the first listed item.
        Returns None when neither is available.
        """
        if listing.source_name:
            return listing.source_name
        if not listing.items:
            return None
        first = listing.items[0]
        try:
            metadata = await call_blocking(
                self.collaborators.fetch_item_metadata,
                first.canonical_url,
                timeout=self.settings.metadata_timeout,
                operation="fetch_item_metadata",
            )
        except Exception as e:
            logger.warning(f"Could not resolve source of {listing.source_url}: {e}")
            return None
        return metadata.owner_name

    @log_function(logger_name="orchestrator", log_args=False, log_execution_time=True)
    async def run(
        self,
        job: Job,
        source_url: str,
        max_items: Optional[int] = None,
        source_id: Optional[str] = None,
        max_process: Optional[int] = None,
    ) -> Job:
        """
        Run a source ingestion job to a terminal state.

        Args:
            job: Job to drive (registered or detached).
            source_url: Channel or playlist URL.
            max_items: Listing cap (newest first).
            source_id: Known channel name; resolved from the listing otherwise.
            max_process: Process at most this many pending items.

        Returns:
            The job, completed or in error.
        """
        job.advance(JobStatus.FETCHING_ITEMS)
        try:
            listing = await call_blocking(
                self.collaborators.list_source_items,
                source_url,
                max_items,
                timeout=self.settings.list_timeout,
                operation="list_source_items",
            )
        except Exception as e:
            message = f"Failed to list items: {e}"
            job.fail(message)
            await asyncio.to_thread(log_event, "error", message, {"jobId": job.id, "sourceUrl": source_url})
            return job

        source_id = source_id or await self.resolve_source_identity(listing)
        if source_id is None:
            logger.warning(f"Job {job.id}: no source identity for {source_url}")
        job.set_source(source_id)

        job.advance(JobStatus.PROCESSING)
        pending = await asyncio.to_thread(filter_new_items, listing.items, source_id)
        job.set_total(len(pending))

        batch = pending if max_process is None else pending[:max_process]
        left_behind = len(pending) - len(batch)
        logger.info(
            f"Job {job.id}: {len(listing.items)} listed, {len(pending)} new, "
            f"{len(batch)} to process now"
        )

        url_learned = False
        for index, item in enumerate(batch):
            if index > 0:
                await self.sleep(self.settings.item_delay_seconds)
            job.begin_item(item.label)
            try:
                outcome = await self.pipeline.process(item, skip_if_known=False, source_id=source_id)
            except Exception as e:
                outcome = Outcome.failed(item.label, str(e) or e.__class__.__name__, item.item_id)
            job.record(outcome)

            if outcome.status == OutcomeStatus.SUCCESS and source_id and not url_learned:
                url_learned = True
                await asyncio.to_thread(self._learn_source_url, source_id, source_url, len(listing.items))

        if source_id and job.visited >= job.total and left_behind == 0:
            await asyncio.to_thread(self._reconcile_source, source_id)

        job.complete()
        await asyncio.to_thread(
            log_event,
            "process",
            f"Job finished for {source_id or source_url}",
            {
                "jobId": job.id,
                "total": job.total,
                "processed": job.processed_count,
                "skipped": job.skipped_count,
                "failed": job.failed_count,
            },
        )
        return job

    def _learn_source_url(self, source_id: str, source_url: str, listed: int) -> None:
        try:
            if store.learn_source_url(source_id, source_url, listed):
                logger.info(f"Learned URL of source {source_id}: {source_url}")
        except SQLAlchemyError as e:
            logger.error(f"Could not store URL of source {source_id}: {e}")

    def _reconcile_source(self, source_id: str) -> None:
        try:
            if not store.refresh_source_count(source_id, store.count_items_for_source(source_id)):
                logger.info(f"Source {source_id} is not registered yet, nothing to reconcile")
        except SQLAlchemyError as e:
            logger.error(f"Could not reconcile source {source_id}: {e}")
            log_event("error", f"Could not reconcile source {source_id}", {"error": str(e)})
