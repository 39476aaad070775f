"""
Scheduled sweep over every known source.

For each source with a URL: run the sync checker and, when it reports new
items, orchestrate a detached job over the newest few items with a per-source
processing cap. A failing source is recorded in the report and the sweep moves
on. Afterwards a bounded number of items without a summary are enriched.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from podsync.config import Settings, get_settings
from podsync.db import log_event, store
from podsync.jobs import Job
from podsync.logger import log_function
from podsync.pipeline.item_pipeline import Collaborators, call_async
from podsync.pipeline.orchestrator import BatchOrchestrator

from .checker import SyncChecker


logger = logging.getLogger("sweep")


@dataclass
class SweepReport:
    sources_checked: int = 0
    new_items_found: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    enriched: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourcesChecked": self.sources_checked,
            "newItemsFound": self.new_items_found,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "enriched": self.enriched,
            "errors": list(self.errors),
        }


class ScheduledSweep:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        collaborators: Optional[Collaborators] = None,
        orchestrator: Optional[BatchOrchestrator] = None,
        checker: Optional[SyncChecker] = None,
    ):
        self.settings = settings or get_settings()
        self.collaborators = collaborators or Collaborators()
        self.orchestrator = orchestrator or BatchOrchestrator(self.settings, self.collaborators)
        self.checker = checker or SyncChecker(self.settings, self.collaborators)

    @log_function(logger_name="sweep", log_execution_time=True)
    async def run(self) -> SweepReport:
        report = SweepReport()
        sources = await asyncio.to_thread(store.list_sources, with_url_only=True)
        logger.info(f"Sweep started over {len(sources)} sources")

        for source in sources:
            report.sources_checked += 1
            try:
                await self._sweep_source(source.source_id, source.source_url, report)
            except Exception as e:
                message = f"{source.source_id}: {e}"
                logger.error(f"Sweep failed for {message}")
                report.errors.append(message)

        report.enriched = await self.enrich_missing_summaries(self.settings.sweep_enrich_limit)

        await asyncio.to_thread(
            log_event,
            "cron",
            f"Sweep checked {report.sources_checked} sources, processed {report.processed}",
            report.to_dict(),
        )
        return report

    async def _sweep_source(self, source_id: str, source_url: str, report: SweepReport) -> None:
        decision = await self.checker.needs_sync(source_id)
        if not decision.has_new:
            return

        job = Job.detached(source_url, results_limit=self.settings.job_results_limit)
        try:
            await self.orchestrator.run(
                job,
                source_url,
                max_items=self.settings.sweep_recent_window,
                source_id=source_id,
                max_process=self.settings.sweep_max_items_per_source,
            )
        finally:
            if not job.is_terminal:
                job.fail("Sweep run did not finish")

        if job.error:
            report.errors.append(f"{source_id}: {job.error}")
        report.new_items_found += job.total or 0
        report.processed += job.processed_count
        report.skipped += job.skipped_count
        report.failed += job.failed_count

    async def enrich_missing_summaries(self, limit: int) -> int:
        """Summarize up to `limit` stored items that have no summary yet."""
        if limit <= 0:
            return 0
        enriched = 0
        for item in await asyncio.to_thread(store.list_items_missing_summary, limit):
            excerpt = (item.transcript or "")[: self.settings.transcript_excerpt_chars]
            try:
                summary = await call_async(
                    self.collaborators.summarize(item.title, item.owner_name or "", excerpt),
                    timeout=self.settings.summarize_timeout,
                    operation="summarize",
                )
            except Exception as e:
                logger.warning(f"Could not summarize item {item.id} '{item.title}': {e}")
                continue
            await asyncio.to_thread(store.update_item_summary, item.id, summary.summary, summary.highlight)
            enriched += 1
        if enriched:
            logger.info(f"Enriched {enriched} items with a summary")
        return enriched
