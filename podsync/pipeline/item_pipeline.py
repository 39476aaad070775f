"""
Item pipeline: one item end-to-end.

metadata -> transcript -> summarize -> persist, with a tri-state outcome:
- success: the item is now in the item store
- skipped: durable decision (skip ledger or item store), never retried automatically
- failed: transient error, nothing durable written, retried by the next run
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from podsync.config import Settings, get_settings
from podsync.db import SkipReason, log_event, store
from podsync.errors import CollaboratorTimeoutError
from podsync.ingestion import youtube
from podsync.ingestion.models import ItemMetadata, ItemRef, SourceListing
from podsync.ingestion.urls import canonicalize_item_url
from podsync.logger import log_function
from podsync.transcription.summarize import Summary, summarize

from .models import Outcome


logger = logging.getLogger("pipeline")


@dataclass
class Collaborators:
    """External calls used by the core; tests swap in fakes."""

    list_source_items: Callable[[str, Optional[int]], SourceListing] = youtube.list_source_items
    fetch_item_metadata: Callable[[str], ItemMetadata] = youtube.fetch_item_metadata
    fetch_transcript: Callable[[str], Optional[str]] = youtube.fetch_transcript
    summarize: Callable[[str, str, str], Awaitable[Summary]] = summarize


async def call_blocking(
    func: Callable[..., Any], *args: Any, timeout: float, operation: str
) -> Any:
    """Run a blocking collaborator in a worker thread under a timeout."""
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout)
    except asyncio.TimeoutError:
        raise CollaboratorTimeoutError(operation, timeout) from None


async def call_async(awaitable: Awaitable[Any], *, timeout: float, operation: str) -> Any:
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        raise CollaboratorTimeoutError(operation, timeout) from None


class ItemPipeline:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        collaborators: Optional[Collaborators] = None,
    ):
        self.settings = settings or get_settings()
        self.collaborators = collaborators or Collaborators()

    async def process_url(self, url: str) -> Outcome:
        """
        Ingest a single item given any supported URL form.

        Raises:
            UnsupportedUrlError: If the URL is not a supported video URL.
        """
        item_id, canonical_url = canonicalize_item_url(url)
        return await self.process(ItemRef(item_id=item_id, canonical_url=canonical_url))

    @log_function(logger_name="pipeline", log_execution_time=True)
    async def process(
        self,
        item: ItemRef,
        skip_if_known: bool = True,
        source_id: Optional[str] = None,
    ) -> Outcome:
        """
        Run one item through the pipeline.

        Args:
            item: The item to ingest.
            skip_if_known: Check the item store first. Batch runs pass False
                because the dedup filter already did it in bulk.
            source_id: Channel the item belongs to, when the caller knows it.

        Returns:
            Outcome; unexpected errors are reported as FAILED, never raised.
        """
        title = item.label
        try:
            if skip_if_known and await asyncio.to_thread(store.item_exists, item.canonical_url):
                return Outcome.skipped(title, SkipReason.ALREADY_PROCESSED.value, item.item_id)

            skip_record = await asyncio.to_thread(store.get_skip_record, item.item_id)
            if skip_record is not None:
                return Outcome.skipped(
                    skip_record.title or title, skip_record.reason.value, item.item_id
                )

            metadata = await call_blocking(
                self.collaborators.fetch_item_metadata,
                item.canonical_url,
                timeout=self.settings.metadata_timeout,
                operation="fetch_item_metadata",
            )
            title = metadata.title or title
            owner = source_id or metadata.owner_name

            transcript = await call_blocking(
                self.collaborators.fetch_transcript,
                item.canonical_url,
                timeout=self.settings.transcript_timeout,
                operation="fetch_transcript",
            )
            if not transcript or len(transcript.strip()) < self.settings.min_transcript_length:
                await asyncio.to_thread(
                    store.record_skip,
                    item.item_id,
                    item.canonical_url,
                    SkipReason.NO_TRANSCRIPT,
                    source_id=owner,
                    title=title,
                )
                logger.info(f"No usable transcript for '{title}' ({item.item_id})")
                return Outcome.skipped(title, SkipReason.NO_TRANSCRIPT.value, item.item_id)

            excerpt = transcript[: self.settings.transcript_excerpt_chars]
            summary = await call_async(
                self.collaborators.summarize(title, metadata.owner_name or owner or "", excerpt),
                timeout=self.settings.summarize_timeout,
                operation="summarize",
            )

            stored = await asyncio.to_thread(
                store.insert_item,
                store.NewItem(
                    item_id=item.item_id,
                    canonical_url=item.canonical_url,
                    title=title,
                    transcript=transcript,
                    source_id=owner,
                    owner_name=metadata.owner_name,
                    summary=summary.summary,
                    highlight=summary.highlight,
                    publish_date=metadata.publish_date,
                ),
            )
            if stored is None:
                logger.info(f"'{title}' was stored by another writer meanwhile")
                return Outcome.skipped(title, SkipReason.ALREADY_PROCESSED.value, item.item_id)

            await asyncio.to_thread(
                log_event, "process", f"Ingested {title}", {"itemId": item.item_id, "sourceId": owner}
            )
            return Outcome.success(stored)

        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Failed to process '{title}' ({item.item_id}): {message}")
            await asyncio.to_thread(
                log_event, "error", f"Failed to process {title}", {"itemId": item.item_id, "error": message}
            )
            return Outcome.failed(title, message, item.item_id)
