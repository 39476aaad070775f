"""
Sync checker: does a known source have items we have not ingested?

The decision compares a live listing with what the item store holds:

1. count_gap          live total exceeds the ingested count
2. newer_remote_date  counts agree but the newest live item is newer than the
                      newest ingested one
3. assumed_stale      ingested items carry no publish date and the live
                      source is not empty
4. up_to_date         otherwise

Every check stores the live observations on the source record.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Optional

from podsync.config import Settings, get_settings
from podsync.db import store
from podsync.errors import SourceNotFoundError
from podsync.ingestion.models import ItemRef
from podsync.logger import log_with_timer
from podsync.pipeline.item_pipeline import Collaborators, call_blocking


logger = logging.getLogger("sync")


class SyncReason(str, Enum):
    COUNT_GAP = "count_gap"
    NEWER_REMOTE_DATE = "newer_remote_date"
    ASSUMED_STALE = "assumed_stale"
    UP_TO_DATE = "up_to_date"


@dataclass
class SyncDecision:
    source_id: str
    has_new: bool
    missing_count: int
    latest_remote_date: Optional[date]
    reason: SyncReason
    live_total: int
    ingested_count: int
    recorded_date: Optional[date]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sourceId": self.source_id,
            "hasNew": self.has_new,
            "missingCount": self.missing_count,
            "latestRemoteDate": self.latest_remote_date.isoformat() if self.latest_remote_date else None,
            "reason": self.reason.value,
            "liveTotal": self.live_total,
            "ingestedCount": self.ingested_count,
            "recordedDate": self.recorded_date.isoformat() if self.recorded_date else None,
        }


def decide_sync(
    live_total: int,
    ingested_count: int,
    recorded_date: Optional[date],
    latest_remote_date: Optional[date],
) -> tuple[bool, int, SyncReason]:
    """Return (has_new, missing_count, reason) for the observed numbers."""
    missing = max(live_total - ingested_count, 0)
    if missing > 0:
        return True, missing, SyncReason.COUNT_GAP
    if recorded_date is not None and latest_remote_date is not None:
        if latest_remote_date > recorded_date:
            return True, 0, SyncReason.NEWER_REMOTE_DATE
        return False, 0, SyncReason.UP_TO_DATE
    if ingested_count > 0 and recorded_date is None and live_total > 0:
        return True, 0, SyncReason.ASSUMED_STALE
    return False, 0, SyncReason.UP_TO_DATE


class SyncChecker:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        collaborators: Optional[Collaborators] = None,
    ):
        self.settings = settings or get_settings()
        self.collaborators = collaborators or Collaborators()

    @log_with_timer(logger_name="sync")
    async def needs_sync(self, source_id: str) -> SyncDecision:
        """
        Compare a source's live listing with the item store.

        Raises:
            SourceNotFoundError: Unknown source, or no URL to list it from.
        """
        source = await asyncio.to_thread(store.get_source, source_id)
        if source is None or not source.source_url:
            raise SourceNotFoundError(f"Source not found or has no URL: {source_id}")

        listing = await call_blocking(
            self.collaborators.list_source_items,
            source.source_url,
            None,
            timeout=self.settings.list_timeout,
            operation="list_source_items",
        )
        live_total = len(listing.items)

        latest_remote_date = await self._latest_remote_date(source_id, listing.items)

        ingested_count = await asyncio.to_thread(store.count_items_for_source, source_id)
        recorded_date = await asyncio.to_thread(store.newest_publish_date_for_source, source_id)
        has_new, missing, reason = decide_sync(
            live_total, ingested_count, recorded_date, latest_remote_date
        )

        await asyncio.to_thread(store.record_scan, source_id, live_total, latest_remote_date)

        logger.info(
            f"Sync check {source_id}: live={live_total} ingested={ingested_count} "
            f"-> {reason.value} (missing {missing})"
        )
        return SyncDecision(
            source_id=source_id,
            has_new=has_new,
            missing_count=missing,
            latest_remote_date=latest_remote_date,
            reason=reason,
            live_total=live_total,
            ingested_count=ingested_count,
            recorded_date=recorded_date,
        )

    async def _latest_remote_date(self, source_id: str, items: list[ItemRef]) -> Optional[date]:
        """
        Newest publish date among the first few listed items.

        Playlists are ordered by position, not date. Items whose metadata
        can't be read are ignored; None when no date was found.
        """
        dates = []
        for item in items[: self.settings.sync_date_window]:
            try:
                metadata = await call_blocking(
                    self.collaborators.fetch_item_metadata,
                    item.canonical_url,
                    timeout=self.settings.metadata_timeout,
                    operation="fetch_item_metadata",
                )
            except Exception as e:
                logger.warning(f"No publish date for {item.item_id} of {source_id}: {e}")
                continue
            if metadata.publish_date is not None:
                dates.append(metadata.publish_date)
        return max(dates, default=None)
