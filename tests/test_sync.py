"""Tests for the sync checker heuristic and the scheduled sweep."""

import asyncio
from datetime import date

import pytest

from conftest import seed_item, seed_skip

from podsync.db import list_events, store
from podsync.errors import SourceNotFoundError
from podsync.ingestion.models import ItemMetadata
from podsync.sync import ScheduledSweep, SyncChecker, SyncReason, decide_sync


SOURCE_URL = "https://www.youtube.com/@testchannel"
OTHER_URL = "https://www.youtube.com/@other"


class TestDecideSync:
    def test_count_gap(self):
        assert decide_sync(120, 100, None, None) == (True, 20, SyncReason.COUNT_GAP)

    def test_newer_remote_date_with_equal_counts(self):
        has_new, missing, reason = decide_sync(100, 100, date(2024, 1, 1), date(2024, 2, 1))
        assert (has_new, missing, reason) == (True, 0, SyncReason.NEWER_REMOTE_DATE)

    def test_same_dates_are_up_to_date(self):
        assert decide_sync(100, 100, date(2024, 1, 1), date(2024, 1, 1)) == (
            False,
            0,
            SyncReason.UP_TO_DATE,
        )

    def test_undated_items_are_assumed_stale(self):
        assert decide_sync(100, 100, None, None) == (True, 0, SyncReason.ASSUMED_STALE)
        assert decide_sync(100, 100, None, date(2024, 1, 1)) == (True, 0, SyncReason.ASSUMED_STALE)

    def test_empty_sources_are_up_to_date(self):
        assert decide_sync(0, 0, None, None) == (False, 0, SyncReason.UP_TO_DATE)
        assert decide_sync(0, 3, None, None) == (False, 0, SyncReason.UP_TO_DATE)

    def test_fewer_live_items_is_not_negative(self):
        assert decide_sync(90, 100, date(2024, 1, 1), date(2024, 1, 1))[1] == 0


class TestSyncChecker:
    def test_unknown_source_raises(self, settings, collaborators):
        with pytest.raises(SourceNotFoundError):
            asyncio.run(SyncChecker(settings, collaborators).needs_sync("Nobody"))

    def test_source_without_url_raises(self, settings, collaborators):
        store.record_scan("Test Channel", 3)
        with pytest.raises(SourceNotFoundError):
            asyncio.run(SyncChecker(settings, collaborators).needs_sync("Test Channel"))

    def test_gap_is_reported_with_inputs_and_recorded(self, settings, youtube, collaborators):
        store.learn_source_url("Test Channel", SOURCE_URL, 1)
        refs = youtube.add_listing(SOURCE_URL, ["item0000001", "item0000002", "item0000003"])
        youtube.metadata[refs[0].canonical_url] = ItemMetadata(title="newest", publish_date=date(2024, 6, 1))
        seed_item("item0000003", publish_date=date(2024, 1, 1))

        decision = asyncio.run(SyncChecker(settings, collaborators).needs_sync("Test Channel"))

        assert decision.has_new is True
        assert decision.reason == SyncReason.COUNT_GAP
        assert decision.missing_count == 2
        assert decision.live_total == 3
        assert decision.ingested_count == 1
        assert decision.recorded_date == date(2024, 1, 1)
        assert decision.latest_remote_date == date(2024, 6, 1)
        assert decision.to_dict()["latestRemoteDate"] == "2024-06-01"
        # one detail call, on the first listed entry
        assert [kind for kind, _ in youtube.calls].count("metadata") == 1

        source = store.get_source("Test Channel")
        assert source.total_known_items == 3
        assert source.newest_known_publish_date == date(2024, 6, 1)
        assert source.last_scanned_at is not None

    def test_up_to_date_still_records_scan(self, settings, youtube, collaborators):
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        refs = youtube.add_listing(SOURCE_URL, ["item0000001"])
        youtube.metadata[refs[0].canonical_url] = ItemMetadata(title="t", publish_date=date(2024, 1, 1))
        seed_item("item0000001", publish_date=date(2024, 1, 1))

        decision = asyncio.run(SyncChecker(settings, collaborators).needs_sync("Test Channel"))

        assert decision.has_new is False
        assert decision.reason == SyncReason.UP_TO_DATE
        assert store.get_source("Test Channel").last_scanned_at is not None

    def test_metadata_failure_degrades_to_no_remote_date(self, settings, youtube, collaborators):
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        refs = youtube.add_listing(SOURCE_URL, ["item0000001"])
        youtube.metadata[refs[0].canonical_url] = RuntimeError("age restricted")
        seed_item("item0000001", publish_date=date(2024, 1, 1))

        decision = asyncio.run(SyncChecker(settings, collaborators).needs_sync("Test Channel"))

        assert decision.latest_remote_date is None
        assert decision.reason == SyncReason.UP_TO_DATE

    def test_newest_date_is_taken_over_the_head_window(self, settings, youtube, collaborators):
        settings.sync_date_window = 3
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        refs = youtube.add_listing(SOURCE_URL, ["item0000001", "item0000002", "item0000003", "item0000004"])
        youtube.metadata[refs[0].canonical_url] = ItemMetadata(title="a", publish_date=date(2023, 1, 1))
        youtube.metadata[refs[1].canonical_url] = RuntimeError("private video")
        youtube.metadata[refs[2].canonical_url] = ItemMetadata(title="c", publish_date=date(2024, 5, 1))
        youtube.metadata[refs[3].canonical_url] = ItemMetadata(title="d", publish_date=date(2025, 1, 1))
        for item_id in ("item0000001", "item0000002", "item0000003", "item0000004"):
            seed_item(item_id, publish_date=date(2024, 1, 1))

        decision = asyncio.run(SyncChecker(settings, collaborators).needs_sync("Test Channel"))

        assert decision.latest_remote_date == date(2024, 5, 1)
        assert decision.reason == SyncReason.NEWER_REMOTE_DATE
        assert [kind for kind, _ in youtube.calls].count("metadata") == 3


class TestScheduledSweep:
    def test_sweep_processes_new_items_and_collects_errors(self, settings, youtube, collaborators):
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        store.learn_source_url("Broken", OTHER_URL, 0)
        store.record_scan("No Url", 5)
        youtube.add_listing(SOURCE_URL, ["item0000001", "item0000002", "item0000003"])
        youtube.listings[OTHER_URL] = RuntimeError("HTTP Error 404")
        seed_item("item0000003")
        seed_skip("item0000002")

        report = asyncio.run(ScheduledSweep(settings, collaborators).run())

        assert report.sources_checked == 2
        assert report.new_items_found == 1
        assert report.processed == 1
        assert report.skipped == 0
        assert report.failed == 0
        assert report.errors == ["Broken: HTTP Error 404"]
        assert store.item_exists("https://www.youtube.com/watch?v=item0000001")

        cron = list_events(kind="cron")
        assert len(cron) == 1
        assert cron[0].details["processed"] == 1

    def test_sweep_caps_items_per_source(self, settings, youtube, collaborators):
        settings.sweep_max_items_per_source = 2
        settings.sweep_recent_window = 4
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        youtube.add_listing(SOURCE_URL, [f"item000000{n}" for n in range(1, 7)])

        report = asyncio.run(ScheduledSweep(settings, collaborators).run())

        assert report.new_items_found == 4
        assert report.processed == 2

    def test_up_to_date_source_is_not_orchestrated(self, settings, youtube, collaborators):
        store.learn_source_url("Test Channel", SOURCE_URL, 0)
        refs = youtube.add_listing(SOURCE_URL, ["item0000001"])
        youtube.metadata[refs[0].canonical_url] = ItemMetadata(title="t", publish_date=date(2024, 1, 1))
        seed_item("item0000001", publish_date=date(2024, 1, 1))

        report = asyncio.run(ScheduledSweep(settings, collaborators).run())

        assert report.sources_checked == 1
        assert report.new_items_found == 0
        assert [kind for kind, _ in youtube.calls] == ["list", "metadata"]

    def test_enriches_items_without_summary(self, settings, youtube, collaborators):
        settings.sweep_enrich_limit = 2
        for item_id in ("item0000001", "item0000002", "item0000003"):
            seed_item(item_id, summary=None)

        report = asyncio.run(ScheduledSweep(settings, collaborators).run())

        assert report.sources_checked == 0
        assert report.enriched == 2
        assert len(store.list_items_missing_summary(10)) == 1

    def test_enrichment_failure_is_skipped(self, settings, youtube, collaborators):
        seed_item("item0000001", summary=None)
        youtube.summary_error = ValueError("bad response")

        report = asyncio.run(ScheduledSweep(settings, collaborators).run())

        assert report.enriched == 0
        assert report.to_dict()["enriched"] == 0
