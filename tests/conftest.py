"""Shared fixtures: a temporary SQLite database and in-memory collaborators."""

from datetime import date
from typing import Optional, Union

import pytest

from podsync.config import Settings
from podsync.db import configure_database, init_database, store
from podsync.db.models import SkipReason
from podsync.ingestion.models import ItemMetadata, ItemRef, SourceListing
from podsync.ingestion.urls import canonical_item_url
from podsync.pipeline import Collaborators
from podsync.transcription.summarize import Summary


LONG_TRANSCRIPT = "This is a perfectly usable transcript sentence. " * 10


def make_ref(item_id: str, title: Optional[str] = None) -> ItemRef:
    return ItemRef(item_id=item_id, canonical_url=canonical_item_url(item_id), title=title or f"Video {item_id}")


class FakeYouTube:
    """
    Scripted stand-in for yt-dlp and OpenAI.

    Values stored in `metadata`/`transcripts` may be exceptions, which are raised.
    """

    def __init__(self, owner_name: str = "Test Channel"):
        self.owner_name = owner_name
        self.listings: dict[str, Union[SourceListing, Exception]] = {}
        self.metadata: dict[str, Union[ItemMetadata, Exception]] = {}
        self.transcripts: dict[str, Union[str, None, Exception]] = {}
        self.summary_error: Optional[Exception] = None
        self.calls: list[tuple[str, str]] = []

    def add_listing(self, source_url: str, item_ids: list[str], source_name: Optional[str] = "Test Channel") -> list[ItemRef]:
        refs = [make_ref(item_id) for item_id in item_ids]
        self.listings[source_url] = SourceListing(source_url=source_url, source_name=source_name, items=refs)
        return refs

    def list_source_items(self, source_url: str, max_items: Optional[int] = None) -> SourceListing:
        self.calls.append(("list", source_url))
        listing = self.listings[source_url]
        if isinstance(listing, Exception):
            raise listing
        items = listing.items[:max_items] if max_items else listing.items
        return SourceListing(source_url=source_url, source_name=listing.source_name, items=list(items))

    def fetch_item_metadata(self, url: str) -> ItemMetadata:
        self.calls.append(("metadata", url))
        value = self.metadata.get(url)
        if isinstance(value, Exception):
            raise value
        if value is None:
            item_id = url.rsplit("=", 1)[-1]
            value = ItemMetadata(title=f"Video {item_id}", owner_name=self.owner_name, publish_date=date(2024, 1, 1))
        return value

    def fetch_transcript(self, url: str) -> Optional[str]:
        self.calls.append(("transcript", url))
        value = self.transcripts.get(url, LONG_TRANSCRIPT)
        if isinstance(value, Exception):
            raise value
        return value

    async def summarize(self, title: str, owner_name: str, excerpt: str) -> Summary:
        self.calls.append(("summarize", title))
        if self.summary_error is not None:
            raise self.summary_error
        return Summary(summary=f"Summary of {title}", highlight="A memorable line.")

    def external_calls(self) -> int:
        return len(self.calls)

    def collaborators(self) -> Collaborators:
        return Collaborators(
            list_source_items=self.list_source_items,
            fetch_item_metadata=self.fetch_item_metadata,
            fetch_transcript=self.fetch_transcript,
            summarize=self.summarize,
        )


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path}/podsync-test.db"


@pytest.fixture(autouse=True)
def db(database_url):
    configure_database(database_url)
    init_database()
    yield


@pytest.fixture
def settings(database_url):
    return Settings(
        database_url=database_url,
        openai_api_key="test-key",
        cron_secret="s3cret",
        min_transcript_length=100,
        item_delay_seconds=0.0,
        list_timeout=5.0,
        metadata_timeout=5.0,
        transcript_timeout=5.0,
        summarize_timeout=5.0,
        job_results_limit=10,
        sweep_recent_window=15,
        sweep_max_items_per_source=10,
        sweep_enrich_limit=5,
        sweep_interval_minutes=0,
    )


@pytest.fixture
def youtube():
    return FakeYouTube()


@pytest.fixture
def collaborators(youtube):
    return youtube.collaborators()


def seed_item(item_id: str, source_id: Optional[str] = "Test Channel", publish_date: Optional[date] = None, summary: Optional[str] = "Seeded"):
    """Store an item directly, as if a previous run had ingested it."""
    return store.insert_item(
        store.NewItem(
            item_id=item_id,
            canonical_url=canonical_item_url(item_id),
            title=f"Video {item_id}",
            transcript=LONG_TRANSCRIPT,
            source_id=source_id,
            owner_name=source_id,
            summary=summary,
            publish_date=publish_date,
        )
    )


def seed_skip(item_id: str, source_id: Optional[str] = "Test Channel", reason: SkipReason = SkipReason.NO_TRANSCRIPT):
    store.record_skip(item_id, canonical_item_url(item_id), reason, source_id=source_id, title=f"Video {item_id}")
