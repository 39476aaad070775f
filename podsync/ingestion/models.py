"""Value types exchanged between the ingestion collaborators and the core."""

from dataclasses import dataclass, field
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class ItemRef:
    """Reference to a remote item that may be ingested."""

    item_id: str
    canonical_url: str
    title: Optional[str] = None

    @property
    def label(self) -> str:
        return self.title or self.item_id


@dataclass
class SourceListing:
    """Flat listing of a channel or playlist, newest first."""

    source_url: str
    source_name: Optional[str] = None
    items: list[ItemRef] = field(default_factory=list)


@dataclass
class ItemMetadata:
    title: str
    owner_name: Optional[str] = None
    publish_date: Optional[date] = None
