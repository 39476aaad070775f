"""
Ingestion package: the external collaborators the core talks to.

Modules:
    models: ItemRef, SourceListing and ItemMetadata value types
    urls: YouTube URL recognition and canonicalization
    youtube: yt-dlp backed listing, metadata and subtitle fetching
"""

from .models import ItemMetadata, ItemRef, SourceListing
from .urls import canonicalize_item_url, normalize_source_url

__all__ = [
    "ItemMetadata",
    "ItemRef",
    "SourceListing",
    "canonicalize_item_url",
    "normalize_source_url",
]
