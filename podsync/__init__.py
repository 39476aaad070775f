"""podsync: bulk ingestion and incremental sync of YouTube channels."""

__version__ = "0.1.0"
