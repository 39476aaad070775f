# API module - HTTP surface of the ingestion engine

from podsync.api.app import create_app

__all__ = ["create_app"]
