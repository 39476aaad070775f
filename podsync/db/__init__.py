"""
Database package for the ingestion engine.

Structure:
- models.py: SQLAlchemy ORM models (Item, SkipRecord, SourceRecord, EventLog)
- database.py: Engine configuration and the session-per-operation context manager
- store.py: Item Store, Skip Ledger and Source Registry operations
- events.py: Persistent operational event sink (log_event)

Usage:
    from podsync.db import get_db_session, Item, store
"""

from .models import Base, EventLog, Item, SkipReason, SkipRecord, SourceRecord, TimestampMixin
from .database import (
    check_database_connection,
    configure_database,
    get_db_session,
    get_engine,
    init_database,
)
from .events import list_events, log_event
from . import store

__all__ = [
    # Models
    "Base",
    "EventLog",
    "Item",
    "SkipReason",
    "SkipRecord",
    "SourceRecord",
    "TimestampMixin",
    # Database utilities
    "check_database_connection",
    "configure_database",
    "get_db_session",
    "get_engine",
    "init_database",
    # Event sink
    "list_events",
    "log_event",
    # Stores
    "store",
]
