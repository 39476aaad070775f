"""
Operational event sink.

log_event() is fire-and-forget: it mirrors the event to the "events" logger
and stores it in event_logs. A storage failure is logged as a warning and
never reaches the caller.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from podsync.logger import setup_logging

from .database import get_db_session
from .models import EventLog


EVENT_KINDS = ("process", "cron", "error", "info")

logger = setup_logging(logger_name="events", log_file="logs/events.log")


def log_event(kind: str, message: str, details: Optional[dict[str, Any]] = None) -> None:
    """Record an operational event."""
    level = logging.ERROR if kind == "error" else logging.INFO
    logger.log(level, f"[{kind}] {message}" + (f" {details}" if details else ""))
    try:
        with get_db_session() as session:
            session.add(EventLog(kind=kind, message=message, details=details))
            session.commit()
    except (SQLAlchemyError, ValueError) as exc:
        logger.warning(f"Could not persist event '{message}': {exc}")


def list_events(limit: int = 100, kind: Optional[str] = None) -> list[EventLog]:
    """Most recent events first."""
    with get_db_session() as session:
        query = select(EventLog).order_by(EventLog.id.desc()).limit(limit)
        if kind:
            query = query.where(EventLog.kind == kind)
        return list(session.scalars(query))
