"""
SQLAlchemy ORM models for the ingestion engine.

This module defines the database schema using SQLAlchemy's declarative base.
All models inherit from Base and use consistent naming conventions.

Models:
    Item: An ingested video/episode with transcript and summary
    SkipRecord: An item deliberately not ingested, with the reason
    SourceRecord: Aggregate knowledge about a channel/playlist
    EventLog: Operational event sink (process, cron, error)
    TimestampMixin: Provides automatic created_at/updated_at timestamps

Enums:
    SkipReason: Why an item was not ingested
"""

from enum import Enum as PyEnum

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Enum,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class TimestampMixin:
    """
    Mixin to add automatic timestamp tracking to models.

    Provides:
        created_at: Timestamp when record was created (set automatically)
        updated_at: Timestamp when record was last modified (updated automatically)
    """

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )


class SkipReason(str, PyEnum):
    """
    Reasons an item ends up in the skip ledger.

        NO_TRANSCRIPT: No subtitles, or subtitles below the minimum length
        ALREADY_PROCESSED: Canonical URL already present in the item store
    """

    NO_TRANSCRIPT = "no_transcript"
    ALREADY_PROCESSED = "already_processed"


class Item(Base):
    """
    One ingested unit of content.

    canonical_url is unique across every item ever ingested and is the single
    source of truth for "already processed". Rows are written once by the item
    pipeline; only summary enrichment touches them afterwards.
    """

    __tablename__ = "items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String(32), nullable=False, index=True)
    source_id = Column(String(255), nullable=True, index=True)
    canonical_url = Column(String(500), nullable=False, unique=True)
    title = Column(String(500), nullable=False)
    owner_name = Column(String(255), nullable=True)
    transcript = Column(Text, nullable=False)
    summary = Column(Text, nullable=True)
    highlight = Column(Text, nullable=True)
    publish_date = Column(Date, nullable=True, index=True)
    ingested_at = Column(DateTime, nullable=False, server_default=func.now())
    summarized_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return (
            f"<Item(id={self.id}, item_id={self.item_id}, source_id='{self.source_id}', "
            f"title='{self.title}')>"
        )


class SkipRecord(Base):
    """Durable memory that an item was deliberately not ingested."""

    __tablename__ = "skipped_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String(32), nullable=False, unique=True)
    canonical_url = Column(String(500), nullable=False)
    source_id = Column(String(255), nullable=True, index=True)
    title = Column(String(500), nullable=True)
    reason = Column(Enum(SkipReason), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<SkipRecord(item_id={self.item_id}, reason={self.reason.value})>"


class SourceRecord(Base, TimestampMixin):
    """
    Aggregate knowledge about a channel.

    total_known_items and newest_known_publish_date are only refreshed by an
    explicit scan; they are lower bounds on what the remote source holds.
    """

    __tablename__ = "sources"

    source_id = Column(String(255), primary_key=True)
    source_url = Column(String(500), nullable=True)
    total_known_items = Column(Integer, nullable=False, default=0, server_default="0")
    newest_known_publish_date = Column(Date, nullable=True)
    last_scanned_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return (
            f"<SourceRecord(source_id='{self.source_id}', total={self.total_known_items}, "
            f"last_scanned_at={self.last_scanned_at})>"
        )


class EventLog(Base):
    """Row of the operational event sink."""

    __tablename__ = "event_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(20), nullable=False, index=True)
    message = Column(Text, nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
