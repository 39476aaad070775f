"""
Durable stores used by the ingestion core.

Three logical stores live in the same SQLite database:
- Item Store (items): what has been ingested, keyed by canonical URL
- Skip Ledger (skipped_items): what was deliberately not ingested, keyed by item ID
- Source Registry (sources): per-channel aggregate knowledge

Writes that can race between concurrent jobs use SQLite's atomic
INSERT ... ON CONFLICT instead of in-process locking.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.dialects.sqlite import insert

from podsync.logger import log_function

from .database import get_db_session
from .models import Item, SkipReason, SkipRecord, SourceRecord


# SQLite caps bound parameters per statement; bulk reads are chunked below it
IN_CLAUSE_CHUNK = 500


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _chunks(values: list[str], size: int = IN_CLAUSE_CHUNK) -> Iterable[list[str]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


@dataclass
class NewItem:
    """Field values for an item about to be persisted."""

    item_id: str
    canonical_url: str
    title: str
    transcript: str
    source_id: Optional[str] = None
    owner_name: Optional[str] = None
    summary: Optional[str] = None
    highlight: Optional[str] = None
    publish_date: Optional[date] = None


# ============ ITEM STORE ============


def item_exists(canonical_url: str) -> bool:
    with get_db_session() as session:
        return (
            session.execute(
                select(Item.id).where(Item.canonical_url == canonical_url)
            ).first()
            is not None
        )


def get_item_by_url(canonical_url: str) -> Optional[Item]:
    with get_db_session() as session:
        return session.scalars(
            select(Item).where(Item.canonical_url == canonical_url)
        ).first()


def get_item(item_pk: int) -> Optional[Item]:
    with get_db_session() as session:
        return session.get(Item, item_pk)


def list_items(limit: int = 50, offset: int = 0, source_id: Optional[str] = None) -> list[Item]:
    """List ingested items, newest ingestion first."""
    with get_db_session() as session:
        query = select(Item).order_by(Item.ingested_at.desc(), Item.id.desc())
        if source_id is not None:
            query = query.where(Item.source_id == source_id)
        return list(session.scalars(query.limit(limit).offset(offset)))


@log_function(logger_name="store", log_execution_time=False)
def insert_item(new_item: NewItem) -> Optional[Item]:
    """
    Persist an item unless its canonical URL is already stored.

    Returns:
        The stored Item, or None when another writer got there first.
    """
    values = {
        "item_id": new_item.item_id,
        "canonical_url": new_item.canonical_url,
        "title": new_item.title,
        "transcript": new_item.transcript,
        "source_id": new_item.source_id,
        "owner_name": new_item.owner_name,
        "summary": new_item.summary,
        "highlight": new_item.highlight,
        "publish_date": new_item.publish_date,
        "ingested_at": utcnow(),
        "summarized_at": utcnow() if new_item.summary else None,
    }
    with get_db_session() as session:
        result = session.execute(
            insert(Item)
            .values(**values)
            .on_conflict_do_nothing(index_elements=[Item.canonical_url])
        )
        session.commit()
        if result.rowcount == 0:
            return None
        return session.scalars(
            select(Item).where(Item.canonical_url == new_item.canonical_url)
        ).one()


def existing_canonical_urls(canonical_urls: list[str]) -> set[str]:
    """Return the subset of canonical_urls already in the item store."""
    found: set[str] = set()
    with get_db_session() as session:
        for chunk in _chunks(canonical_urls):
            found.update(
                session.scalars(
                    select(Item.canonical_url).where(Item.canonical_url.in_(chunk))
                )
            )
    return found


SEARCH_COLUMNS = (Item.title, Item.summary, Item.highlight, Item.transcript)


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def search_items(query: str, limit: int = 20) -> list[Item]:
    """
    Case-insensitive substring search over title, summary, highlight and
    transcript, newest ingestion first.
    """
    pattern = _like_pattern(query.strip())
    with get_db_session() as session:
        return list(
            session.scalars(
                select(Item)
                .where(or_(*(column.ilike(pattern, escape="\\") for column in SEARCH_COLUMNS)))
                .order_by(Item.ingested_at.desc(), Item.id.desc())
                .limit(limit)
            )
        )


def indexed_stats() -> dict[str, Any]:
    """Total ingested items and per-source counts, largest source first."""
    with get_db_session() as session:
        total = session.scalar(select(func.count(Item.id)))
        rows = session.execute(
            select(
                Item.source_id,
                func.count(Item.id).label("item_count"),
                SourceRecord.total_known_items,
                SourceRecord.last_scanned_at,
            )
            .outerjoin(SourceRecord, SourceRecord.source_id == Item.source_id)
            .where(Item.source_id.is_not(None))
            .group_by(Item.source_id, SourceRecord.total_known_items, SourceRecord.last_scanned_at)
            .order_by(func.count(Item.id).desc(), Item.source_id)
        ).all()
    return {
        "total_items": total,
        "sources": [
            {
                "source_id": row.source_id,
                "items": row.item_count,
                "total_known_items": row.total_known_items,
                "last_scanned_at": row.last_scanned_at,
            }
            for row in rows
        ],
    }


def count_items_for_source(source_id: str) -> int:
    with get_db_session() as session:
        return session.scalar(
            select(func.count(Item.id)).where(Item.source_id == source_id)
        )


def newest_publish_date_for_source(source_id: str) -> Optional[date]:
    with get_db_session() as session:
        return session.scalar(
            select(func.max(Item.publish_date)).where(Item.source_id == source_id)
        )


def list_items_missing_summary(limit: int) -> list[Item]:
    """Items whose summary was never computed, oldest first."""
    with get_db_session() as session:
        return list(
            session.scalars(
                select(Item)
                .where((Item.summary.is_(None)) | (Item.summary == ""))
                .order_by(Item.ingested_at.asc(), Item.id.asc())
                .limit(limit)
            )
        )


def update_item_summary(item_pk: int, summary: str, highlight: Optional[str]) -> None:
    with get_db_session() as session:
        session.execute(
            update(Item)
            .where(Item.id == item_pk)
            .values(summary=summary, highlight=highlight, summarized_at=utcnow())
        )
        session.commit()


# ============ SKIP LEDGER ============


def get_skip_record(item_id: str) -> Optional[SkipRecord]:
    with get_db_session() as session:
        return session.scalars(
            select(SkipRecord).where(SkipRecord.item_id == item_id)
        ).first()


@log_function(logger_name="store", log_args=True, log_execution_time=False)
def record_skip(
    item_id: str,
    canonical_url: str,
    reason: SkipReason,
    source_id: Optional[str] = None,
    title: Optional[str] = None,
) -> None:
    """Write (or replace) the skip reason for an item."""
    statement = insert(SkipRecord).values(
        item_id=item_id,
        canonical_url=canonical_url,
        source_id=source_id,
        title=title,
        reason=reason,
        created_at=utcnow(),
    )
    statement = statement.on_conflict_do_update(
        index_elements=[SkipRecord.item_id],
        set_={
            "reason": statement.excluded.reason,
            "canonical_url": statement.excluded.canonical_url,
            "source_id": func.coalesce(statement.excluded.source_id, SkipRecord.source_id),
            "title": func.coalesce(statement.excluded.title, SkipRecord.title),
        },
    )
    with get_db_session() as session:
        session.execute(statement)
        session.commit()


def skipped_item_ids(item_ids: list[str]) -> set[str]:
    """Return the subset of item_ids present in the skip ledger."""
    found: set[str] = set()
    with get_db_session() as session:
        for chunk in _chunks(item_ids):
            found.update(
                session.scalars(
                    select(SkipRecord.item_id).where(SkipRecord.item_id.in_(chunk))
                )
            )
    return found


def count_skipped_for_source(source_id: str) -> int:
    with get_db_session() as session:
        return session.scalar(
            select(func.count(SkipRecord.id)).where(SkipRecord.source_id == source_id)
        )


@log_function(logger_name="store", log_args=True, log_result=True)
def clear_skips_for_source(source_id: str) -> int:
    """Delete every skip record of a source. Returns the number removed."""
    with get_db_session() as session:
        result = session.execute(
            delete(SkipRecord).where(SkipRecord.source_id == source_id)
        )
        session.commit()
        return result.rowcount


# ============ SOURCE REGISTRY ============


def get_source(source_id: str) -> Optional[SourceRecord]:
    with get_db_session() as session:
        return session.get(SourceRecord, source_id)


def list_sources(with_url_only: bool = False) -> list[SourceRecord]:
    with get_db_session() as session:
        query = select(SourceRecord).order_by(SourceRecord.source_id)
        if with_url_only:
            query = query.where(
                SourceRecord.source_url.is_not(None), SourceRecord.source_url != ""
            )
        return list(session.scalars(query))


@log_function(logger_name="store", log_args=True, log_execution_time=False)
def learn_source_url(source_id: str, source_url: str, total_known_items: int) -> bool:
    """
    Associate a source with its URL unless it already has one.

    Returns:
        True when the URL was stored by this call.
    """
    statement = insert(SourceRecord).values(
        source_id=source_id,
        source_url=source_url,
        total_known_items=total_known_items,
    )
    statement = statement.on_conflict_do_update(
        index_elements=[SourceRecord.source_id],
        set_={
            "source_url": statement.excluded.source_url,
            "total_known_items": func.max(
                SourceRecord.total_known_items, statement.excluded.total_known_items
            ),
            "updated_at": func.now(),
        },
        where=(SourceRecord.source_url.is_(None)) | (SourceRecord.source_url == ""),
    )
    with get_db_session() as session:
        result = session.execute(statement)
        session.commit()
        return result.rowcount > 0


def record_scan(
    source_id: str,
    total_known_items: int,
    newest_known_publish_date: Optional[date] = None,
    source_url: Optional[str] = None,
) -> None:
    """Store the result of an explicit scan of a source."""
    statement = insert(SourceRecord).values(
        source_id=source_id,
        source_url=source_url,
        total_known_items=total_known_items,
        newest_known_publish_date=newest_known_publish_date,
        last_scanned_at=utcnow(),
    )
    statement = statement.on_conflict_do_update(
        index_elements=[SourceRecord.source_id],
        set_={
            "total_known_items": statement.excluded.total_known_items,
            "newest_known_publish_date": func.coalesce(
                statement.excluded.newest_known_publish_date,
                SourceRecord.newest_known_publish_date,
            ),
            "source_url": func.coalesce(SourceRecord.source_url, statement.excluded.source_url),
            "last_scanned_at": statement.excluded.last_scanned_at,
            "updated_at": func.now(),
        },
    )
    with get_db_session() as session:
        session.execute(statement)
        session.commit()


def refresh_source_count(source_id: str, total_known_items: int) -> bool:
    """
    Update the known item count of an existing source and stamp the scan.

    Never creates a record, so a source only enters the registry through
    learn_source_url() or an explicit scan.

    Returns:
        True when a record was updated.
    """
    with get_db_session() as session:
        result = session.execute(
            update(SourceRecord)
            .where(SourceRecord.source_id == source_id)
            .values(total_known_items=total_known_items, last_scanned_at=utcnow())
        )
        session.commit()
        return result.rowcount > 0
