"""
Engine and session handling for the SQLite store.

One engine per process, bound lazily from Settings.database_url or eagerly
through configure_database() (the API lifespan and the test fixtures use the
latter). Connections are not pooled; every session opens its own connection
with WAL journaling and a busy timeout so worker threads and the event loop
can share the file.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
from urllib.parse import urlparse

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from podsync.config import get_settings
from podsync.logger import setup_logging, log_function

from .models import Base


db_logger = setup_logging(
    logger_name="database",
    log_file="logs/database.log",
    verbose=False,
)

SQLITE_PRAGMAS = (
    "PRAGMA journal_mode=WAL",
    "PRAGMA busy_timeout=30000",
    "PRAGMA foreign_keys=ON",
    "PRAGMA synchronous=NORMAL",
)

engine: Optional[Engine] = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False)


def sqlite_path_from_url(url: Optional[str]) -> str:
    """
    Return the file path named by a sqlite:/// URL.

    Raises:
        ValueError: For a missing URL, another scheme, an empty path or a
            parent directory that does not exist.
    """
    if not url:
        raise ValueError("DATABASE_URL is not set")

    parsed = urlparse(url)
    if parsed.scheme != "sqlite":
        raise ValueError(f"unsupported database scheme {parsed.scheme!r}, expected sqlite")

    # sqlite:///rel.db -> "/rel.db", sqlite:////abs.db -> "//abs.db"
    path = parsed.path[1:] if parsed.path.startswith("//") else parsed.path.lstrip("/")
    if not path:
        raise ValueError("database file path is empty")

    folder = Path(path).parent
    if not folder.is_dir():
        raise ValueError(f"database folder {folder} does not exist")
    return path


def _apply_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    for pragma in SQLITE_PRAGMAS:
        cursor.execute(pragma)
    cursor.close()


def configure_database(database_url: Optional[str] = None) -> Engine:
    """
    Build the engine and bind SessionLocal to it, replacing any previous one.

    Args:
        database_url: SQLite URL. Defaults to Settings.database_url.

    Raises:
        ValueError: If the URL does not point at a usable SQLite file.
    """
    global engine

    url = database_url or get_settings().database_url
    try:
        path = sqlite_path_from_url(url)
    except ValueError as e:
        db_logger.error(f"Rejected database URL {url!r}: {e}")
        raise

    if engine is not None:
        engine.dispose()

    engine = create_engine(
        url,
        poolclass=NullPool,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    event.listen(engine, "connect", _apply_pragmas)
    SessionLocal.configure(bind=engine)

    db_logger.info(f"Using SQLite database at {path}")
    return engine


def get_engine() -> Engine:
    return engine if engine is not None else configure_database()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Yield a session for one unit of work.

    The caller commits. Any exception rolls the session back and propagates;
    a missing table is reported with a hint to call init_database().

    Usage:
        with get_db_session() as session:
            session.add(record)
            session.commit()
    """
    get_engine()
    session = SessionLocal()
    try:
        yield session
    except OperationalError as e:
        session.rollback()
        db_logger.error(f"SQLite operational error: {e}")
        if "no such table" in str(getattr(e, "orig", e)).lower():
            raise OperationalError(
                "Missing table, call init_database() before using the store.",
                None,
                e.orig,
            ) from e
        raise
    except SQLAlchemyError as e:
        session.rollback()
        db_logger.error(f"SQLAlchemy error: {e}")
        raise
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()


@log_function(logger_name="database", log_execution_time=True)
def check_database_connection() -> bool:
    """True when a trivial query succeeds."""
    try:
        with get_db_session() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_logger.error(f"Health query failed: {e}")
        return False
    return True


@log_function(logger_name="database", log_execution_time=True)
def init_database() -> None:
    """Create every table declared on Base; there are no migrations."""
    Base.metadata.create_all(bind=get_engine())
    db_logger.info("Schema ready")
