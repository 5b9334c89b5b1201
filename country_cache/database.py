import logging
import os
import threading
from contextlib import contextmanager

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from country_cache.config import Config

logger = logging.getLogger(__name__)

Base = declarative_base()

SQLITE_PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA cache_size = -32000",
    "PRAGMA temp_store = MEMORY",
)

_engine = None
_SessionLocal = None
_lock = threading.Lock()


def _apply_sqlite_pragmas(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        for pragma in SQLITE_PRAGMAS:
            cursor.execute(pragma)
    finally:
        cursor.close()


def _create_engine(database_url):
    url = make_url(database_url)
    connect_args = {}

    if url.get_backend_name() == "sqlite":
        # Connections are handed to the threadpool by FastAPI
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            db_dir = os.path.dirname(os.path.abspath(url.database))
            os.makedirs(db_dir, exist_ok=True)

    engine = create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)

    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _apply_sqlite_pragmas)

    logger.info("Database engine opened (%s)", url.render_as_string(hide_password=True))
    return engine


def acquire():
    """Return the process-wide engine, opening it on first use."""
    global _engine, _SessionLocal

    if _engine is not None:
        return _engine

    with _lock:
        if _engine is None:
            engine = _create_engine(Config.database_url)
            _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
            _engine = engine
    return _engine


def close():
    """Dispose of the engine. A later acquire() opens a fresh one."""
    global _engine, _SessionLocal

    with _lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("Database engine closed")
        _engine = None
        _SessionLocal = None


def new_session():
    acquire()
    return _SessionLocal()


def get_db():
    """FastAPI dependency providing one session per request."""
    db = new_session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope():
    """Context manager for a transactional session.

    Commits when the block exits normally; any exception rolls back every
    write made inside the block and is re-raised.
    """
    db_session = new_session()
    try:
        yield db_session
        db_session.commit()
    except Exception:
        db_session.rollback()
        logger.warning("Transaction rolled back")
        raise
    finally:
        db_session.close()


def run_in_transaction(fn, *args, **kwargs):
    """Run fn(session, *args, **kwargs) atomically and return its result."""
    with session_scope() as db_session:
        return fn(db_session, *args, **kwargs)


def table_exists(table_name):
    return inspect(acquire()).has_table(table_name)
