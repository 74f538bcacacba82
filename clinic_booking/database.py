import functools
import logging
import os
import time
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL, DB_READ_RETRIES, DB_READ_RETRY_DELAY
from .errors import TransientStoreError

logger = logging.getLogger(__name__)

# Get environment-specific pool settings
POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "20"))
POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
ENABLE_QUERY_LOGGING = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))

IS_SQLITE = DATABASE_URL.startswith("sqlite")


def _engine_kwargs() -> dict:
    if IS_SQLITE:
        kwargs = {"connect_args": {"check_same_thread": False}}
        # In-memory databases live inside one connection
        if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "pool_pre_ping": True,
        "pool_recycle": POOL_RECYCLE,
        "pool_size": POOL_SIZE,
        "max_overflow": MAX_OVERFLOW,
        "pool_timeout": POOL_TIMEOUT,
    }


try:
    engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs())
    logger.info("✅ Database engine created successfully")
    if not IS_SQLITE:
        logger.info(
            f"📊 Connection pool: size={POOL_SIZE}, max_overflow={MAX_OVERFLOW}, timeout={POOL_TIMEOUT}s"
        )
except Exception as e:
    logger.error(f"❌ Failed to create database engine: {e}")
    raise

# Slow query logging for performance monitoring
if ENABLE_QUERY_LOGGING:

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_THRESHOLD:
            logger.warning(f"🐌 Slow query ({total:.2f}s): {statement[:200]}...")

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


LOCKED_READS_KEY = "locked_reads"


@contextmanager
def locked_reads(db):
    """
    Mark reads made while the session holds a transaction-scoped lock.
    Rolling back releases the lock, so such reads fail fast instead of retrying.
    """
    db.info[LOCKED_READS_KEY] = True
    try:
        yield db
    finally:
        db.info.pop(LOCKED_READS_KEY, None)


def read_retry(func):
    """
    Retry a read-only repository call on connection-level failures.
    Writes must never be wrapped: a retried insert could double-book.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        last_error = None
        for attempt in range(1, DB_READ_RETRIES + 1):
            try:
                return func(*args, **kwargs)
            except OperationalError as e:
                last_error = e
                logger.warning(f"⚠️ {func.__name__} failed (attempt {attempt}/{DB_READ_RETRIES}): {e}")
                # The session is unusable until the failed transaction is rolled back
                db = kwargs.get("db") or (args[0] if args else None)
                if hasattr(db, "rollback"):
                    db.rollback()
                if getattr(db, "info", {}).get(LOCKED_READS_KEY):
                    logger.error(f"❌ {func.__name__} failed while holding a lock; not retrying")
                    raise TransientStoreError(f"Database unavailable: {e}") from e
                if attempt < DB_READ_RETRIES:
                    time.sleep(DB_READ_RETRY_DELAY * attempt)
        logger.error(f"❌ {func.__name__} gave up after {DB_READ_RETRIES} attempts")
        raise TransientStoreError(f"Database unavailable: {last_error}") from last_error

    return wrapper
