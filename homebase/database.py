import logging
import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import (
    DATABASE_URL,
    DB_LOG_SLOW_QUERIES,
    DB_MAX_OVERFLOW,
    DB_POOL_RECYCLE,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_SLOW_QUERY_THRESHOLD,
)

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    """Pool options for server databases; SQLite manages its own pool"""
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": DB_POOL_RECYCLE,
        "pool_size": DB_POOL_SIZE,
        "max_overflow": DB_MAX_OVERFLOW,
        "pool_timeout": DB_POOL_TIMEOUT,
    }


def install_slow_query_logging(target_engine, threshold: float = DB_SLOW_QUERY_THRESHOLD) -> None:
    """Warn about statements that run longer than `threshold` seconds"""

    @event.listens_for(target_engine, "before_cursor_execute")
    def _start_timer(conn, _cursor, _statement, _parameters, _context, _executemany):
        conn.info.setdefault("homebase_query_start", []).append(time.perf_counter())

    @event.listens_for(target_engine, "after_cursor_execute")
    def _check_elapsed(conn, _cursor, statement, _parameters, _context, _executemany):
        elapsed = time.perf_counter() - conn.info["homebase_query_start"].pop()
        if elapsed > threshold:
            logger.warning(f"🐌 Slow query ({elapsed:.2f}s): {statement[:200]}...")


try:
    engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))
    logger.info(f"✅ Database engine ready ({engine.dialect.name})")
except Exception as e:
    logger.error(f"❌ Could not create database engine: {e}")
    raise

if DB_LOG_SLOW_QUERIES:
    install_slow_query_logging(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """Request-scoped session"""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
