import logging
import time
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from scheduler.config import SchedulerSettings, get_settings

from .tables import Base

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Optional[SchedulerSettings] = None, url: Optional[str] = None) -> Engine:
    """
    Build an engine from settings. The caller owns it; nothing is cached globally.
    """
    settings = settings or get_settings()
    url = url or settings.DATABASE_URL

    if url.startswith("sqlite"):
        # SQLite connections are shared across the worker threads of one process
        engine = create_engine(url, echo=settings.DB_ECHO, connect_args={"check_same_thread": False})
    else:
        engine = create_engine(
            url,
            echo=settings.DB_ECHO,
            pool_pre_ping=True,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
        logger.info(
            f"Connection pool: size={settings.DB_POOL_SIZE}, max_overflow={settings.DB_MAX_OVERFLOW}, "
            f"timeout={settings.DB_POOL_TIMEOUT}s"
        )

    if settings.DB_SLOW_QUERY_THRESHOLD is not None:
        _enable_slow_query_logging(engine, settings.DB_SLOW_QUERY_THRESHOLD)

    logger.info(f"Database engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def _enable_slow_query_logging(engine: Engine, threshold: float) -> None:

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        conn.info.setdefault("query_start_time", []).append(time.time())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, _cursor, statement, _parameters, context, _executemany):
        total = time.time() - conn.info["query_start_time"].pop(-1)
        if total > threshold:
            logger.warning(f"Slow query ({total:.2f}s): {statement[:200]}...")


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create any missing tables (and the booking uniqueness index)."""
    Base.metadata.create_all(engine)
