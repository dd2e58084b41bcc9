import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from catalog_import.core.config import settings  # centralized settings
from catalog_import.db.base_class import Base

logger = logging.getLogger(__name__)

# --- Engine cache ---
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """
    Return the process-wide SQLAlchemy engine for settings.DATABASE_URL.
    """
    global _engine

    url = settings.DATABASE_URL
    if not url:
        logger.critical("DATABASE_URL is not configured. Cannot create engine.")
        raise RuntimeError("Missing DATABASE_URL")
    if _engine is None:
        logger.info("Creating engine (ending): ...%s", str(url)[-20:])
        _engine = create_engine(str(url), pool_pre_ping=True)
    return _engine


def get_session() -> Session:
    """
    Return a new Session bound to the shared engine. Callers own the session
    and must close it.
    """
    global _session_factory

    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False)
    session = _session_factory()
    logger.debug("Session created.")
    return session


def init_db() -> None:
    """Create any missing tables. Used at API startup and by workers."""
    # models must be imported so their tables are registered on Base.metadata
    import catalog_import.db.models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables ensured.")
