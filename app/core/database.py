"""Database engine, session management and startup checks."""

import logging
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import Settings, settings
from app.models.base import Base

logger = logging.getLogger(__name__)


def engine_options(cfg: Settings) -> dict[str, Any]:
    """Build create_engine kwargs with connect/pool timeouts for the configured dialect."""
    if cfg.DATABASE_URL.startswith("sqlite"):
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": cfg.DATABASE_CONNECT_TIMEOUT_SEC,
            },
            "echo": cfg.DEBUG,
        }
    return {
        "connect_args": {"connect_timeout": cfg.DATABASE_CONNECT_TIMEOUT_SEC},
        "pool_pre_ping": True,
        "pool_timeout": cfg.DATABASE_POOL_TIMEOUT_SEC,
        "echo": cfg.DEBUG,
    }


engine = create_engine(settings.DATABASE_URL, **engine_options(settings))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        logger.warning("Database connectivity check failed", exc_info=True)
        return False


def init_db(bind: Engine | None = None) -> None:
    """Create missing tables. Production deployments use Alembic instead."""
    Base.metadata.create_all(bind=bind or engine)
