"""Database engine and session factories."""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docverify.utils.config import DatabaseConfig
from docverify.utils.logger import get_logger

from .models import Base

logger = get_logger(__name__)


def create_db_engine(config: DatabaseConfig) -> Engine:
    """Build an engine for the configured URL.

    In-memory SQLite gets a single shared connection so every session
    sees the same database.
    """
    kwargs: dict = {"echo": config.echo}
    if config.url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in config.url or config.url == "sqlite://":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(pool_pre_ping=True, pool_size=5, max_overflow=10)
    return create_engine(config.url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready on %s", engine.url.render_as_string())


@contextmanager
def db_session(factory: sessionmaker) -> Iterator[Session]:
    """Context manager for standalone DB operations (CLI, scripts).

    Commits on success, rolls back on any exception.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
