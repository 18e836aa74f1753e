"""Database engine and session management."""
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from tradewizard.config import DatabaseConfig
from tradewizard.db.models import (  # noqa: F401  # pylint: disable=unused-import
    AgentSignalRecord, AnalysisHistory, Market, Recommendation)


def create_db_engine(config: DatabaseConfig | None = None) -> Engine:
    """Synchronous engine for SQLModel sessions.

    In-memory SQLite shares one connection so every session sees the same tables.
    """
    config = config or DatabaseConfig()
    url = config.url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        else:
            Path(make_url(url).database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(url, echo=config.echo, **kwargs)
    return create_engine(
        url,
        echo=config.echo,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """Yield a database session; commits on success, rolls back on error."""
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """Create all tables. Safe to call on startup (idempotent for existing tables)."""
    SQLModel.metadata.create_all(engine)
