"""Database session configuration."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from publish_stage.core.settings import Settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


def build_engine(settings: Settings) -> Engine:
    """Create the engine for the configured database URL."""
    url = settings.database_url
    if url in ("sqlite://", "sqlite:///:memory:"):
        # A single shared connection keeps an in-memory database alive.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.sql_debug,
        )
    return create_engine(url, pool_pre_ping=True, echo=settings.sql_debug)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Create all database tables."""
    # Ensure model modules are imported so that metadata is populated.
    import publish_stage.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
