"""Database utilities for the SQL-backed directory."""
from __future__ import annotations

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from .config import settings


def _create_engine(url: str | None = None) -> Engine:
    """Create the SQLAlchemy engine using application settings."""

    database_url = url or settings.DATABASE_URL
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, pool_pre_ping=True, future=True, connect_args=connect_args)


ENGINE: Engine = _create_engine()
SessionLocal = sessionmaker[
    Session
](bind=ENGINE, autoflush=False, autocommit=False, expire_on_commit=False)


def create_tables(engine: Engine | None = None) -> None:
    """Create the directory tables when they do not exist yet."""

    from ..models import Base

    Base.metadata.create_all(engine or ENGINE)
