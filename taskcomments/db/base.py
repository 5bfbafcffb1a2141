"""
Task Comments Database Base — SQLAlchemy declarative base, mixins, engine factory.

Provides:
- Base: SQLAlchemy declarative base for all models
- TimestampMixin: created_at, updated_at
- utcnow / new_id helpers
- create_db_engine: engine creation honouring DatabaseConfig pool settings
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from taskcomments.engine.config import DatabaseConfig


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Opaque unique identifier for tasks, comments and tokens."""
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all Task Comments models."""
    pass


class TimestampMixin:
    """Adds created_at and updated_at columns."""
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


def _enable_sqlite_foreign_keys(dbapi_conn: Any, connection_record: Any) -> None:
    # SQLite ignores ON DELETE CASCADE unless enabled per connection
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(config: DatabaseConfig) -> Engine:
    """
    Create an engine for the configured database.

    SQLite URLs skip pool sizing (unsupported by its pools) and get foreign
    keys switched on for every connection. In-memory SQLite shares a single
    connection so every session sees the same database.
    """
    if config.is_sqlite:
        kwargs: dict = {
            "echo": config.echo,
            "connect_args": {"check_same_thread": False},
        }
        if config.url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(config.url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        config.url,
        echo=config.echo,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_timeout=config.pool_timeout,
        pool_recycle=config.pool_recycle,
        pool_pre_ping=config.pool_pre_ping,
    )
