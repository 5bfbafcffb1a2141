"""
Task Comments Database Session Management.

One entry point for database initialisation plus a context manager that gives
each store call its own short-lived session.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Generator

from sqlalchemy.orm import Session, sessionmaker

from taskcomments.db.base import Base, create_db_engine
from taskcomments.engine.config import DatabaseConfig


def init_db(config: DatabaseConfig, create_tables: bool = False) -> sessionmaker:
    """
    Create the engine and return a session factory bound to it.

    Args:
        config:        Database section of taskcomments.yaml.
        create_tables: Run Base.metadata.create_all() — for ``init-db``,
                       development and tests only.
    """
    engine = create_db_engine(config)
    if create_tables:
        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for DB sessions with auto-commit/rollback.

    Usage:
        with session_scope(factory) as session:
            task = session.get(Task, task_id)
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


def dispose(factory: sessionmaker) -> None:
    """Close the connection pool behind a session factory. Used during shutdown."""
    engine = factory.kw.get("bind")
    if engine is not None:
        engine.dispose()
