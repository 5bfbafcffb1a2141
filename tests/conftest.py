"""
Task Comments Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

The relational store is an in-memory SQLite database with foreign keys
enabled, one per test.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskcomments.engine.config import AppConfig, DatabaseConfig, SecurityConfig


# ---------------------------------------------------------------------------
# Environment setup — reset global singletons between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals():
    import taskcomments.engine.config as cfg_mod
    import taskcomments.engine.logging as log_mod
    from taskcomments.engine.context import clear_execution_context

    cfg_mod._config = None
    clear_execution_context()
    yield
    if log_mod._global_queue is not None:
        log_mod.shutdown_logging()
    cfg_mod._config = None
    clear_execution_context()


class TickingClock:
    """Deterministic clock: every call is one second after the previous one."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def session_factory():
    from taskcomments.db.session import dispose, init_db

    factory = init_db(DatabaseConfig(url="sqlite://"), create_tables=True)
    yield factory
    dispose(factory)


@pytest.fixture
def store(session_factory):
    from taskcomments.db.store import SqlOwnershipStore

    return SqlOwnershipStore(session_factory)


@pytest.fixture
def token_store(session_factory):
    from taskcomments.db.store import SqlTokenStore

    return SqlTokenStore(session_factory)


@pytest.fixture
def security_config():
    # Minimum bcrypt cost keeps the suite fast
    return SecurityConfig(token_hash_rounds=4)


@pytest.fixture
def identity(token_store, security_config):
    from taskcomments.engine.identity import IdentityProvider

    return IdentityProvider(token_store, security_config)


@pytest.fixture
def service(store, clock):
    from taskcomments.comments.service import CommentService

    return CommentService(store, clock=clock)


@pytest.fixture
def router(service, identity):
    from taskcomments.api.router import CommentRouter

    return CommentRouter(service, identity)


@pytest.fixture
def alice_task(store):
    return store.create_task(owner_id="alice", title="Write release notes")


@pytest.fixture
def bob_task(store):
    return store.create_task(owner_id="bob", title="Review budget", priority="high")


@pytest.fixture
def alice_token(identity):
    return identity.issue("alice", label="tests")


@pytest.fixture
def bob_token(identity):
    return identity.issue("bob", label="tests")


@pytest.fixture
def app_config(security_config):
    return AppConfig(security=security_config)


@pytest.fixture
def client(app_config, session_factory):
    from fastapi.testclient import TestClient

    from taskcomments.api.server import create_app

    app = create_app(app_config, session_factory=session_factory)
    return TestClient(app)


@pytest.fixture
def read_log():
    """Return a reader for today's JSON-lines file of one log destination."""

    def _read(log_dir, object_type: str, category: str) -> list:
        path = Path(log_dir) / object_type / category / f"{date.today().isoformat()}.jsonl"
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text().splitlines() if line.strip()]

    return _read
