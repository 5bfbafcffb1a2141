"""Unit tests for taskcomments.db.store — Ownership-predicated persistence."""

from datetime import datetime, timezone

import pytest

from taskcomments.db.session import dispose, init_db, session_scope
from taskcomments.db.models import Comment, Task
from taskcomments.db.store import SqlOwnershipStore
from taskcomments.engine.config import DatabaseConfig
from taskcomments.engine.errors import StoreError, TaskNotFound


class TestTasks:

    def test_create_and_get(self, store):
        task = store.create_task(owner_id="alice", title="Ship it", description="v1")
        assert task.status == "pending"
        assert task.priority == "medium"
        assert task.created_at.tzinfo is not None

        loaded = store.get_task(task.id, owner_id="alice")
        assert loaded.title == "Ship it"
        assert loaded.description == "v1"

    def test_get_not_owner(self, store, alice_task):
        assert store.get_task(alice_task.id, owner_id="bob") is None

    def test_get_missing(self, store):
        assert store.get_task("missing", owner_id="alice") is None

    def test_delete_requires_owner(self, store, alice_task):
        assert store.delete_task(alice_task.id, owner_id="bob") is False
        assert store.delete_task(alice_task.id, owner_id="alice") is True
        assert store.get_task(alice_task.id, owner_id="alice") is None

    def test_check_constraints(self, store):
        with pytest.raises(StoreError):
            store.create_task(owner_id="alice", title="x", status="archived")
        with pytest.raises(StoreError):
            store.create_task(owner_id="alice", title="   ")


class TestComments:

    def test_insert(self, store, alice_task, clock):
        now = clock()
        comment = store.insert_comment(alice_task.id, "alice", "First", now)
        assert comment.content == "First"
        assert comment.task_id == alice_task.id
        assert comment.user_id == "alice"
        assert comment.created_at == now
        assert comment.updated_at == now

    def test_insert_missing_task(self, store, clock):
        with pytest.raises(TaskNotFound):
            store.insert_comment("missing", "alice", "orphan", clock())

    def test_list_ordered_oldest_first(self, store, alice_task, clock):
        first = store.insert_comment(alice_task.id, "alice", "one", clock())
        second = store.insert_comment(alice_task.id, "alice", "two", clock())
        third = store.insert_comment(alice_task.id, "alice", "three", clock())

        comments = store.list_comments(alice_task.id, owner_id="alice")
        assert [c.id for c in comments] == [first.id, second.id, third.id]
        assert comments[0].created_at.tzinfo == timezone.utc

    def test_list_same_timestamp_ordered_by_id(self, store, alice_task):
        now = datetime(2026, 3, 1, tzinfo=timezone.utc)
        ids = [store.insert_comment(alice_task.id, "alice", f"c{i}", now).id for i in range(3)]
        listed = [c.id for c in store.list_comments(alice_task.id, owner_id="alice")]
        assert listed == sorted(ids)

    def test_list_not_owner(self, store, alice_task, clock):
        store.insert_comment(alice_task.id, "alice", "private", clock())
        assert store.list_comments(alice_task.id, owner_id="bob") == []

    def test_list_empty(self, store, alice_task):
        assert store.list_comments(alice_task.id, owner_id="alice") == []

    def test_get_comment_author_only(self, store, alice_task, clock):
        comment = store.insert_comment(alice_task.id, "alice", "hi", clock())
        assert store.get_comment(comment.id, author_id="alice").content == "hi"
        assert store.get_comment(comment.id, author_id="bob") is None

    def test_update(self, store, alice_task, clock):
        comment = store.insert_comment(alice_task.id, "alice", "draft", clock())
        later = clock()
        updated = store.update_comment(comment.id, "alice", "final", later)
        assert updated.content == "final"
        assert updated.updated_at == later
        assert updated.created_at == comment.created_at
        assert updated.task_id == comment.task_id
        assert updated.user_id == "alice"

    def test_update_not_author(self, store, alice_task, clock):
        comment = store.insert_comment(alice_task.id, "alice", "draft", clock())
        assert store.update_comment(comment.id, "bob", "hijack", clock()) is None
        assert store.get_comment(comment.id, author_id="alice").content == "draft"

    def test_delete(self, store, alice_task, clock):
        comment = store.insert_comment(alice_task.id, "alice", "bye", clock())
        assert store.delete_comment(comment.id, "bob") is False
        assert store.delete_comment(comment.id, "alice") is True
        assert store.delete_comment(comment.id, "alice") is False

    def test_content_length_enforced_by_database(self, store, alice_task, clock):
        with pytest.raises(StoreError):
            store.insert_comment(alice_task.id, "alice", "z" * 1001, clock())


class TestCascade:

    def test_deleting_task_deletes_comments(self, store, session_factory, alice_task, clock):
        comment = store.insert_comment(alice_task.id, "alice", "soon gone", clock())
        assert store.delete_task(alice_task.id, owner_id="alice")

        assert store.get_comment(comment.id, author_id="alice") is None
        with session_scope(session_factory) as session:
            assert session.get(Comment, comment.id) is None
            assert session.get(Task, alice_task.id) is None


class TestStoreErrors:

    def test_sqlalchemy_error_wrapped(self):
        factory = init_db(DatabaseConfig(url="sqlite://"))  # no tables
        try:
            store = SqlOwnershipStore(factory)
            with pytest.raises(StoreError) as exc:
                store.list_comments("t1", owner_id="alice")
            assert exc.value.operation == "list_comments"
            assert "no such table" in exc.value.context["detail"]
            assert exc.value.to_dict()["message"] == "Internal server error"

            with pytest.raises(StoreError):
                store.insert_comment("t1", "alice", "x", datetime.now(timezone.utc))
        finally:
            dispose(factory)


class TestTokenStore:

    def test_add_find_revoke(self, token_store):
        token_store.add_token("alice", "abc123", "hash", label="laptop")
        assert token_store.find_active_token("abc123") == ("alice", "hash")
        assert token_store.revoke_token("abc123") is True
        assert token_store.find_active_token("abc123") is None
        assert token_store.revoke_token("abc123") is False

    def test_unknown_prefix(self, token_store):
        assert token_store.find_active_token("nope") is None

    def test_duplicate_prefix(self, token_store):
        token_store.add_token("alice", "dup", "h1")
        with pytest.raises(StoreError):
            token_store.add_token("bob", "dup", "h2")

