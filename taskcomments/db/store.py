"""
Ownership Store — every read and write carries an ownership predicate.

A row the caller does not own is never loaded: lookups are built as
``WHERE id = :id AND user_id = :caller`` so "absent" and "not yours" return
the same ``None`` / ``False``. Each method opens its own session and commits
before returning; no transaction spans two calls.

SQLAlchemy failures are re-raised as StoreError with the driver message kept
for the logs only.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol, Tuple, TypeVar

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from taskcomments.comments.schemas import CommentRecord, TaskRecord
from taskcomments.db.base import new_id
from taskcomments.db.models import ApiToken, Comment, Task
from taskcomments.db.session import session_scope
from taskcomments.engine.errors import StoreError, TaskNotFound

logger = logging.getLogger("taskcomments.db.store")

F = TypeVar("F", bound=Callable)


class OwnershipStore(Protocol):
    """Persistence contract used by the guard and the comment service."""

    def create_task(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        status: str = "pending",
        priority: str = "medium",
        now: Optional[datetime] = None,
    ) -> TaskRecord: ...

    def get_task(self, task_id: str, owner_id: str) -> Optional[TaskRecord]: ...

    def delete_task(self, task_id: str, owner_id: str) -> bool: ...

    def list_comments(self, task_id: str, owner_id: str) -> List[CommentRecord]: ...

    def get_comment(self, comment_id: str, author_id: str) -> Optional[CommentRecord]: ...

    def insert_comment(
        self, task_id: str, author_id: str, content: str, now: datetime
    ) -> CommentRecord: ...

    def update_comment(
        self, comment_id: str, author_id: str, content: str, now: datetime
    ) -> Optional[CommentRecord]: ...

    def delete_comment(self, comment_id: str, author_id: str) -> bool: ...


def _store_operation(operation: str) -> Callable[[F], F]:
    """Translate SQLAlchemy errors into StoreError for one store method."""

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except SQLAlchemyError as e:
                logger.error("Store operation %s failed: %s", operation, e)
                raise StoreError(operation=operation, detail=str(e)) from e

        return wrapper  # type: ignore[return-value]

    return decorator


class SqlOwnershipStore:
    """OwnershipStore backed by SQLAlchemy sessions."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    # -----------------------------------------------------------------------
    # Tasks
    # -----------------------------------------------------------------------

    @_store_operation("create_task")
    def create_task(
        self,
        owner_id: str,
        title: str,
        description: Optional[str] = None,
        status: str = "pending",
        priority: str = "medium",
        now: Optional[datetime] = None,
    ) -> TaskRecord:
        task = Task(
            id=new_id(),
            title=title,
            description=description,
            status=status,
            priority=priority,
            user_id=owner_id,
        )
        if now is not None:
            task.created_at = now
            task.updated_at = now
        with session_scope(self._session_factory) as session:
            session.add(task)
            session.flush()
            return TaskRecord.model_validate(task)

    @_store_operation("get_task")
    def get_task(self, task_id: str, owner_id: str) -> Optional[TaskRecord]:
        stmt = select(Task).where(Task.id == task_id, Task.user_id == owner_id)
        with session_scope(self._session_factory) as session:
            task = session.execute(stmt).scalar_one_or_none()
            return TaskRecord.model_validate(task) if task is not None else None

    @_store_operation("delete_task")
    def delete_task(self, task_id: str, owner_id: str) -> bool:
        """Delete an owned task; the database cascades to its comments."""
        stmt = delete(Task).where(Task.id == task_id, Task.user_id == owner_id)
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).rowcount > 0

    # -----------------------------------------------------------------------
    # Comments
    # -----------------------------------------------------------------------

    @_store_operation("list_comments")
    def list_comments(self, task_id: str, owner_id: str) -> List[CommentRecord]:
        """Comments of an owned task, oldest first."""
        stmt = (
            select(Comment)
            .join(Task, Task.id == Comment.task_id)
            .where(Comment.task_id == task_id, Task.user_id == owner_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
        )
        with session_scope(self._session_factory) as session:
            rows = session.execute(stmt).scalars().all()
            return [CommentRecord.model_validate(c) for c in rows]

    @_store_operation("get_comment")
    def get_comment(self, comment_id: str, author_id: str) -> Optional[CommentRecord]:
        stmt = select(Comment).where(Comment.id == comment_id, Comment.user_id == author_id)
        with session_scope(self._session_factory) as session:
            comment = session.execute(stmt).scalar_one_or_none()
            return CommentRecord.model_validate(comment) if comment is not None else None

    def insert_comment(
        self, task_id: str, author_id: str, content: str, now: datetime
    ) -> CommentRecord:
        """
        Insert a comment. A foreign-key violation means the parent task
        disappeared after authorization and is reported as TaskNotFound.
        """
        comment = Comment(
            id=new_id(),
            content=content,
            task_id=task_id,
            user_id=author_id,
            created_at=now,
            updated_at=now,
        )
        try:
            with session_scope(self._session_factory) as session:
                session.add(comment)
                session.flush()
                return CommentRecord.model_validate(comment)
        except IntegrityError as e:
            if "foreign key" not in str(e.orig).lower():
                logger.error("Store operation insert_comment failed: %s", e)
                raise StoreError(operation="insert_comment", detail=str(e)) from e
            logger.info("Comment insert rejected for task %s: %s", task_id, e.orig)
            raise TaskNotFound(task_id=task_id, user_id=author_id) from e
        except SQLAlchemyError as e:
            logger.error("Store operation insert_comment failed: %s", e)
            raise StoreError(operation="insert_comment", detail=str(e)) from e

    @_store_operation("update_comment")
    def update_comment(
        self, comment_id: str, author_id: str, content: str, now: datetime
    ) -> Optional[CommentRecord]:
        """Update content and updated_at; returns None when no owned row matched."""
        stmt = (
            update(Comment)
            .where(Comment.id == comment_id, Comment.user_id == author_id)
            .values(content=content, updated_at=now)
        )
        with session_scope(self._session_factory) as session:
            if session.execute(stmt).rowcount == 0:
                return None
            comment = session.execute(
                select(Comment).where(Comment.id == comment_id)
            ).scalar_one()
            return CommentRecord.model_validate(comment)

    @_store_operation("delete_comment")
    def delete_comment(self, comment_id: str, author_id: str) -> bool:
        stmt = delete(Comment).where(Comment.id == comment_id, Comment.user_id == author_id)
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).rowcount > 0


class SqlTokenStore:
    """API token rows for the identity provider."""

    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @_store_operation("add_token")
    def add_token(
        self, user_id: str, token_prefix: str, token_hash: str, label: Optional[str] = None
    ) -> None:
        with session_scope(self._session_factory) as session:
            session.add(
                ApiToken(
                    user_id=user_id,
                    token_prefix=token_prefix,
                    token_hash=token_hash,
                    label=label,
                )
            )

    @_store_operation("find_token")
    def find_active_token(self, token_prefix: str) -> Optional[Tuple[str, str]]:
        """Return (user_id, token_hash) for an active token prefix."""
        stmt = select(ApiToken.user_id, ApiToken.token_hash).where(
            ApiToken.token_prefix == token_prefix,
            ApiToken.is_active.is_(True),
        )
        with session_scope(self._session_factory) as session:
            row = session.execute(stmt).first()
            return (row[0], row[1]) if row is not None else None

    @_store_operation("revoke_token")
    def revoke_token(self, token_prefix: str) -> bool:
        stmt = (
            update(ApiToken)
            .where(ApiToken.token_prefix == token_prefix, ApiToken.is_active.is_(True))
            .values(is_active=False)
        )
        with session_scope(self._session_factory) as session:
            return session.execute(stmt).rowcount > 0
