"""
Comment Service — validate, authorize, then touch the store.

Every operation:
    1. Requires a caller id (AuthenticationError otherwise)
    2. Validates its input before any store access
    3. Checks ownership through the AuthorizationGuard
    4. Issues one ownership-predicated store call

The service keeps no per-request state; it is safe to share between
concurrent requests.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from taskcomments.comments import validator
from taskcomments.comments.guard import AuthorizationGuard
from taskcomments.comments.schemas import (
    CommentOperation,
    CommentRecord,
    CreateComment,
    DeleteComment,
    ListComments,
    UpdateComment,
)
from taskcomments.db.base import utcnow
from taskcomments.db.store import OwnershipStore
from taskcomments.engine.context import current_execution_id
from taskcomments.engine.errors import AuthenticationError, CommentNotFound
from taskcomments.engine.logging import log, log_comment_operation

logger = logging.getLogger("taskcomments.comments.service")

OperationResult = Union[CommentRecord, List[CommentRecord], Dict[str, Any]]


class CommentService:

    def __init__(
        self,
        store: OwnershipStore,
        guard: Optional[AuthorizationGuard] = None,
        max_content_length: int = validator.MAX_CONTENT_LENGTH,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._store = store
        self._guard = guard or AuthorizationGuard(store)
        self._max_length = max_content_length
        self._clock = clock
        self._handlers: Dict[type, Callable[[str, Any], OperationResult]] = {
            ListComments: lambda caller, op: self.list_comments(caller, op.task_id),
            CreateComment: lambda caller, op: self.create_comment(caller, op.payload),
            UpdateComment: lambda caller, op: self.update_comment(caller, op.comment_id, op.payload),
            DeleteComment: lambda caller, op: self.delete_comment(caller, op.comment_id),
        }

    def execute(self, caller: Optional[str], operation: CommentOperation) -> OperationResult:
        """Run the operation variant built by the router."""
        handler = self._handlers.get(type(operation))
        if handler is None:
            raise TypeError(f"Unsupported comment operation: {type(operation).__name__}")
        return handler(caller, operation)

    # -----------------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------------

    def list_comments(self, caller: Optional[str], task_id: Optional[str]) -> List[CommentRecord]:
        """Comments on an owned task, oldest first. Empty list when none."""
        caller = self._require_caller(caller)
        task_id = validator.validate_task_id(task_id)
        start = time.monotonic()

        self._guard.require_task_owner(caller, task_id, action="list")
        comments = self._store.list_comments(task_id, owner_id=caller)

        self._record("list", caller, start, task_id=task_id, result_count=len(comments))
        return comments

    def create_comment(self, caller: Optional[str], payload: Any) -> CommentRecord:
        """Add a comment to a task the caller owns."""
        caller = self._require_caller(caller)
        data = validator.validate_create(payload, self._max_length)
        start = time.monotonic()

        self._guard.require_task_owner(caller, data.task_id, action="create")
        comment = self._store.insert_comment(
            data.task_id, author_id=caller, content=data.content, now=self._clock()
        )

        self._record("create", caller, start, task_id=data.task_id, comment_id=comment.id)
        return comment

    def update_comment(
        self, caller: Optional[str], comment_id: Optional[str], payload: Any
    ) -> CommentRecord:
        """
        Replace the content of the caller's own comment.
        ``comment_id`` comes from the query string and wins over any ``id``
        in the body.
        """
        caller = self._require_caller(caller)
        comment_id = validator.validate_id(comment_id)
        if isinstance(payload, dict):
            payload = {**payload, "id": comment_id}
        data = validator.validate_update(payload, self._max_length)
        start = time.monotonic()

        self._guard.require_comment_author(caller, data.comment_id, action="update")
        comment = self._store.update_comment(
            data.comment_id, author_id=caller, content=data.content, now=self._clock()
        )
        if comment is None:
            # Deleted between the authorization check and the update
            raise CommentNotFound(comment_id=data.comment_id, user_id=caller)

        self._record("update", caller, start, task_id=comment.task_id, comment_id=comment.id)
        return comment

    def delete_comment(self, caller: Optional[str], comment_id: Optional[str]) -> Dict[str, Any]:
        caller = self._require_caller(caller)
        comment_id = validator.validate_id(comment_id)
        start = time.monotonic()

        self._guard.require_comment_author(caller, comment_id, action="delete")
        if not self._store.delete_comment(comment_id, author_id=caller):
            raise CommentNotFound(comment_id=comment_id, user_id=caller)

        self._record("delete", caller, start, comment_id=comment_id)
        return {"success": True, "id": comment_id}

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _require_caller(caller: Optional[str]) -> str:
        if caller is None or not str(caller).strip():
            raise AuthenticationError()
        return str(caller)

    @staticmethod
    def _record(operation: str, caller: str, start: float, **fields: Any) -> None:
        duration_ms = round((time.monotonic() - start) * 1000, 2)
        logger.debug("comment %s by %s (%s ms)", operation, caller, duration_ms)
        log(log_comment_operation(
            operation=operation,
            execution_id=current_execution_id(),
            user_id=caller,
            duration_ms=duration_ms,
            **fields,
        ))
