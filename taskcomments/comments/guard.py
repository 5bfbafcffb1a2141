"""
Authorization Guard — ownership checks for comments and their parent tasks.

Each check is a single ownership-predicated lookup, so a task or comment that
exists but belongs to someone else is indistinguishable from one that does
not exist. Results are never cached; ownership can change between requests
when a parent task is deleted.
"""

from __future__ import annotations

import logging

from taskcomments.db.store import OwnershipStore
from taskcomments.engine.context import current_execution_id
from taskcomments.engine.errors import CommentNotFound, TaskNotFound
from taskcomments.engine.logging import log, log_security_event

logger = logging.getLogger("taskcomments.comments.guard")


class AuthorizationGuard:

    def __init__(self, store: OwnershipStore):
        self._store = store

    def can_create_comment(self, caller: str, task_id: str) -> bool:
        """True iff ``task_id`` exists and is owned by ``caller``."""
        return self._store.get_task(task_id, owner_id=caller) is not None

    def can_mutate_comment(self, caller: str, comment_id: str) -> bool:
        """True iff ``comment_id`` exists and was written by ``caller``."""
        return self._store.get_comment(comment_id, author_id=caller) is not None

    def require_task_owner(self, caller: str, task_id: str, action: str = "create") -> None:
        if not self.can_create_comment(caller, task_id):
            self._deny(caller, "task", task_id, action)
            raise TaskNotFound(task_id=task_id, user_id=caller)

    def require_comment_author(self, caller: str, comment_id: str, action: str) -> None:
        if not self.can_mutate_comment(caller, comment_id):
            self._deny(caller, "comment", comment_id, action)
            raise CommentNotFound(comment_id=comment_id, user_id=caller)

    @staticmethod
    def _deny(caller: str, resource_type: str, resource_id: str, action: str) -> None:
        logger.info("Denied %s on %s %s for user %s", action, resource_type, resource_id, caller)
        log(log_security_event(
            event="access_denied",
            user_id=caller,
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            execution_id=current_execution_id(),
        ))
