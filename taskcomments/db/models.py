"""
Task Comments Models — tasks, comments and API tokens.

Constraints are enforced by the database as well as by the validator:
comment content is non-blank and at most 1000 characters, task status and
priority are closed sets, and deleting a task deletes its comments.
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from taskcomments.db.base import Base, TimestampMixin, new_id, utcnow

TASK_STATUSES = ("pending", "in_progress", "completed")
TASK_PRIORITIES = ("low", "medium", "high")
MAX_COMMENT_LENGTH = 1000


def _in_clause(column: str, values: tuple) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


class Task(TimestampMixin, Base):
    """Work item owned by a single user."""

    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("length(trim(title)) > 0", name="ck_tasks_title_not_blank"),
        CheckConstraint(_in_clause("status", TASK_STATUSES), name="ck_tasks_status"),
        CheckConstraint(_in_clause("priority", TASK_PRIORITIES), name="ck_tasks_priority"),
        Index("ix_tasks_user_id", "user_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    priority = Column(String(20), nullable=False, default="medium")
    user_id = Column(String(64), nullable=False)

    comments = relationship(
        "Comment",
        back_populates="task",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Task(id='{self.id}', title='{self.title}', user_id='{self.user_id}')>"


class Comment(TimestampMixin, Base):
    """Comment on a Task. ``task_id`` and ``user_id`` never change after insert."""

    __tablename__ = "comments"
    __table_args__ = (
        CheckConstraint("length(trim(content)) > 0", name="ck_comments_content_not_blank"),
        CheckConstraint(
            f"length(content) <= {MAX_COMMENT_LENGTH}", name="ck_comments_content_length"
        ),
        Index("ix_comments_task_created", "task_id", "created_at"),
        Index("ix_comments_user_id", "user_id"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    task_id = Column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(String(64), nullable=False)

    task = relationship("Task", back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment(id='{self.id}', task_id='{self.task_id}', user_id='{self.user_id}')>"


class ApiToken(Base):
    """
    Bearer credential for one user. Only the bcrypt hash of the secret part is
    stored; ``token_prefix`` is the public half used to find the row.
    """

    __tablename__ = "api_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(64), nullable=False, index=True)
    token_prefix = Column(String(16), nullable=False, unique=True)
    token_hash = Column(String(128), nullable=False)
    label = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self) -> str:
        return f"<ApiToken(prefix='{self.token_prefix}', user_id='{self.user_id}', active={self.is_active})>"
