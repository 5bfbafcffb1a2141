"""Comment and task records plus the typed operations the router hands to the service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at", "updated_at", check_fields=False)
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite returns naive datetimes; every stored timestamp is UTC
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CommentRecord(_Record):
    """Comment as returned by the API."""

    id: str
    content: str
    task_id: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    def to_json_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class TaskRecord(_Record):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    priority: str
    user_id: str
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Validated inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CreateCommentInput:
    task_id: str
    content: str


@dataclass(frozen=True)
class UpdateCommentInput:
    comment_id: str
    content: str


# ---------------------------------------------------------------------------
# Operations — one variant per HTTP method
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ListComments:
    task_id: Optional[str]


@dataclass(frozen=True)
class CreateComment:
    payload: Any


@dataclass(frozen=True)
class UpdateComment:
    comment_id: Optional[str]
    payload: Any


@dataclass(frozen=True)
class DeleteComment:
    comment_id: Optional[str]


CommentOperation = Union[ListComments, CreateComment, UpdateComment, DeleteComment]
