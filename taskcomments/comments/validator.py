"""
Comment payload validation — pure functions, no store access.

Content rules: a string whose trimmed form is non-empty and at most
``max_length`` characters. The trimmed form is what gets stored.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from taskcomments.comments.schemas import CreateCommentInput, UpdateCommentInput
from taskcomments.engine.errors import (
    ContentTooLong,
    EmptyContent,
    InvalidPayload,
    MissingField,
    MissingParameter,
)

MAX_CONTENT_LENGTH = 1000


def _require_mapping(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise InvalidPayload()
    return payload


def _require_field(payload: Mapping[str, Any], name: str) -> Any:
    value = payload.get(name)
    if value is None:
        raise MissingField(f"Missing required field: {name}", field=name)
    return value


def _require_identifier(payload: Mapping[str, Any], name: str) -> str:
    value = _require_field(payload, name)
    if not isinstance(value, (str, int)) or isinstance(value, bool):
        raise InvalidPayload(f"Field '{name}' must be a string", field=name)
    value = str(value).strip()
    if not value:
        raise MissingField(f"Missing required field: {name}", field=name)
    return value


def validate_content(value: Any, max_length: int = MAX_CONTENT_LENGTH) -> str:
    """Return trimmed content or raise EmptyContent / ContentTooLong."""
    if not isinstance(value, str):
        raise InvalidPayload("Field 'content' must be a string", field="content")
    content = value.strip()
    if not content:
        raise EmptyContent(field="content")
    if len(content) > max_length:
        raise ContentTooLong(
            f"Comment content must be at most {max_length} characters",
            field="content",
            max_length=max_length,
        )
    return content


def validate_create(payload: Any, max_length: int = MAX_CONTENT_LENGTH) -> CreateCommentInput:
    payload = _require_mapping(payload)
    if payload.get("content") is None:
        raise MissingField("Missing required field: content", field="content")
    task_id = _require_identifier(payload, "task_id")
    content = validate_content(payload["content"], max_length)
    return CreateCommentInput(task_id=task_id, content=content)


def validate_update(payload: Any, max_length: int = MAX_CONTENT_LENGTH) -> UpdateCommentInput:
    payload = _require_mapping(payload)
    comment_id = _require_identifier(payload, "id")
    content = validate_content(_require_field(payload, "content"), max_length)
    return UpdateCommentInput(comment_id=comment_id, content=content)


def _validate_parameter(value: Optional[str], name: str) -> str:
    if value is None or not str(value).strip():
        raise MissingParameter(f"Missing required query parameter: {name}", field=name)
    return str(value).strip()


def validate_id(param: Optional[str]) -> str:
    return _validate_parameter(param, "id")


def validate_task_id(param: Optional[str]) -> str:
    return _validate_parameter(param, "task_id")
