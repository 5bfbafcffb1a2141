"""
Task Comments Error Hierarchy — Structured exceptions mapped to HTTP responses.

Every error carries a machine-stable ``code`` and the HTTP ``status_code`` the
router answers with. ``to_dict()`` is the public error body; ``log_dict()``
adds the context that only goes to the logs.

Hierarchy:
    CommentsError
    ├── AuthenticationError      — No / invalid caller credential       (401)
    ├── ValidationError          — Payload or query parameter rejected  (400)
    │   ├── MissingField
    │   ├── MissingParameter
    │   ├── EmptyContent
    │   ├── ContentTooLong
    │   └── InvalidPayload
    ├── ResourceNotFound         — Absent *or* not owned by the caller  (404)
    │   ├── TaskNotFound
    │   └── CommentNotFound
    ├── MethodNotAllowed         — Unsupported HTTP method              (405)
    ├── StoreError               — Unexpected persistence failure       (500)
    └── ConfigError              — Invalid taskcomments.yaml
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional


class CommentsError(Exception):
    """
    Base error for all service failures.
    Subclasses set ``code``, ``status_code`` and ``default_message``.
    """

    code: str = "error"
    status_code: int = 500
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.execution_id: Optional[str] = context.get("execution_id")
        self.user_id: Optional[str] = context.get("user_id")
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Public error body — never contains internal context."""
        return {"error": self.code, "message": self.message}

    def log_dict(self) -> Dict[str, Any]:
        """Serialize error with its context for structured logs."""
        return {
            "error_type": self.error_type,
            "code": self.code,
            "status_code": self.status_code,
            "message": self.message,
            "execution_id": self.execution_id,
            "user_id": self.user_id,
            "timestamp": self.timestamp,
            "context": {
                k: str(v) for k, v in self.context.items()
                if k not in ("execution_id", "user_id")
            },
        }

    def __repr__(self) -> str:
        parts = [f"{self.error_type}({self.code}): {self.message}"]
        if self.execution_id:
            parts.append(f"execution_id={self.execution_id}")
        return " | ".join(parts)


class AuthenticationError(CommentsError):
    """Missing, malformed, unknown or revoked credential."""

    code = "unauthenticated"
    status_code = 401
    default_message = "Authentication required"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(CommentsError):
    """
    Input rejected before any store access.
    ``field`` names the offending payload key or query parameter.
    """

    code = "validation_error"
    status_code = 400
    default_message = "Invalid request"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        if self.field:
            d["field"] = self.field
        return d


class MissingField(ValidationError):
    code = "missing_field"
    default_message = "A required field is missing"


class MissingParameter(ValidationError):
    code = "missing_parameter"
    default_message = "A required query parameter is missing"


class EmptyContent(ValidationError):
    code = "empty_content"
    default_message = "Comment content cannot be empty"


class ContentTooLong(ValidationError):
    code = "content_too_long"
    default_message = "Comment content is too long"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.max_length: Optional[int] = context.get("max_length")
        super().__init__(message, **context)


class InvalidPayload(ValidationError):
    code = "invalid_payload"
    default_message = "Request body must be a JSON object"


# ---------------------------------------------------------------------------
# Authorization / existence
# ---------------------------------------------------------------------------

class ResourceNotFound(CommentsError):
    """
    Raised both when a row is absent and when it belongs to someone else.
    The two cases share one code so callers cannot probe for existence.
    """

    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class TaskNotFound(ResourceNotFound):
    code = "task_not_found"
    default_message = "Task not found"


class CommentNotFound(ResourceNotFound):
    code = "comment_not_found"
    default_message = "Comment not found"


# ---------------------------------------------------------------------------
# Transport / infrastructure
# ---------------------------------------------------------------------------

class MethodNotAllowed(CommentsError):
    code = "method_not_allowed"
    status_code = 405
    default_message = "Method not allowed"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.method: Optional[str] = context.get("method")
        super().__init__(message, **context)


class StoreError(CommentsError):
    """
    Persistence failure. The public message stays generic; the driver error
    is kept in ``context["detail"]`` for the logs only.
    """

    code = "internal_error"
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.operation: Optional[str] = context.get("operation")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.default_message}


class ConfigError(CommentsError):
    """Invalid taskcomments.yaml."""

    code = "config_error"
    default_message = "Invalid configuration"
