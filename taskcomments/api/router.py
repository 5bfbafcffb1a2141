"""
Comment Request Router — One endpoint, dispatched by HTTP method.

Pipeline (per-request):
    1. OPTIONS → CORS pre-flight answer, nothing else
    2. Build the typed operation for the method (unsupported → 405)
    3. Authenticate → ExecutionContext via IdentityProvider.authenticate()
    4. CommentService.execute()
    5. Serialize result or error; every response carries CORS headers

Framework-agnostic: works on normalized APIRequest / APIResponse models. The
FastAPI adapter lives in taskcomments.api.server.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from taskcomments.comments.schemas import (
    CommentOperation,
    CommentRecord,
    CreateComment,
    DeleteComment,
    ListComments,
    UpdateComment,
)
from taskcomments.comments.service import CommentService
from taskcomments.engine.config import CORSConfig
from taskcomments.engine.context import (
    ExecutionContext,
    clear_execution_context,
    new_execution_id,
    set_execution_context,
)
from taskcomments.engine.errors import CommentsError, MethodNotAllowed, StoreError
from taskcomments.engine.identity import IdentityProvider
from taskcomments.engine.logging import log, log_api_request

logger = logging.getLogger("taskcomments.api.router")


# ---------------------------------------------------------------------------
# Request / Response Models
# ---------------------------------------------------------------------------

class APIRequest(BaseModel):
    """Normalized inbound request. Header names are lower-cased."""

    method: str
    path: str = "/"
    query_params: Dict[str, str] = Field(default_factory=dict)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Any = None
    client_ip: Optional[str] = None


class APIResponse(BaseModel):
    """Normalized outbound response. ``body`` of None means no content."""

    status_code: int = 200
    body: Any = None
    headers: Dict[str, str] = Field(default_factory=dict)


# method → (operation builder, success status)
_OPERATIONS: Dict[str, Tuple[Callable[[APIRequest], CommentOperation], int]] = {
    "GET": (lambda r: ListComments(task_id=r.query_params.get("task_id")), 200),
    "POST": (lambda r: CreateComment(payload=r.body), 201),
    "PUT": (lambda r: UpdateComment(comment_id=r.query_params.get("id"), payload=r.body), 200),
    "DELETE": (lambda r: DeleteComment(comment_id=r.query_params.get("id")), 200),
}

SUPPORTED_METHODS = tuple(_OPERATIONS) + ("OPTIONS",)


def build_operation(request: APIRequest) -> CommentOperation:
    """Map method + query/body to an operation variant or raise MethodNotAllowed."""
    entry = _OPERATIONS.get(request.method.upper())
    if entry is None:
        raise MethodNotAllowed(
            f"Method {request.method} not allowed", method=request.method
        )
    return entry[0](request)


def serialize_result(result: Any) -> Any:
    if isinstance(result, CommentRecord):
        return result.to_json_dict()
    if isinstance(result, list):
        return [serialize_result(item) for item in result]
    return result


class CommentRouter:
    """Handles every request to the comments endpoint."""

    def __init__(
        self,
        service: CommentService,
        identity: IdentityProvider,
        cors: Optional[CORSConfig] = None,
    ):
        self._service = service
        self._identity = identity
        self._cors_headers = (cors or CORSConfig()).headers()

    def handle(self, request: APIRequest) -> APIResponse:
        method = request.method.upper()
        if method == "OPTIONS":
            return self._respond(204, None)

        start = time.monotonic()
        ctx: Optional[ExecutionContext] = None
        error_code: Optional[str] = None
        try:
            operation = build_operation(request)
            ctx = self._identity.authenticate(request.headers, client_ip=request.client_ip)
            set_execution_context(ctx)

            result = self._service.execute(ctx.user_id, operation)
            response = self._respond(_OPERATIONS[method][1], serialize_result(result))

        except StoreError as e:
            error_code = e.code
            logger.error("Store failure on %s %s: %s", method, request.path, e.log_dict())
            response = self._respond(e.status_code, e.to_dict())

        except CommentsError as e:
            error_code = e.code
            response = self._respond(e.status_code, e.to_dict())

        except Exception as e:
            error_code = "internal_error"
            logger.exception("Unhandled error on %s %s: %s", method, request.path, e)
            response = self._respond(
                500, {"error": "internal_error", "message": "Internal server error"}
            )

        finally:
            clear_execution_context()

        duration_ms = round((time.monotonic() - start) * 1000, 2)
        log(log_api_request(
            execution_id=ctx.execution_id if ctx else new_execution_id(),
            user_id=ctx.user_id if ctx else None,
            method=method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            error_code=error_code,
            client_ip=request.client_ip,
            token_prefix=ctx.token_prefix if ctx else None,
        ))
        return response

    def _respond(self, status_code: int, body: Any) -> APIResponse:
        return APIResponse(status_code=status_code, body=body, headers=dict(self._cors_headers))

