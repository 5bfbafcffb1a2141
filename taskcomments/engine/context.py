"""
Task Comments Execution Context — Per-request caller state via contextvars.

The router creates one ExecutionContext per authenticated request and clears
it when the response is built. Nothing in it outlives the request.

Usage:
    from taskcomments.engine.context import (
        ExecutionContext,
        set_execution_context,
        get_execution_context,
        clear_execution_context,
    )
"""

from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Optional

current_execution_context: ContextVar[Optional["ExecutionContext"]] = ContextVar(
    "execution_context", default=None
)


def new_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex[:12]}"


@dataclass
class ExecutionContext:
    """Verified caller identity for the current request."""

    user_id: str
    execution_id: str = field(default_factory=new_execution_id)
    token_prefix: Optional[str] = None
    client_ip: Optional[str] = None


def set_execution_context(ctx: ExecutionContext) -> None:
    """Set the execution context for the current thread/task."""
    current_execution_context.set(ctx)


def get_execution_context() -> Optional[ExecutionContext]:
    """Get the current execution context. Returns None if not set."""
    return current_execution_context.get()


def clear_execution_context() -> None:
    """Clear the execution context (end of request)."""
    current_execution_context.set(None)


def current_execution_id() -> Optional[str]:
    ctx = get_execution_context()
    return ctx.execution_id if ctx else None
