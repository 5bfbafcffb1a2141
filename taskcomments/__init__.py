"""
Task Comments — Ownership-scoped comment service for tasks.

Layout:
    taskcomments.engine    — config, errors, identity, context, structured logging
    taskcomments.db        — SQLAlchemy models, sessions, ownership store
    taskcomments.comments  — validator, authorization guard, comment service
    taskcomments.api       — request router and FastAPI server
"""

__version__ = "1.0.0"
__all__ = ["engine", "db", "comments", "api"]
