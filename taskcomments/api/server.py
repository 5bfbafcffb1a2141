"""
Task Comments HTTP Server — FastAPI application around CommentRouter.

Routes:
    {server.path}   every method; CommentRouter answers unsupported ones with 405
    /health         Liveness probe, no auth

Run:
    taskcomments serve
    uvicorn "taskcomments.api.server:create_app" --factory --port 8000
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from sqlalchemy.orm import sessionmaker

from taskcomments import __version__
from taskcomments.api.router import APIRequest, APIResponse, CommentRouter
from taskcomments.comments.guard import AuthorizationGuard
from taskcomments.comments.service import CommentService
from taskcomments.db.session import dispose, init_db
from taskcomments.db.store import SqlOwnershipStore, SqlTokenStore
from taskcomments.engine.config import AppConfig, get_config
from taskcomments.engine.identity import IdentityProvider
from taskcomments.engine.logging import (
    get_log_queue,
    init_logging,
    log,
    log_system_event,
    shutdown_logging,
)

logger = logging.getLogger("taskcomments.api.server")


async def starlette_to_api_request(request: Request) -> APIRequest:
    """
    Convert a Starlette/FastAPI Request to the normalized APIRequest.

    A body that is not valid JSON is passed on as its raw text so the
    validator rejects it as an invalid payload.
    """
    body = None
    if request.method in ("POST", "PUT", "PATCH"):
        raw = await request.body()
        if raw:
            try:
                body = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError):
                body = raw.decode("utf-8", errors="replace")

    return APIRequest(
        method=request.method,
        path=request.url.path,
        query_params=dict(request.query_params),
        headers={k.lower(): v for k, v in request.headers.items()},
        body=body,
        client_ip=request.client.host if request.client else None,
    )


def to_starlette_response(response: APIResponse) -> Response:
    if response.body is None:
        return Response(status_code=response.status_code, headers=response.headers)
    return JSONResponse(
        content=response.body,
        status_code=response.status_code,
        headers=response.headers,
    )


class CommentsEndpoint:
    """ASGI endpoint handing every request on the comments path to CommentRouter."""

    def __init__(self, router: CommentRouter):
        self.router = router

    async def __call__(self, scope, receive, send) -> None:
        api_request = await starlette_to_api_request(Request(scope, receive))
        response = await run_in_threadpool(self.router.handle, api_request)
        await to_starlette_response(response)(scope, receive, send)


def build_router(config: AppConfig, session_factory: sessionmaker) -> CommentRouter:
    """Wire store → guard → service → router for one configuration."""
    store = SqlOwnershipStore(session_factory)
    service = CommentService(
        store,
        guard=AuthorizationGuard(store),
        max_content_length=config.comments.max_content_length,
    )
    identity = IdentityProvider(SqlTokenStore(session_factory), config.security)
    return CommentRouter(service, identity, config.cors)


def create_app(
    config: Optional[AppConfig] = None,
    session_factory: Optional[sessionmaker] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Loaded configuration; defaults to get_config().
        session_factory: Existing session factory (tests); when omitted one is
                         created from ``config.database``.
    """
    config = config or get_config()
    logging.getLogger("taskcomments").setLevel(config.logging.level)

    owns_factory = session_factory is None
    if session_factory is None:
        session_factory = init_db(config.database, create_tables=config.service.environment == "dev")

    router = build_router(config, session_factory)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config.logging.structured:
            queue_cfg = config.logging.async_queue
            init_logging(
                log_dir=config.logging.directory,
                flush_interval_ms=queue_cfg.flush_interval_ms,
                flush_batch_size=queue_cfg.flush_batch_size,
                max_queue_size=queue_cfg.max_queue_size,
            )
        log(log_system_event("service_started", details={
            "version": __version__,
            "environment": config.service.environment,
            "path": config.server.path,
        }))
        logger.info("%s %s listening on %s", config.service.name, __version__, config.server.path)
        try:
            yield
        finally:
            log(log_system_event("service_stopped"))
            shutdown_logging()
            if owns_factory:
                dispose(session_factory)

    app = FastAPI(
        title=config.service.name,
        description="Ownership-scoped comments on tasks",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health_check():
        health = {"status": "healthy", "version": __version__}
        queue = get_log_queue()
        if queue is not None:
            health["log_queue"] = {"pending": queue.pending_count, "dropped": queue.dropped_count}
        return health

    # ASGI endpoints carry no method filter; CommentRouter answers unsupported ones with 405
    app.add_route(config.server.path, CommentsEndpoint(router), include_in_schema=False)

    app.state.comment_router = router
    return app
