"""
Task Comments CLI — Database bootstrap, credentials and server.

Commands:
- taskcomments init-db       — Create tables
- taskcomments issue-token   — Issue an API token for a user (printed once)
- taskcomments revoke-token  — Deactivate a token by its prefix
- taskcomments create-task   — Create a task owned by a user
- taskcomments serve         — Start the HTTP server (uvicorn)
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from taskcomments.engine.errors import CommentsError, ConfigError

logger = logging.getLogger("taskcomments.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskcomments",
        description="Task Comments — ownership-scoped comments on tasks",
    )
    parser.add_argument(
        "--config", default=None, help="Path to taskcomments.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    token_parser = subparsers.add_parser("issue-token", help="Issue an API token for a user")
    token_parser.add_argument("user_id", help="User id the token authenticates as")
    token_parser.add_argument("--label", help="Free-text label for the token")

    revoke_parser = subparsers.add_parser("revoke-token", help="Revoke an API token")
    revoke_parser.add_argument("prefix", help="Token prefix (the part before the '.')")

    task_parser = subparsers.add_parser("create-task", help="Create a task for a user")
    task_parser.add_argument("user_id", help="Owner of the task")
    task_parser.add_argument("title", help="Task title")
    task_parser.add_argument("--description", help="Task description")
    task_parser.add_argument(
        "--priority", choices=["low", "medium", "high"], default="medium", help="Task priority"
    )

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument("--host", help="Host to bind (default: server.host)")
    serve_parser.add_argument("--port", type=int, help="Port to bind (default: server.port)")

    args = parser.parse_args(argv)

    commands = {
        "init-db": cmd_init_db,
        "issue-token": cmd_issue_token,
        "revoke-token": cmd_revoke_token,
        "create-task": cmd_create_task,
        "serve": cmd_serve,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(args)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1
    except CommentsError as e:
        print(f"[ERROR] {e.message}")
        logger.debug("Command %s failed: %r", args.command, e)
        return 1


def _load(args: argparse.Namespace):
    from taskcomments.engine.config import load_config

    return load_config(args.config)


def _session_factory(config, create_tables: bool = True):
    from taskcomments.db.session import init_db

    return init_db(config.database, create_tables=create_tables)


def cmd_init_db(args: argparse.Namespace) -> int:
    config = _load(args)
    _session_factory(config, create_tables=True)
    print(f"[OK] Database tables ready ({config.database.url.split('@')[-1]})")
    return 0


def cmd_issue_token(args: argparse.Namespace) -> int:
    from taskcomments.db.store import SqlTokenStore
    from taskcomments.engine.identity import IdentityProvider

    config = _load(args)
    identity = IdentityProvider(SqlTokenStore(_session_factory(config)), config.security)
    token = identity.issue(args.user_id, label=args.label)
    print(f"[OK] Token for user '{args.user_id}' (shown once):")
    print(f"  {token}")
    return 0


def cmd_revoke_token(args: argparse.Namespace) -> int:
    from taskcomments.db.store import SqlTokenStore
    from taskcomments.engine.identity import IdentityProvider

    config = _load(args)
    identity = IdentityProvider(SqlTokenStore(_session_factory(config)), config.security)
    if not identity.revoke(args.prefix):
        print(f"[ERROR] No active token with prefix '{args.prefix}'")
        return 1
    print(f"[OK] Token '{args.prefix}' revoked")
    return 0


def cmd_create_task(args: argparse.Namespace) -> int:
    from taskcomments.db.store import SqlOwnershipStore

    if not args.title.strip():
        print("[ERROR] Task title cannot be empty")
        return 1

    config = _load(args)
    store = SqlOwnershipStore(_session_factory(config))
    task = store.create_task(
        owner_id=args.user_id,
        title=args.title.strip(),
        description=args.description,
        priority=args.priority,
    )
    print(f"[OK] Task {task.id} created for user '{task.user_id}'")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start uvicorn on the configured host/port."""
    import uvicorn

    from taskcomments.api.server import create_app

    config = _load(args)
    host = args.host or config.server.host
    port = args.port or config.server.port
    print(f"Starting {config.service.name} on http://{host}:{port}{config.server.path}")
    try:
        uvicorn.run(create_app(config), host=host, port=port, log_level=config.logging.level.lower())
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
