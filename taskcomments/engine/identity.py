"""
Identity Provider — Bearer token verification.

Tokens have the form ``<prefix>.<secret>``. The prefix is stored in clear and
locates the row; the secret is checked against a bcrypt hash, so a database
leak does not leak usable credentials. A token is shown once when issued.

Header lookup order: ``Authorization: Bearer <token>``, then the configured
fallback header (``apikey``).
"""

from __future__ import annotations

import logging
import secrets
from typing import Mapping, Optional, Protocol, Tuple

import bcrypt

from taskcomments.engine.config import SecurityConfig
from taskcomments.engine.context import ExecutionContext
from taskcomments.engine.errors import AuthenticationError
from taskcomments.engine.logging import log, log_security_event

logger = logging.getLogger("taskcomments.engine.identity")

PREFIX_BYTES = 6
SECRET_BYTES = 32
# bcrypt rejects secrets longer than 72 bytes
MAX_SECRET_BYTES = 72


class TokenStore(Protocol):
    def add_token(
        self, user_id: str, token_prefix: str, token_hash: str, label: Optional[str] = None
    ) -> None: ...

    def find_active_token(self, token_prefix: str) -> Optional[Tuple[str, str]]: ...

    def revoke_token(self, token_prefix: str) -> bool: ...


def hash_secret(secret: str, rounds: int = 12) -> str:
    """Hash a token secret using bcrypt."""
    return bcrypt.hashpw(secret.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_secret(secret: str, secret_hash: str) -> bool:
    """Verify a token secret against its bcrypt hash."""
    return bcrypt.checkpw(secret.encode("utf-8"), secret_hash.encode("utf-8"))


def generate_token(rounds: int = 12) -> Tuple[str, str, str]:
    """
    Generate a new API token.

    Returns:
        Tuple of (token, token_prefix, secret_hash). Only the prefix and hash
        are stored.
    """
    prefix = secrets.token_hex(PREFIX_BYTES)
    secret = secrets.token_urlsafe(SECRET_BYTES)
    return f"{prefix}.{secret}", prefix, hash_secret(secret, rounds)


def extract_token(headers: Mapping[str, str], config: SecurityConfig) -> Optional[str]:
    """Pull the raw credential out of lower-cased request headers."""
    auth = headers.get(config.token_header.lower(), "").strip()
    if auth:
        scheme, _, value = auth.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            return value.strip()
        return None
    fallback = headers.get(config.fallback_token_header.lower(), "").strip()
    return fallback or None


class IdentityProvider:
    """Verifies request credentials and yields the caller's user id."""

    def __init__(self, token_store: TokenStore, config: Optional[SecurityConfig] = None):
        self._tokens = token_store
        self._config = config or SecurityConfig()

    def verify(self, headers: Mapping[str, str]) -> str:
        """Verify the request credential and return the caller's user id."""
        return self.authenticate(headers).user_id

    def authenticate(
        self, headers: Mapping[str, str], client_ip: Optional[str] = None
    ) -> ExecutionContext:
        """
        Verify the request credential.

        Args:
            headers: Request headers with lower-cased names.
            client_ip: Remote address, carried into the context for logging.

        Returns:
            ExecutionContext for the caller, including the token prefix.

        Raises:
            AuthenticationError: Missing, malformed, unknown or revoked token.
        """
        token = extract_token(headers, self._config)
        if token is None:
            raise AuthenticationError("Missing bearer token")

        prefix, sep, secret = token.partition(".")
        oversized = len(secret.encode("utf-8")) > MAX_SECRET_BYTES
        if not sep or not prefix or not secret or oversized:
            self._deny(prefix or None, "malformed_token")
            raise AuthenticationError("Invalid token")

        found = self._tokens.find_active_token(prefix)
        if found is None or not verify_secret(secret, found[1]):
            self._deny(prefix, "invalid_token")
            raise AuthenticationError("Invalid token")
        return ExecutionContext(user_id=found[0], token_prefix=prefix, client_ip=client_ip)

    def issue(self, user_id: str, label: Optional[str] = None) -> str:
        """Create and store a token for ``user_id``; returns the plain token."""
        token, prefix, secret_hash = generate_token(self._config.token_hash_rounds)
        self._tokens.add_token(user_id, prefix, secret_hash, label)
        logger.info("Issued API token %s for user %s", prefix, user_id)
        return token

    def revoke(self, token_prefix: str) -> bool:
        revoked = self._tokens.revoke_token(token_prefix)
        if revoked:
            logger.info("Revoked API token %s", token_prefix)
        return revoked

    @staticmethod
    def _deny(prefix: Optional[str], reason: str) -> None:
        logger.warning("Authentication failed: %s (prefix=%s)", reason, prefix)
        log(log_security_event(
            event="authentication_failed",
            user_id=None,
            resource_type="token",
            resource_id=prefix,
            action=reason,
        ))
