"""Session-token identity provider for the HTTP layer."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone
from threading import RLock
from typing import Callable, Optional

from motel.domain.models import Identity
from motel.repository.data_repository import DataRepository
from motel.utils.config import Settings, get_settings
from motel.utils.logger import get_logger


logger = get_logger(__name__)


class AuthenticationError(Exception):
    """Base authentication failure."""


class AdminTokenNotConfiguredError(AuthenticationError):
    """Raised when ADMIN_TOKEN is missing."""


class InvalidAdminTokenError(AuthenticationError):
    """Raised when provided admin token is invalid."""


class InvalidSessionTokenError(AuthenticationError):
    """Raised when a bearer token maps to no session."""


class AuthService:
    """Issues bearer sessions and resolves them to caller identities.

    Sessions live in memory and expire ``session_ttl_seconds`` after login.
    Expired entries are dropped whenever a session is opened or resolved.
    """

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._sessions: dict[str, tuple[Identity, datetime]] = {}
        self._lock = RLock()

    @property
    def active_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _expected_admin_token(self) -> str:
        if not self._settings.admin_token:
            raise AdminTokenNotConfiguredError(
                "ADMIN_TOKEN is not configured. Set ADMIN_TOKEN in environment variables."
            )
        return self._settings.admin_token

    def _prune_expired(self, now: datetime) -> None:
        cutoff = now - timedelta(seconds=self._settings.session_ttl_seconds)
        expired = [token for token, (_, issued_at) in self._sessions.items() if issued_at <= cutoff]
        for token in expired:
            del self._sessions[token]
        if expired:
            logger.info("Expired sessions dropped | count=%s", len(expired))

    def login(self, user_id: str, admin_token: Optional[str] = None) -> str:
        """Register ``user_id`` if needed and open a session for it."""
        is_admin = False
        if admin_token is not None:
            expected = self._expected_admin_token()
            if not secrets.compare_digest(admin_token, expected):
                raise InvalidAdminTokenError("Invalid admin token")
            is_admin = True

        now = self._clock()
        self._repository.ensure_user(user_id, is_admin, now)
        session_token = secrets.token_urlsafe(32)
        with self._lock:
            self._prune_expired(now)
            self._sessions[session_token] = (Identity(user_id=user_id, is_admin=is_admin), now)
        logger.info("Session opened | user_id=%s | is_admin=%s", user_id, is_admin)
        return session_token

    def resolve(self, bearer_token: str) -> Identity:
        with self._lock:
            self._prune_expired(self._clock())
            for session_token, (identity, _) in self._sessions.items():
                if secrets.compare_digest(bearer_token, session_token):
                    return identity
        raise InvalidSessionTokenError("Invalid bearer token")

    def logout(self, bearer_token: str) -> None:
        with self._lock:
            self._sessions.pop(bearer_token, None)
