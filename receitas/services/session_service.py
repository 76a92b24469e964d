"""
Session Service - Authenticated session state

Holds the bearer token and the user snapshot returned by the backend.
A SessionContext is created on login (or when a known token is presented)
and torn down on logout or when the backend answers 401.
"""

import logging
import threading
import time
from typing import Any, Optional

from receitas.config import settings
from receitas.schemas.identity import IdentityRecord, Role
from receitas.services.normalizer import normalize_identity

logger = logging.getLogger(__name__)


class SessionContext:
    def __init__(self, token: Optional[str] = None, user: Optional[dict] = None):
        self.token: Optional[str] = None
        self.user: Optional[dict] = None
        self.started_at: float = 0.0
        if token:
            self.start(token, user or {})

    def start(self, token: str, user: dict) -> None:
        """Initialize the session with a fresh token and user snapshot."""
        self.token = token
        self.user = dict(user)
        self.started_at = time.time()
        logger.info(
            "Session started for role=%s token=%s...",
            self.user.get("role", "undefined"),
            token[:8],
        )

    def clear(self) -> None:
        """Tear the session down; safe to call more than once."""
        if self.token:
            logger.info("Session cleared (token=%s...)", self.token[:8])
        self.token = None
        self.user = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def identity(self) -> Optional[IdentityRecord]:
        if self.user is None:
            return None
        return normalize_identity(self.user)

    @property
    def is_admin(self) -> bool:
        identity = self.identity
        return identity is not None and identity.role == Role.ADMIN

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def update_user(self, changes: dict[str, Any]) -> None:
        if self.user is not None:
            self.user.update(changes)


class SessionStore:
    """
    In-process registry of sessions keyed by token.

    Contexts are shared by reference: a 401 that clears a context through
    the backend client also drops it from the store on the next lookup.
    Sessions older than `ttl_seconds` are expired on lookup and swept every
    CLEANUP_EVERY operations.
    """

    CLEANUP_EVERY = 100

    def __init__(self, ttl_seconds: Optional[int] = None):
        self._sessions: dict[str, SessionContext] = {}
        self._lock = threading.Lock()
        self._operation_count = 0
        self.ttl_seconds = (
            settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def open(self, token: str, user: dict) -> SessionContext:
        context = SessionContext(token, user)
        with self._lock:
            self._tick_unlocked()
            self._sessions[token] = context
        return context

    def get(self, token: Optional[str]) -> Optional[SessionContext]:
        if not token:
            return None
        with self._lock:
            self._tick_unlocked()
            context = self._sessions.get(token)
            if context is None:
                return None
            if not context.is_authenticated or self._expired(context, time.time()):
                del self._sessions[token]
                context.clear()
                return None
        return context

    def close(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            context = self._sessions.pop(token, None)
        if context is not None:
            context.clear()

    def cleanup_expired(self) -> int:
        """Remove sessões expiradas ou limpas; retorna quantas foram removidas."""
        with self._lock:
            return self._cleanup_unlocked()

    def _expired(self, context: SessionContext, now: float) -> bool:
        return now - context.started_at > self.ttl_seconds

    def _tick_unlocked(self) -> None:
        self._operation_count += 1
        if self._operation_count >= self.CLEANUP_EVERY:
            self._cleanup_unlocked()

    def _cleanup_unlocked(self) -> int:
        """Deve ser chamado com lock já mantido."""
        now = time.time()
        stale = [
            token
            for token, context in self._sessions.items()
            if not context.is_authenticated or self._expired(context, now)
        ]
        for token in stale:
            self._sessions.pop(token).clear()
        if stale:
            logger.info("Expired %d session(s)", len(stale))
        self._operation_count = 0
        return len(stale)


session_store = SessionStore()
