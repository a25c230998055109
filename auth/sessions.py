"""
auth/sessions.py -- Server-side session lifecycle.

State of a session row, as seen by validate():

  Active      expires_at - now >  renew threshold   returned unchanged
  NearExpiry  0 < expires_at - now <= threshold     expiry pushed to now + duration
  Expired     expires_at <= now                     deleted (lazy expiry), None
  Deleted     no row                                None

renew threshold = duration * renew_ratio (half the lifetime by default), so
a session in continuous use never lapses, and an idle one dies duration after
its last renewal.

Security design decisions:
  Session ids: 20 bytes (160 bits) from secrets.token_bytes(), lower-case
       base32 without padding. Nothing about the user or the time goes into
       the id; it is a pure bearer credential.

  No in-process state: every call round-trips the store. Two requests that
       validate the same session at the renewal boundary may both write a new
       expiry; the writes are equivalent, so no lock is taken.

  Errors: StorageFailure from the store propagates unchanged. "Not found" and
       "expired" are normal None results, never exceptions.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import base64
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta

from auth.models import Session, SessionValidation, UserIdentity
from auth.store import AuthStore
from core.clock import Clock, truncate_to_millis, utc_now
from core.config import Settings

logger = logging.getLogger("authgate.auth")

_SESSION_ID_BYTES = 20
_USER_ID_BYTES = 16


@dataclass(frozen=True)
class SessionPolicy:
    """Explicit session configuration passed to SessionManager.

    Built from Settings in production (from_settings) and constructed
    directly in tests.
    """

    duration: timedelta = timedelta(days=30)
    renew_ratio: float = 0.5
    delete_expired_on_read: bool = True
    cookie_name: str = "auth_session"

    @property
    def renew_threshold(self) -> timedelta:
        return self.duration * self.renew_ratio

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionPolicy":
        return cls(
            duration=timedelta(seconds=settings.session_duration_seconds),
            renew_ratio=settings.session_renew_ratio,
            delete_expired_on_read=settings.session_delete_expired_on_read,
            cookie_name=settings.session_cookie_name,
        )


# ---------------------------------------------------------------------------
# Identifier generation
# ---------------------------------------------------------------------------


def generate_session_id() -> str:
    """Return a 160-bit random session id as 32 lower-case base32 characters."""
    raw = secrets.token_bytes(_SESSION_ID_BYTES)
    return base64.b32encode(raw).decode("ascii").rstrip("=").lower()


def generate_user_id() -> str:
    """Return a 128-bit random user id as 32 lower-case hex characters."""
    return secrets.token_hex(_USER_ID_BYTES)


def _short(session_id: str) -> str:
    # Log only a prefix: the full id is a bearer credential.
    return session_id[:6]


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class SessionManager:
    """Create, validate and invalidate sessions against an AuthStore.

    Usage:
        manager = SessionManager(store, SessionPolicy.from_settings(get_settings()))
        session = manager.create(user.id)
        result = manager.validate(session.id)   # SessionValidation or None
        manager.invalidate(session.id)
    """

    def __init__(self, store: AuthStore, policy: SessionPolicy | None = None, clock: Clock = utc_now) -> None:
        self.store = store
        self.policy = policy or SessionPolicy()
        self._clock = clock

    def _now(self):
        return truncate_to_millis(self._clock())

    def create(self, user_id: str) -> Session:
        """Persist and return a new session for user_id expiring now + duration."""
        session = Session(
            id=generate_session_id(),
            user_id=user_id,
            expires_at=truncate_to_millis(self._now() + self.policy.duration),
        )
        self.store.insert_session(session)
        logger.info("Session %s... created for user %s", _short(session.id), user_id)
        return session

    def validate(self, session_id: str | None) -> SessionValidation | None:
        """Resolve a bearer session id to its session and owning user.

        Returns None if the id is empty, unknown or expired. An expired row
        is deleted on the way out unless the policy defers cleanup to
        purge_expired(). A session inside the renewal window has its expiry
        moved to now + duration before returning, with renewed=True.
        """
        if not session_id:
            return None
        record = self.store.find_session_with_user(session_id)
        if record is None:
            return None

        now = self._now()
        if record.expires_at <= now:
            if self.policy.delete_expired_on_read:
                self.store.delete_session(record.id)
                logger.info("Session %s... expired and deleted", _short(record.id))
            return None

        expires_at = record.expires_at
        renewed = False
        if expires_at - now <= self.policy.renew_threshold:
            expires_at = truncate_to_millis(now + self.policy.duration)
            self.store.update_session_expiry(record.id, expires_at)
            renewed = True
            logger.debug("Session %s... renewed", _short(record.id))

        return SessionValidation(
            session=Session(id=record.id, user_id=record.user_id, expires_at=expires_at),
            user=UserIdentity(id=record.user_id, email=record.email),
            renewed=renewed,
        )

    def invalidate(self, session_id: str | None) -> None:
        """Delete the session if it exists. Unknown or empty ids are a no-op."""
        if not session_id:
            return
        if self.store.delete_session(session_id):
            logger.info("Session %s... invalidated", _short(session_id))

    def invalidate_all(self, user_id: str) -> int:
        """Delete every session belonging to user_id. Returns the number removed."""
        return self.store.delete_user_sessions(user_id)

    def purge_expired(self) -> int:
        """Delete all logically dead sessions. Returns the number removed."""
        removed = self.store.delete_expired_sessions(self._now())
        if removed:
            logger.info("Purged %d expired session(s)", removed)
        return removed
