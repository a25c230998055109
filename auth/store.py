"""
auth/store.py -- SQLAlchemy Core persistence layer for users and sessions.

Pattern: Repository + Data Mapper. AuthStore is the repository;
_row_to_user / _row_to_session_record are the mappers. The session manager
and route code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  sessions.id is the primary key, so session-id uniqueness is a store-level
  invariant rather than something the caller has to check.

Integrity:
  sessions.user_id references users.id ON DELETE CASCADE. SQLite ignores
  foreign keys unless PRAGMA foreign_keys=ON is issued on every connection,
  so _set_sqlite_pragmas runs it alongside WAL mode.

Errors:
  IntegrityError on users.email  -> ConflictFailure
  any other SQLAlchemyError      -> StorageFailure (cause chained)
  Nothing is retried here; retry policy belongs to the caller.

Timestamps are INTEGER epoch milliseconds (core.clock.to_millis).

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import BigInteger, Column, ForeignKey, Index, MetaData, String, Table, create_engine, event, select, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import ConflictFailure, StorageFailure
from auth.models import Session, SessionRecord, User
from core.clock import from_millis, to_millis
from core.config import get_settings

logger = logging.getLogger("authgate.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    Column("created_at", BigInteger, nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("id", String(64), primary_key=True),
    Column("user_id", String(64), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("expires_at", BigInteger, nullable=False),
)

Index("idx_sessions_user_id", _sessions.c.user_id)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign-key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Without foreign_keys=ON the ON DELETE CASCADE
    on sessions.user_id is silently ignored.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AuthStore:
    """Repository for User and Session rows.

    Usage:
        store = AuthStore("sqlite:///:memory:")
        store.insert_user(User(id=..., email="a@example.com", password_hash=..., created_at=...))
        record = store.find_session_with_user(session_id)
        store.close()
    """

    def __init__(self, db_url: str | None = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        try:
            self.engine: Engine = create_engine(db_url, connect_args=connect_args)
            if db_url.startswith("sqlite"):
                event.listen(self.engine, "connect", _set_sqlite_pragmas)
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StorageFailure(f"could not initialise auth store: {type(exc).__name__}") from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a connection inside a transaction; map driver errors to StorageFailure."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Auth store operation failed: %s", exc)
            raise StorageFailure(f"auth store unavailable: {type(exc).__name__}") from exc

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def insert_user(self, user: User) -> None:
        """Insert a new user.

        Raises ConflictFailure if the email (or, astronomically unlikely,
        the id) already exists. The unique constraint is the backstop for
        the pre-check in accounts.register_user() racing a concurrent
        registration of the same address.
        """
        try:
            with self._connect() as conn:
                conn.execute(
                    _users.insert().values(
                        id=user.id,
                        email=user.email,
                        password_hash=user.password_hash,
                        created_at=to_millis(user.created_at),
                    )
                )
        except IntegrityError as exc:
            raise ConflictFailure("email already registered") from exc

    def get_user_by_email(self, email: str) -> User | None:
        """Look up a user by normalized email. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_user_by_id(self, user_id: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def delete_user(self, user_id: str) -> bool:
        """Delete a user; their sessions go with them (ON DELETE CASCADE).

        Returns True if a row was deleted, False if user_id was not found.
        """
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def insert_session(self, session: Session) -> None:
        """Insert a session row. A duplicate id or unknown user_id is a StorageFailure."""
        try:
            with self._connect() as conn:
                conn.execute(
                    _sessions.insert().values(
                        id=session.id,
                        user_id=session.user_id,
                        expires_at=to_millis(session.expires_at),
                    )
                )
        except IntegrityError as exc:
            raise StorageFailure("session write rejected") from exc

    def find_session_with_user(self, session_id: str) -> SessionRecord | None:
        """Return the session joined with its owner's email, or None if absent.

        Expiry is not checked here: an expired row is still returned so the
        caller can decide whether to delete it.
        """
        query = (
            select(_sessions.c.id, _sessions.c.user_id, _sessions.c.expires_at, _users.c.email)
            .select_from(_sessions.join(_users, _sessions.c.user_id == _users.c.id))
            .where(_sessions.c.id == session_id)
        )
        with self._connect() as conn:
            row = conn.execute(query).fetchone()
        return _row_to_session_record(row) if row is not None else None

    def update_session_expiry(self, session_id: str, expires_at: datetime) -> None:
        with self._connect() as conn:
            conn.execute(
                _sessions.update().where(_sessions.c.id == session_id).values(expires_at=to_millis(expires_at))
            )

    def delete_session(self, session_id: str) -> bool:
        """Delete one session. Returns False (not an error) if it did not exist."""
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.id == session_id))
        return result.rowcount > 0

    def delete_user_sessions(self, user_id: str) -> int:
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.user_id == user_id))
        return result.rowcount

    def delete_expired_sessions(self, now: datetime) -> int:
        """Delete every session with expires_at <= now. Returns rows removed."""
        with self._connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= to_millis(now)))
        return result.rowcount

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if a trivial query succeeds. Used by GET /api/v1/health."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StorageFailure:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=from_millis(row.created_at),
    )


def _row_to_session_record(row) -> SessionRecord:
    return SessionRecord(
        id=row.id,
        user_id=row.user_id,
        expires_at=from_millis(row.expires_at),
        email=row.email,
    )
