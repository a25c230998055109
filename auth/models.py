"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store and the session manager do the work.

All datetimes are aware UTC values with millisecond resolution (the store's
resolution -- see core/clock.py).

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """A registered identity.

    email is stored normalized (stripped, lower-case) and is globally unique.
    password_hash is the opaque "salt.hash" string from auth.passwords and is
    never sent to clients.
    """

    id: str
    email: str
    password_hash: str
    created_at: datetime


@dataclass(frozen=True)
class UserIdentity:
    """The public part of a User: what a bearer token resolves to."""

    id: str
    email: str


@dataclass(frozen=True)
class Session:
    """An authorization grant referenced by an opaque bearer id.

    A session whose expires_at is in the past is logically dead even if the
    row has not been deleted yet (lazy expiry).
    """

    id: str
    user_id: str
    expires_at: datetime


@dataclass(frozen=True)
class SessionRecord:
    """A sessions row joined with its owner's email (store read model)."""

    id: str
    user_id: str
    expires_at: datetime
    email: str


@dataclass(frozen=True)
class SessionValidation:
    """Result of a successful SessionManager.validate().

    renewed is True when validate() pushed expires_at forward; the transport
    layer re-issues the cookie so its Expires attribute follows the row.
    """

    session: Session
    user: UserIdentity
    renewed: bool = False
