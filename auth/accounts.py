"""
auth/accounts.py -- Registration and login flows.

Composes the three auth building blocks in the order the HTTP layer needs:
  register: pre-check email -> hash -> insert user -> create session
  login:    fetch user -> verify (timing-equalized) -> caller creates session

Security design decisions:
  Timing equalization: authenticate_user() always runs one PBKDF2
       verification. For an unknown email it verifies against _DUMMY_HASH,
       which has the same cost as a real check, so response time does not
       reveal whether an address is registered.

  Emails are compared in normalized form (stripped, lower-case) everywhere.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.errors import ConflictFailure
from auth.models import Session, User
from auth.passwords import hash_password, verify_password
from auth.sessions import SessionManager, generate_user_id
from auth.store import AuthStore
from core.clock import Clock, truncate_to_millis, utc_now

logger = logging.getLogger("authgate.auth")

# Computed once at module load so the first failed login is not measurably
# slower than later ones.
_DUMMY_HASH: str = hash_password("authgate_timing_dummy")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def register_user(
    store: AuthStore,
    sessions: SessionManager,
    email: str,
    password: str,
    *,
    clock: Clock = utc_now,
) -> tuple[User, Session]:
    """Create a user and their first session.

    Raises:
        ConflictFailure: the email is already registered (pre-check or the
            store's unique constraint, whichever fires first).
        HashingFailure: the password could not be hashed. No user is written.
        StorageFailure: the store is unavailable.
    """
    email = normalize_email(email)
    if store.get_user_by_email(email) is not None:
        raise ConflictFailure("email already registered")

    user = User(
        id=generate_user_id(),
        email=email,
        password_hash=hash_password(password),
        created_at=truncate_to_millis(clock()),
    )
    store.insert_user(user)
    logger.info("Registered user %s", user.id)
    session = sessions.create(user.id)
    return user, session


def authenticate_user(store: AuthStore, email: str, password: str) -> User | None:
    """Return the User if email/password are correct, None otherwise.

    Always runs PBKDF2, whether or not the user exists:
    - unknown email: verify against _DUMMY_HASH (same cost as a real check)
    - wrong password: verify against the real hash (same cost)
    """
    user = store.get_user_by_email(normalize_email(email))
    if user is None:
        # Equalize timing -- do NOT return before running PBKDF2.
        verify_password(_DUMMY_HASH, password)
        return None
    if not verify_password(user.password_hash, password):
        logger.info("Failed login for user %s", user.id)
        return None
    return user


def delete_account(store: AuthStore, sessions: SessionManager, user_id: str) -> bool:
    """Remove a user and every session they hold. Returns False if the user was unknown."""
    revoked = sessions.invalidate_all(user_id)
    deleted = store.delete_user(user_id)
    if deleted:
        logger.info("Deleted user %s (%d session(s) revoked)", user_id, revoked)
    return deleted
