"""Unit tests for auth/accounts.py -- registration, login and account removal.

Covers:
- register_user() stores a normalized email and a verifiable hash, and starts a session
- duplicate registration -> ConflictFailure (case-insensitive)
- HashingFailure propagates and no user row is written
- authenticate_user(): success, wrong password, unknown email (still runs PBKDF2)
- end-to-end: register -> validate -> invalidate -> validate is None
- delete_account() removes the user and their sessions
"""

from __future__ import annotations

import pytest

from auth import accounts
from auth.accounts import authenticate_user, delete_account, normalize_email, register_user
from auth.errors import ConflictFailure, HashingFailure
from auth.passwords import verify_password


def test_normalize_email() -> None:
    assert normalize_email("  Alice@Example.COM ") == "alice@example.com"


def test_register_creates_user_and_session(store, manager) -> None:
    user, session = register_user(store, manager, "A@Example.com", "password123")

    assert user.email == "a@example.com"
    stored = store.get_user_by_email("a@example.com")
    assert stored.id == user.id
    assert verify_password(stored.password_hash, "password123")
    assert session.user_id == user.id


def test_register_duplicate_email_conflicts(store, manager) -> None:
    register_user(store, manager, "a@example.com", "password123")
    with pytest.raises(ConflictFailure):
        register_user(store, manager, "A@EXAMPLE.COM", "different456")


def test_register_hashing_failure_writes_nothing(store, manager, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(password: str) -> str:
        raise HashingFailure("secure random source unavailable")

    monkeypatch.setattr(accounts, "hash_password", broken)
    with pytest.raises(HashingFailure):
        register_user(store, manager, "a@example.com", "password123")
    assert store.get_user_by_email("a@example.com") is None


def test_authenticate_success(store, manager) -> None:
    user, _ = register_user(store, manager, "a@example.com", "password123")
    assert authenticate_user(store, " A@example.com", "password123") == store.get_user_by_id(user.id)


def test_authenticate_wrong_password(store, manager) -> None:
    register_user(store, manager, "a@example.com", "password123")
    assert authenticate_user(store, "a@example.com", "password124") is None


def test_authenticate_unknown_email_still_verifies(store, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[str] = []
    real_verify = accounts.verify_password

    def spy(stored_hash: str, password: str) -> bool:
        calls.append(stored_hash)
        return real_verify(stored_hash, password)

    monkeypatch.setattr(accounts, "verify_password", spy)
    assert authenticate_user(store, "ghost@example.com", "password123") is None
    assert calls == [accounts._DUMMY_HASH]


def test_register_validate_invalidate_end_to_end(store, manager) -> None:
    user, session = register_user(store, manager, "a@example.com", "password123")

    result = manager.validate(session.id)
    assert result is not None
    assert result.user.id == user.id
    assert result.user.email == "a@example.com"

    manager.invalidate(session.id)
    assert manager.validate(session.id) is None


def test_login_creates_independent_session(store, manager) -> None:
    _, first = register_user(store, manager, "a@example.com", "password123")
    user = authenticate_user(store, "a@example.com", "password123")
    second = manager.create(user.id)

    assert second.id != first.id
    manager.invalidate(first.id)
    assert manager.validate(second.id) is not None


def test_delete_account(store, manager) -> None:
    user, session = register_user(store, manager, "a@example.com", "password123")
    assert delete_account(store, manager, user.id) is True
    assert store.get_user_by_id(user.id) is None
    assert manager.validate(session.id) is None
    assert delete_account(store, manager, user.id) is False
