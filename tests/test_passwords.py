"""Unit tests for auth/passwords.py -- PBKDF2 hashing and verification.

Covers:
- hash/verify round trip, wrong password rejected
- salt freshness (same password -> different strings)
- encoding shape: base64 salt (16 bytes) "." base64 key (32 bytes)
- malformed stored hashes return False and never raise
- check_password() keeps the failure reason that verify_password() hides
- hash_password() raises HashingFailure instead of returning a weak hash
"""

from __future__ import annotations

import base64

import pytest

from auth import passwords
from auth.errors import CryptoFailure, HashingFailure, ValidationFailure
from auth.passwords import check_password, hash_password, verify_password

# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("password", ["password123", "", "pässwörd ✓", "x" * 1000])
def test_verify_accepts_the_hashed_password(password: str) -> None:
    assert verify_password(hash_password(password), password) is True


def test_verify_rejects_a_different_password() -> None:
    stored = hash_password("password123")
    assert verify_password(stored, "password124") is False
    assert verify_password(stored, "") is False


def test_long_passwords_are_not_truncated() -> None:
    """Two passwords sharing a long prefix must not collide (no truncation at 72 bytes)."""
    base = "a" * 200
    stored = hash_password(base + "1")
    assert verify_password(stored, base + "2") is False


def test_same_password_hashes_differently() -> None:
    assert hash_password("password123") != hash_password("password123")


def test_hash_shape() -> None:
    salt_b64, key_b64 = hash_password("password123").split(".")
    assert len(base64.b64decode(salt_b64, validate=True)) == 16
    assert len(base64.b64decode(key_b64, validate=True)) == 32


def test_hash_does_not_contain_password() -> None:
    assert "password123" not in hash_password("password123")


# ---------------------------------------------------------------------------
# Malformed input
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "stored",
    [
        "",
        "no-separator-here",
        ".",
        "c2FsdA==.",
        ".aGFzaA==",
        "c2FsdA==.aGFzaA==.ZXh0cmE=",
        "not base64!.aGFzaA==",
        "c2FsdA==.***",
        "$pbkdf2-sha512$c2FsdA==.aGFzaA==",
        "sälz.aGFzaA==",
    ],
)
def test_verify_malformed_hash_returns_false(stored: str) -> None:
    assert verify_password(stored, "password123") is False


@pytest.mark.parametrize("stored", [None, 12345, b"c2FsdA==.aGFzaA=="])
def test_verify_non_string_hash_returns_false(stored) -> None:
    assert verify_password(stored, "password123") is False


def test_verify_unencodable_password_returns_false() -> None:
    stored = hash_password("password123")
    assert verify_password(stored, "\ud800") is False


def test_check_password_reports_validation_failure() -> None:
    result = check_password("garbage", "password123")
    assert result.matched is False
    assert isinstance(result.error, ValidationFailure)


def test_check_password_reports_no_error_for_wrong_password() -> None:
    result = check_password(hash_password("password123"), "nope")
    assert result.matched is False
    assert result.error is None


def test_check_password_absorbs_derivation_error(monkeypatch: pytest.MonkeyPatch) -> None:
    stored = hash_password("password123")

    def broken(*args, **kwargs):
        raise ValueError("unsupported hash type")

    monkeypatch.setattr(passwords.hashlib, "pbkdf2_hmac", broken)
    result = check_password(stored, "password123")
    assert result.matched is False
    assert isinstance(result.error, CryptoFailure)
    assert verify_password(stored, "password123") is False


# ---------------------------------------------------------------------------
# Hashing failures propagate
# ---------------------------------------------------------------------------


def test_hash_raises_when_randomness_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_entropy(n: int) -> bytes:
        raise NotImplementedError("no secure random source")

    monkeypatch.setattr(passwords.secrets, "token_bytes", no_entropy)
    with pytest.raises(HashingFailure):
        hash_password("password123")


def test_hash_raises_when_derivation_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(*args, **kwargs):
        raise ValueError("unsupported hash type")

    monkeypatch.setattr(passwords.hashlib, "pbkdf2_hmac", broken)
    with pytest.raises(HashingFailure):
        hash_password("password123")


def test_hash_raises_on_unencodable_password() -> None:
    with pytest.raises(HashingFailure):
        hash_password("\ud800")
