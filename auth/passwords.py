"""
auth/passwords.py -- Password hashing and verification.

Security design decisions:
  Algorithm: PBKDF2-HMAC-SHA256 via hashlib, 100,000 iterations, 16-byte
       salt from secrets.token_bytes(), 32-byte derived key. The parameters
       are module constants: changing any of them breaks verification of
       every stored hash, so a change needs a tagged scheme (see below).

  Encoding: "salt.hash", both parts standard base64 with padding. A stored
       value starting with "$" is reserved for future algorithm/version tags
       ("$<scheme>$..."). The base64 alphabet never contains "$", so an
       untagged value cannot be mistaken for a tagged one. Until a second
       scheme exists, tagged values fail verification.

  Failure policy:
       hash_password() raises HashingFailure on any error. A registration
       that fails loudly is better than one that stores a weak or empty hash.

       verify_password() never raises. check_password() keeps the reason
       (ValidationFailure / CryptoFailure) in a VerifyResult for logging;
       verify_password() collapses it to False at the boundary so malformed
       input is indistinguishable from a wrong password.

  Comparison: hmac.compare_digest, so timing does not depend on where the
       derived key first differs from the stored one.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass

from auth.errors import AuthError, CryptoFailure, HashingFailure, ValidationFailure

logger = logging.getLogger("authgate.auth")

# ---------------------------------------------------------------------------
# Fixed scheme parameters
# ---------------------------------------------------------------------------

_ALGORITHM = "sha256"
_ITERATIONS = 100_000
_SALT_BYTES = 16
_KEY_BYTES = 32

_SEPARATOR = "."
_TAG_PREFIX = "$"


@dataclass(frozen=True)
class VerifyResult:
    """Outcome of check_password(). error is set only when matched is False for a reason other than a wrong password."""

    matched: bool
    error: AuthError | None = None


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def hash_password(password: str) -> str:
    """Return an opaque "salt.hash" string for password.

    Passwords of any length are accepted and never truncated. Length policy
    belongs to request validation (api/models.py), not here.

    Raises:
        HashingFailure: secure randomness was unavailable, the password could
            not be encoded as UTF-8, or key derivation failed.
    """
    try:
        secret = password.encode("utf-8")
    except (AttributeError, UnicodeEncodeError) as exc:
        raise HashingFailure("password is not encodable as UTF-8") from exc
    try:
        salt = secrets.token_bytes(_SALT_BYTES)
    except (OSError, NotImplementedError) as exc:
        raise HashingFailure("secure random source unavailable") from exc
    key = _derive(secret, salt, error_cls=HashingFailure)
    return f"{_b64encode(salt)}{_SEPARATOR}{_b64encode(key)}"


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


def check_password(stored_hash: str, password: str) -> VerifyResult:
    """Verify password against stored_hash, keeping the failure reason. Never raises."""
    try:
        salt, expected = _parse(stored_hash)
        secret = password.encode("utf-8")
    except ValidationFailure as exc:
        return VerifyResult(matched=False, error=exc)
    except (AttributeError, UnicodeEncodeError) as exc:
        return VerifyResult(matched=False, error=CryptoFailure(f"password not encodable: {type(exc).__name__}"))
    try:
        actual = _derive(secret, salt, error_cls=CryptoFailure)
    except CryptoFailure as exc:
        return VerifyResult(matched=False, error=exc)
    return VerifyResult(matched=hmac.compare_digest(actual, expected))


def verify_password(stored_hash: str, password: str) -> bool:
    """Return True if password matches stored_hash.

    Malformed hashes and crypto errors return False, the same answer as a
    wrong password. The reason is logged at debug level (never the password
    or the hash itself).
    """
    result = check_password(stored_hash, password)
    if result.error is not None:
        logger.debug("Password verification failed: %s (%s)", result.error.code, result.error)
    return result.matched


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _derive(secret: bytes, salt: bytes, *, error_cls: type[CryptoFailure]) -> bytes:
    try:
        return hashlib.pbkdf2_hmac(_ALGORITHM, secret, salt, _ITERATIONS, dklen=_KEY_BYTES)
    except (ValueError, OverflowError, MemoryError) as exc:
        raise error_cls(f"key derivation failed: {type(exc).__name__}") from exc


def _parse(stored_hash: str) -> tuple[bytes, bytes]:
    """Split "salt.hash" into raw bytes. Raises ValidationFailure on any malformation."""
    if not isinstance(stored_hash, str) or not stored_hash:
        raise ValidationFailure("stored hash is empty or not a string")
    if stored_hash.startswith(_TAG_PREFIX):
        raise ValidationFailure("unsupported hash scheme tag")
    parts = stored_hash.split(_SEPARATOR)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise ValidationFailure("expected exactly one separator between two non-empty parts")
    try:
        salt = base64.b64decode(parts[0], validate=True)
        key = base64.b64decode(parts[1], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationFailure("hash component is not valid base64") from exc
    if not salt or not key:
        raise ValidationFailure("hash component decodes to nothing")
    return salt, key


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")
