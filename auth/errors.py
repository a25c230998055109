"""
auth/errors.py -- Exception taxonomy for the auth core.

  ValidationFailure  malformed stored hash. Absorbed by verify_password().
  CryptoFailure      randomness or key-derivation error.
    HashingFailure   raised by hash_password(); always propagated.
  StorageFailure     store unreachable or write rejected. Always propagated,
                     never retried inside auth/.
  ConflictFailure    email already registered.

"No session" is not an exception: SessionManager.validate() returns None.
Callers must be able to tell "reject this request" (None) apart from "the
backend is down" (StorageFailure).

Layer rule: no imports from api/.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class. code is the machine-readable identifier the API layer returns."""

    code = "auth_error"

    def __init__(self, message: str = "", *, code: str | None = None) -> None:
        super().__init__(message or self.code)
        if code is not None:
            self.code = code


class ValidationFailure(AuthError):
    code = "invalid_hash_format"


class CryptoFailure(AuthError):
    code = "crypto_failure"


class HashingFailure(CryptoFailure):
    code = "hashing_failed"


class StorageFailure(AuthError):
    code = "storage_unavailable"


class ConflictFailure(AuthError):
    code = "email_taken"
