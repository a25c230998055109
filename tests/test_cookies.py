"""Unit tests for auth/cookies.py -- session cookie attributes.

The attribute set is a fixed contract: HttpOnly, Secure, SameSite=Lax, Path=/,
Expires=<session expiry>. Clearing uses the same name with Max-Age=0 and a past
Expires.
"""

from __future__ import annotations

from datetime import datetime, timezone

from starlette.requests import Request
from starlette.responses import Response

from auth.cookies import clear_session_cookie, session_id_from_request, set_session_cookie
from auth.models import Session


def _set_cookie_header(response: Response) -> str:
    headers = [v.decode("latin-1") for k, v in response.raw_headers if k.decode("latin-1").lower() == "set-cookie"]
    assert len(headers) == 1
    return headers[0]


def _request(cookie_header: str | None) -> Request:
    headers = [(b"cookie", cookie_header.encode("latin-1"))] if cookie_header is not None else []
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def test_set_session_cookie_attributes() -> None:
    expires = datetime(2030, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    response = Response()
    set_session_cookie(response, "auth_session", Session(id="abc123", user_id="u1", expires_at=expires))

    header = _set_cookie_header(response)
    lowered = header.lower()
    assert header.startswith("auth_session=abc123")
    assert "httponly" in lowered
    assert "secure" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered
    assert "expires=wed, 02 jan 2030 03:04:05 gmt" in lowered


def test_clear_session_cookie_expires_in_the_past() -> None:
    response = Response()
    clear_session_cookie(response, "auth_session")

    lowered = _set_cookie_header(response).lower()
    assert lowered.startswith('auth_session=""') or lowered.startswith("auth_session=;")
    assert "max-age=0" in lowered
    assert "expires=thu, 01 jan 1970 00:00:00 gmt" in lowered
    assert "httponly" in lowered
    assert "secure" in lowered
    assert "samesite=lax" in lowered
    assert "path=/" in lowered


def test_session_id_from_request() -> None:
    assert session_id_from_request(_request("auth_session=abc123; other=1"), "auth_session") == "abc123"


def test_session_id_from_request_missing_or_empty() -> None:
    assert session_id_from_request(_request(None), "auth_session") is None
    assert session_id_from_request(_request("other=1"), "auth_session") is None
    assert session_id_from_request(_request("auth_session="), "auth_session") is None
