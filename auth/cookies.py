"""
auth/cookies.py -- Session cookie contract.

The cookie carries only the opaque session id. Attributes are fixed and not
configurable per call:

  HttpOnly        JS cannot read the cookie (XSS mitigation).
  Secure          only sent over HTTPS.
  SameSite=Lax    sent on same-site navigations and top-level GETs, not on
                  cross-site POSTs (CSRF mitigation for most cases).
  Path=/          valid for the whole site.
  Expires         the session's absolute expires_at.

Clearing writes the same name and attributes with an empty value, Max-Age=0
and an Expires in the past. Only the cookie name is configurable, through
SessionPolicy.cookie_name.

Layer rule: no imports from api/. The response/request arguments are
Starlette objects, duck-typed so this module needs no FastAPI import.
"""

from __future__ import annotations

from datetime import datetime, timezone

from auth.models import Session

_PAST = datetime(1970, 1, 1, tzinfo=timezone.utc)


def set_session_cookie(response, cookie_name: str, session: Session) -> None:
    """Write the session id as a cookie expiring together with the session row."""
    response.set_cookie(
        cookie_name,
        value=session.id,
        expires=session.expires_at,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response, cookie_name: str) -> None:
    """Tell the browser to drop the session cookie immediately."""
    response.set_cookie(
        cookie_name,
        value="",
        max_age=0,
        expires=_PAST,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )


def session_id_from_request(request, cookie_name: str) -> str | None:
    """Return the session id from the request cookie, or None if absent or empty."""
    return request.cookies.get(cookie_name) or None
