"""
auth/dependencies.py -- FastAPI Depends() helpers for session authentication.

The session cookie is the only credential. try_get_current_session() is the
soft variant (returns None when unauthenticated); routes that must reject
decide themselves how to respond so they can clear a dead cookie on the way.

StorageFailure is NOT caught here. It propagates to the exception handler in
api/main.py and becomes a 503, which a client can tell apart from the 401
"no session" answer.

auth/dependencies.py may import from fastapi because it is part of the
FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.cookies import session_id_from_request
from auth.models import SessionValidation
from auth.sessions import SessionManager
from auth.store import AuthStore


def get_auth_store(request: Request) -> AuthStore:
    return request.app.state.auth_store


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def try_get_current_session(request: Request) -> SessionValidation | None:
    """Validate the request's session cookie.

    Returns the SessionValidation (which may carry renewed=True) or None if
    there is no cookie or the session is unknown or expired.
    """
    manager = get_session_manager(request)
    session_id = session_id_from_request(request, manager.policy.cookie_name)
    if session_id is None:
        return None
    return manager.validate(session_id)
