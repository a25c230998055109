"""
api/routes/v1/auth.py -- Registration, login, logout and current-user endpoints.

Routes:
  POST /api/v1/auth/register   -- create account; sets session cookie; 201
  POST /api/v1/auth/login      -- password login; sets session cookie
  POST /api/v1/auth/logout     -- deletes the session row; clears cookie
  GET  /api/v1/auth/me         -- current user (requires session cookie)

Security:
  authenticate_user() provides timing equalization -- use it, never inline
  get_user_by_email() + verify_password().
  Login returns the same "bad_credentials" error for an unknown email and a
  wrong password, with Cache-Control: no-store on every login response.
  A request carrying a dead session cookie gets 401 and a clearing cookie.

Handlers are plain `def` so FastAPI runs them in the threadpool: PBKDF2 and
the store calls block.

StorageFailure is left to the handler in api/main.py (503).
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import AuthResponse, LoginRequest, MeResponse, RegisterRequest, SuccessResponse, UserInfo
from auth.accounts import authenticate_user, register_user
from auth.cookies import clear_session_cookie, session_id_from_request, set_session_cookie
from auth.dependencies import get_auth_store, get_session_manager, try_get_current_session
from auth.errors import ConflictFailure, HashingFailure

logger = logging.getLogger("authgate.api")

# Auth policy:
# - POST /api/v1/auth/register: public
# - POST /api/v1/auth/login:    public
# - POST /api/v1/auth/logout:   public -- clearing a cookie needs no valid session
# - GET  /api/v1/auth/me:       requires a live session cookie
router = APIRouter()


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Register with email and password; start a session.

    409 email_taken if the address is already registered. 500 hashing_failed
    if the password could not be hashed -- no user is written in that case.
    """
    store = get_auth_store(request)
    manager = get_session_manager(request)
    try:
        user, session = register_user(store, manager, body.email, body.password)
    except ConflictFailure as exc:
        raise HTTPException(
            status_code=409,
            detail={"code": exc.code, "message": "Email already registered."},
        ) from exc
    except HashingFailure as exc:
        logger.error("Password hashing failed during registration: %s", exc)
        raise HTTPException(
            status_code=500,
            detail={"code": exc.code, "message": "Password hashing failed."},
        ) from exc

    resp = JSONResponse(status_code=201, content=AuthResponse(user_id=user.id).model_dump())
    set_session_cookie(resp, manager.policy.cookie_name, session)
    return resp


@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; start a new session."""
    store = get_auth_store(request)
    manager = get_session_manager(request)
    user = authenticate_user(store, body.email, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    session = manager.create(user.id)
    resp = JSONResponse(status_code=200, content=AuthResponse(user_id=user.id).model_dump())
    set_session_cookie(resp, manager.policy.cookie_name, session)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=SuccessResponse)
def logout(request: Request) -> JSONResponse:
    """Delete the current session (if any) and clear the cookie. Always 200."""
    manager = get_session_manager(request)
    session_id = session_id_from_request(request, manager.policy.cookie_name)
    if session_id is not None:
        manager.invalidate(session_id)
    resp = JSONResponse(content=SuccessResponse().model_dump())
    clear_session_cookie(resp, manager.policy.cookie_name)
    return resp


@router.get("/auth/me", response_model=MeResponse)
def me(request: Request) -> JSONResponse:
    """Return the identity bound to the session cookie.

    401 unauthorized (and a clearing cookie) when the session is missing,
    unknown or expired. When validation renewed the session the cookie is
    re-issued so its Expires follows the new expiry.
    """
    manager = get_session_manager(request)
    result = try_get_current_session(request)
    if result is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "unauthorized", "message": "Authentication required."}},
        )
        clear_session_cookie(resp, manager.policy.cookie_name)
        return resp

    resp = JSONResponse(content=MeResponse(user=UserInfo(id=result.user.id, email=result.user.email)).model_dump())
    if result.renewed:
        set_session_cookie(resp, manager.policy.cookie_name, result.session)
    return resp
