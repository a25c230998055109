"""
api/main.py -- FastAPI application entry point for authgate.

Exposes registration, login, logout and session-backed identity lookup over
HTTP. The auth core (auth/) does the work; this module wires it to requests.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware  -- adds CORS headers for configured browser origins
  2. log_requests    -- method, path, status and latency for every request

Lifespan handles startup (store, session manager, optional purge task) and
shutdown (cancel purge task, dispose engine) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import StorageFailure
from auth.sessions import SessionManager, SessionPolicy
from auth.store import AuthStore
from core.config import get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.DEBUG if get_settings().debug else logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("authgate.api")

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: int) -> None:
    """Delete expired sessions every `interval` seconds.

    Runs only when SESSION_PURGE_INTERVAL_SECONDS > 0. The store call blocks,
    so it runs in the threadpool. A StorageFailure is logged and the loop
    keeps going: the next tick retries, and validate() still refuses dead
    sessions in the meantime. CancelledError from task.cancel() at shutdown
    propagates out of asyncio.sleep and ends the loop.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await run_in_threadpool(app.state.session_manager.purge_expired)
        except StorageFailure as exc:
            logger.warning("Session purge skipped: %s", exc)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The store must exist before the session manager, and the
    manager before the purge task that calls it.
    """
    settings = get_settings()
    logger.info("authgate API starting up")
    app.state.auth_store = AuthStore(settings.database_url)
    app.state.session_manager = SessionManager(app.state.auth_store, SessionPolicy.from_settings(settings))
    logger.info(
        "Auth initialized (session_duration=%ds, renew_ratio=%.2f, delete_expired_on_read=%s)",
        settings.session_duration_seconds,
        settings.session_renew_ratio,
        settings.session_delete_expired_on_read,
    )
    app.state.purge_task = None
    if settings.session_purge_interval_seconds > 0:
        app.state.purge_task = asyncio.create_task(_purge_loop(app, settings.session_purge_interval_seconds))
        logger.info("Session purge task every %ds", settings.session_purge_interval_seconds)

    yield

    if app.state.purge_task is not None:
        app.state.purge_task.cancel()
    app.state.auth_store.close()
    logger.info("authgate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="authgate API",
    description="Email/password authentication with server-side cookie sessions.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(StorageFailure)
async def storage_failure_handler(request: Request, exc: StorageFailure) -> JSONResponse:
    """Return 503 when the store is down.

    Distinct from 401 on purpose: "no session" means reject the request,
    503 means the backend is unavailable and the client may retry later.
    """
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content=ErrorResponse(
            error=ErrorDetail(
                code=exc.code,
                message="Authentication backend unavailable.",
            )
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when the request body fails validation.

    exc.errors() includes the rejected input; for a password field that is the
    password itself, so only field locations and messages are echoed back.
    """
    summary = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors()
    )
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=summary,
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a {"code", "message"} dict as
    detail. When detail is already a dict, use it directly as the error field
    rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged server-side only, never written to the
    response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    database = "ok" if request.app.state.auth_store.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
