"""
api/main.py -- FastAPI application entry point for Postboard.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Lifespan builds every collaborator explicitly and attaches it to app.state:

    Database -> UserStore, PostStore
    key-value store -> SessionStore
    UserStore + SessionStore -> AuthGate

Routes read them from app.state through FastAPI dependencies; no module
keeps a process-wide store handle of its own.

Error envelope: every failure is rendered as {"success": false, "message": ...}.
Raw exception text goes to the log only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.metrics import observe_request, render_latest
from api.models import HealthResponse, ReadyResponse, StatusResponse
from api.routes.auth import router as auth_router
from api.routes.posts import router as posts_router
from auth.gate import AuthGate
from auth.passwords import hash_password
from auth.sessions import SessionStore
from auth.store import UserStore
from cache.store import KeyValueStoreError, open_key_value_store
from core.config import get_settings
from core.db import Database
from core.errors import AppError, NotFoundError
from posts.store import PostStore

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("postboard.api")

_PURGE_INTERVAL_SECONDS = 60 * 60

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval: float = _PURGE_INTERVAL_SECONDS) -> None:
    """Trim expired sessions from the SQLite key-value backend every hour.

    Only started for backends that expose purge_expired(); Redis expires keys
    on its own. The purge runs in a worker thread so the event loop keeps
    serving while SQLite holds its lock. A failed run is logged and retried
    on the next tick. Cancellation during shutdown unwinds through
    asyncio.sleep.
    """
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await asyncio.to_thread(app.state.kv_store.purge_expired)
        except KeyValueStoreError as exc:
            logger.warning("Session purge failed: %s", exc)
            continue
        if removed:
            logger.info("Purged %d expired sessions", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build stores and the auth gate on startup; release them on shutdown.

    Startup fails hard if the database or the session store is unreachable:
    a server that cannot issue or check sessions should not report itself
    as started.
    """
    settings = get_settings()
    logger.info("Postboard API starting up")

    db = Database(settings.resolved_database_url, timeout=settings.store_timeout_seconds)
    db.create_all()
    user_store = UserStore(db)
    if settings.seed_username:
        if user_store.ensure_user(settings.seed_username, hash_password(settings.seed_password)):
            logger.info("Seed user %r created", settings.seed_username)

    kv_store = open_key_value_store(settings.resolved_session_store_url, timeout=settings.store_timeout_seconds)
    if not kv_store.ping():
        kv_store.close()
        db.close()
        raise RuntimeError("Session store is unreachable")
    logger.info("Session store initialized (%s)", type(kv_store).__name__)

    app.state.db = db
    app.state.user_store = user_store
    app.state.post_store = PostStore(db)
    app.state.kv_store = kv_store
    app.state.session_store = SessionStore(kv_store, ttl_seconds=settings.session_ttl_seconds)
    app.state.auth_gate = AuthGate(user_store, app.state.session_store)
    app.state.purge_task = None
    if hasattr(kv_store, "purge_expired"):
        app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    # Shutdown
    if app.state.purge_task is not None:
        app.state.purge_task.cancel()
    kv_store.close()
    db.close()
    logger.info("Postboard API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Postboard API",
    description="Session-authenticated text posts.",
    version="1.0.0",
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Latency is measured around call_next. With METRICS_ENABLED on it
# is also recorded in the Prometheus series from api/metrics.py.
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed = time.perf_counter() - start
    ms = elapsed * 1000
    if get_settings().metrics_enabled:
        observe_request(request, response.status_code, elapsed)
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

app.include_router(auth_router, tags=["Auth"])
app.include_router(posts_router, tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same {success, message} envelope so clients can
# parse errors uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=StatusResponse(success=False, message=message).model_dump(),
    )


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a taxonomy error with its status and client-safe message."""
    if exc.status >= 500:
        logger.error("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    return _error(int(exc.status), exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or incomplete JSON bodies are a 400, not FastAPI's default 422."""
    logger.debug("Request validation failed on %s: %s", request.url.path, exc.errors())
    return _error(400, "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (404, 405) in the same envelope."""
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ---------------------------------------------------------------------------
# Health and readiness
#
# Defined directly in main.py (not in a router) so they are always reachable
# and never behind the session dependency.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
async def health() -> HealthResponse:
    """Liveness check. Always 200 while the process is serving."""
    return HealthResponse()


@app.get("/ready", tags=["Health"], response_model=ReadyResponse)
def ready(request: Request) -> JSONResponse:
    """Readiness check. 200 if the database answers a ping, else 503."""
    db: Database = request.app.state.db
    if not db.ping():
        return JSONResponse(
            status_code=503,
            content=ReadyResponse(status="not ready", reason="database unavailable").model_dump(exclude_none=True),
        )
    return JSONResponse(content=ReadyResponse(status="ready").model_dump(exclude_none=True))


@app.get("/metrics", tags=["Health"], include_in_schema=False)
def metrics() -> Response:
    """Prometheus exposition of the request counters and latency histogram."""
    if not get_settings().metrics_enabled:
        raise NotFoundError("Not Found")
    content, content_type = render_latest()
    return Response(content=content, media_type=content_type)
