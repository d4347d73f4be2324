"""
api/main.py -- FastAPI application entry point for Yearbook.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for configured browser origins
  3. log_requests          -- one access log line per request
  4. BodySizeLimitMiddleware -- 413 once a body passes MAX_BODY_BYTES

Lifespan handles startup (engine, schema, stores, session purge task) and
shutdown (cancel purge task, dispose engine) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware import BodySizeLimitMiddleware
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.entries import router as entries_router
from auth.gateway import AuthGateway
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import Settings, get_settings
from core.database import Database
from core.errors import AppError, Transient
from entries.store import EntryStore

__version__ = "0.1.0"

_settings = get_settings()

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=_settings.log_level.upper(),
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("yearbook.api")

# ---------------------------------------------------------------------------
# App state wiring
# ---------------------------------------------------------------------------


def init_state(app: FastAPI, db: Database, settings: Settings) -> None:
    """Build the stores on one shared Database and attach them to app.state.

    Shared by the real lifespan and the test lifespan so both wire the app
    identically.
    """
    user_store = UserStore(db, bcrypt_rounds=settings.bcrypt_rounds)
    session_store = SessionStore(db, secret=settings.session_secret, max_age=settings.session_max_age)
    app.state.settings = settings
    app.state.db = db
    app.state.user_store = user_store
    app.state.session_store = session_store
    app.state.entry_store = EntryStore(db)
    app.state.gateway = AuthGateway(user_store, session_store)


# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired sessions every SESSION_PURGE_INTERVAL seconds.

    resolve() already refuses expired rows; this only keeps the table small.
    A failed purge is logged and retried on the next tick. CancelledError
    from task.cancel() during shutdown propagates out of asyncio.sleep.
    """
    interval = app.state.settings.session_purge_interval
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(app.state.session_store.purge_expired)
        except Transient:
            logger.warning("Session purge skipped: storage unavailable")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Schema creation failure aborts startup: serving requests against a
    database we cannot write to would only produce 503s.
    """
    logger.info(
        "Yearbook API starting up (database_url set=%s, debug=%s, secure_cookies=%s)",
        bool(_settings.database_url),
        _settings.debug,
        _settings.secure_cookies,
    )
    db = Database(_settings.database_url, pool_size=_settings.db_pool_size, pool_timeout=_settings.db_pool_timeout)
    try:
        db.create_schema()
    except Exception:
        logger.exception("Database initialization failed")
        db.close()
        raise
    logger.info("Database initialized (dialect=%s)", db.dialect)
    init_state(app, db, _settings)
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    db.close()
    logger.info("Yearbook API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Yearbook API",
    description="Per-user annual JSON entries behind password auth and server-side sessions.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the app, so the last one added is the outermost.
# @app.middleware("http") functions are registered the same way. Order below
# is innermost first.
# ---------------------------------------------------------------------------


app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=_settings.max_body_bytes)


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


app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(entries_router, prefix="/api", tags=["Entries"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


_HTTP_ERROR_CODES = {413: "payload_too_large"}


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render domain errors (InvalidInput, Conflict, Unauthorized, NotFound, Transient)."""
    if isinstance(exc, Transient):
        logger.warning("Transient storage failure on %s %s", request.method, request.url.path)
    return _error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed or missing request fields are InvalidInput (400), not 422."""
    return _error_response(400, "invalid_input", "Request is missing required fields or contains invalid values.")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unknown routes, wrong methods and oversized bodies, in the same envelope."""
    code = _HTTP_ERROR_CODES.get(exc.status_code, f"http_{exc.status_code}")
    return _error_response(exc.status_code, code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The traceback goes to the log only. The client gets a generic message and
    no internal identifiers.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip check."""
    db_ok = request.app.state.db.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=__version__,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
