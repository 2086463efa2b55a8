"""
TravelPlaces Backend — FastAPI Application Factory
====================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn app.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                     FastAPI App                         │
    │                                                         │
    │  Middleware Chain:                                      │
    │  ┌────────┐ ┌─────────┐ ┌───────────────┐ ┌──────┐     │
    │  │ Req ID │→│ Logging │→│ Cache-Control │→│ GZip │→CORS│
    │  └────────┘ └─────────┘ └───────────────┘ └──────┘     │
    │                                                         │
    │  Routes:                                                │
    │  /api/ip  /regions  /countis  /attractions  /attraction │
    │  /health  [/register /login when AUTH_ENABLED]          │
    │                                                         │
    │  Exception Handlers:                                    │
    │  TravelPlacesError → STATUS_BY_KIND[kind]               │
    │  RequestValidationError → 400   Exception → 500         │
    └─────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Create the dataset scratch directory
    4. Create credential tables when login is enabled

    Shutdown:
    1. Dispose the credential store engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import create_tables, dispose_engine
from app.exceptions import ErrorKind, STATUS_BY_KIND, TravelPlacesError
from app.middleware.cache_control import CacheControlMiddleware
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.routes import attractions, auth, health, network, regions

logger = logging.getLogger(__name__)

NOISY_LOGGERS = ("uvicorn.access", "botocore", "boto3", "urllib3", "aiosqlite", "sqlalchemy.engine")

CORS_METHODS = ["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"]


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════


def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once from the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # botocore logs every request at DEBUG, aiosqlite every statement
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifecycle
# ══════════════════════════════════════════════════════════════════════════


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()

    logger.info("=" * 60)
    logger.info("TravelPlaces Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    dataset_dir = Path(settings.dataset_dir)
    dataset_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Dataset scratch directory: %s", dataset_dir.resolve())
    logger.info("Dataset bucket: %s", settings.s3_bucket)

    if settings.auth_enabled:
        await create_tables()
        logger.info("Login enabled, credential store ready")

    logger.info("Server ready at http://%s:%d", settings.host, settings.port)
    logger.info("=" * 60)

    yield

    logger.info("TravelPlaces Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════


def error_body(kind: ErrorKind, message: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": kind.value, "message": message}
    if details:
        body["details"] = details
    body["request_id"] = request_id_var.get("")
    return body


def _public_details(exc: TravelPlacesError) -> Any:
    if exc.kind in (ErrorKind.INVALID_INPUT, ErrorKind.NOT_FOUND):
        return exc.context
    if exc.kind == ErrorKind.QUERY_FAILED and settings.expose_error_details:
        return {"reason": exc.context["reason"]} if "reason" in exc.context else None
    return None


def _validation_details(exc: RequestValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to HTTP responses with one body shape:
    {error, message, details?, request_id}.

    Stack traces never reach the client; they are logged server-side.
    """

    @app.exception_handler(TravelPlacesError)
    async def handle_travelplaces_error(request: Request, exc: TravelPlacesError):
        rid = request_id_var.get("")
        status = STATUS_BY_KIND[exc.kind]
        if status >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, exc.kind.value, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, exc.kind.value, exc.message)
        return JSONResponse(
            status_code=status,
            content=error_body(exc.kind, exc.message, _public_details(exc)),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        message = details[0]["msg"] if details else "Invalid request"
        logger.info("[%s] Request validation failed: %s", request_id_var.get(""), details)
        return JSONResponse(
            status_code=STATUS_BY_KIND[ErrorKind.INVALID_INPUT],
            content=error_body(ErrorKind.INVALID_INPUT, message, details),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in ServerErrorMiddleware, outside the header middlewares
        rid = getattr(request.state, "request_id", "") or request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        headers = {}
        if rid:
            headers["X-Request-ID"] = rid
        if settings.cache_control_header:
            headers["Cache-Control"] = settings.cache_control_header
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": rid,
            },
            headers=headers,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Optional routes are mounted from settings at creation time:
    /regions/{country}/{county} (COUNTY_REGIONS_ENABLED) and
    /register, /login (AUTH_ENABLED).
    """
    app = FastAPI(
        title="TravelPlaces API",
        description=(
            "Tourist attractions by country. Each country is a SQLite dataset in "
            "object storage; images are inlined as base64."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Middleware (last added runs first) ────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(CacheControlMiddleware, header_value=settings.cache_control_header)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Routes ────────────────────────────────────────────────────────────
    app.include_router(network.router)
    app.include_router(regions.router)
    if settings.county_regions_enabled:
        app.include_router(regions.county_router)
    app.include_router(attractions.router)
    if settings.auth_enabled:
        app.include_router(auth.router)
    app.include_router(health.router)

    return app


app = create_app()
