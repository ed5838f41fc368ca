"""
Inkwell Backend: FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   `create_app()` builds the AppContainer, registers middleware,
       exception handlers and routes, and returns the app.
Who:   uvicorn in factory mode (`inkwell.main:create_app`), and the tests.
When:  Once per process (or per test); the lifespan connects the stores.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  RequestID → Recovery → CORS → GZip → Logging → RateLimit│
    │                                                          │
    │  Routes:                                                 │
    │  /ping /health /ready /live                              │
    │  /api/v1/auth  /api/v1/users  /api/v1/articles           │
    │                                                          │
    │  Exception Handlers:                                     │
    │  AppError → envelope (200) │ validation → PARAM_INVALID  │
    │  HTTPException → envelope with its own status            │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → settings validation → store connections (with
              retries) → rate-limiter sweep task
    Shutdown: stop the sweep → close stores
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkwell import __version__
from inkwell.config import Settings
from inkwell.container import AppContainer
from inkwell.exceptions import AppError, ErrorCode, InternalError, PersistenceError
from inkwell.middleware.logging import RequestLoggingMiddleware
from inkwell.middleware.rate_limit import RateLimitMiddleware
from inkwell.middleware.recovery import RecoveryMiddleware
from inkwell.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware, request_id_var
from inkwell.responses import envelope_body, failure, from_error
from inkwell.routes import api_router, health

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════


def setup_logging(level: str = "INFO") -> None:
    """
    Configure the root logger once for the whole process.

    Format: 2025-01-15T12:00:00 [INFO] inkwell.access: GET /api/v1/articles 200 ...
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are noisy at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════


def build_lifespan(connect_stores: bool):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        container: AppContainer = app.state.container
        settings = container.settings

        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(settings.log_level)
        logger.info("=" * 60)
        logger.info("Inkwell Backend %s starting up...", __version__)

        try:
            settings.validate_required_for_production()
        except ValueError as e:
            # Not fatal: a development instance still serves with defaults
            logger.error("Configuration error: %s", e)

        await container.startup(connect_stores)

        logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
        logger.info("=" * 60)

        yield

        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("Inkwell Backend shutting down...")
        await container.shutdown(connect_stores)
        logger.info("Shutdown complete.")

    return lifespan


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions onto the envelope.

    Handler table:
        AppError               → its own code, HTTP 200
        RequestValidationError → PARAM_INVALID, HTTP 200
        HTTPException          → {code: status, message: detail}, same status
                                 (unknown route 404, wrong method 405)

    Anything else propagates to RecoveryMiddleware, which answers 500.
    """

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        rid = request_id_var.get("")
        request.state.error = f"{int(exc.code)} {exc.message}"
        if isinstance(exc, (PersistenceError, InternalError)):
            logger.error("[%s] %r | Context: %s", rid, exc, exc.context)
        else:
            logger.info("[%s] %r", rid, exc)
        return from_error(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = ErrorCode.PARAM_INVALID.message
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{message}: {location} {first.get('msg', '')}".strip()
        request.state.error = message
        return failure(ErrorCode.PARAM_INVALID, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        request.state.error = str(exc.detail)
        # the envelope carries the transport status as its code here
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope_body(exc.status_code, str(exc.detail)),
            headers=exc.headers,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[AppContainer] = None,
) -> FastAPI:
    """
    Assemble the application.

    A prebuilt `container` (tests) is used as is and its stores are not
    connected by the lifespan; otherwise one is built from `settings`
    (or from the environment).
    """
    connect_stores = container is None
    if container is None:
        container = AppContainer.build(settings or Settings())

    app = FastAPI(
        title="Inkwell API",
        description="Accounts, profiles and articles behind a rate-limited, token-authenticated API.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=build_lifespan(connect_stores),
    )
    app.state.container = container

    # ── Register Middleware ───────────────────────────────────────────────
    # Executed in reverse order of addition: the last one added is outermost.
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=container.settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(api_router)

    return app


def run() -> None:
    """Console entry point: `inkwell`."""
    settings = Settings()
    uvicorn.run(
        "inkwell.main:create_app",
        factory=True,
        host=settings.backend_host,
        port=settings.backend_port,
        log_level=settings.log_level.lower(),
        timeout_graceful_shutdown=settings.shutdown_grace_seconds,
    )


if __name__ == "__main__":
    run()
