"""
Tadoku Backend — FastAPI Application Factory
=============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the module-level `app` is what uvicorn serves (tadoku.main:app).

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                       FastAPI App                         │
    │                                                           │
    │  Middleware:  Request ID → Logging → GZip → CORS          │
    │                                                           │
    │  Routes:      /api/v1/stories/...   /api/v1/users/me/...  │
    │               /health                                     │
    │                                                           │
    │  Exception Handlers:                                      │
    │    Validation→400  NotFound/NoReadingRecord→404           │
    │    GenerationLimit→429  Store/LLM/CircuitBreaker→503      │
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  configure logging, validate settings, log the reference
              timezone and daily limit in effect
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from tadoku import __version__
from tadoku.config import settings
from tadoku.database import dispose_engine
from tadoku.exceptions import (
    CircuitBreakerOpenError,
    GenerationLimitExceededError,
    LLMServiceError,
    NoReadingRecordError,
    NotFoundError,
    StoreUnavailableError,
    TadokuError,
    ValidationError,
)
from tadoku.middleware.logging import RequestLoggingMiddleware
from tadoku.middleware.request_id import RequestIDMiddleware, request_id_var
from tadoku.routes import health, stories, users

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root logger to stdout at settings.log_level; quiets chatty libraries."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("Tadoku Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # The server still starts: reading and statistics work without a key.
        logger.error("Configuration error: %s", str(e))

    logger.info(
        "Reference timezone: %s, daily generation limit: %d",
        settings.reference_timezone,
        settings.daily_generation_limit,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Tadoku Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: dict | None = None,
    headers: dict | None = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Handler hierarchy:
        ValidationError               → 400
        NotFoundError                 → 404
        NoReadingRecordError          → 404
        GenerationLimitExceededError  → 429 (business outcome, logged at INFO)
        StoreUnavailableError         → 503 (generic message, context logged)
        LLMServiceError               → 503
        CircuitBreakerOpenError       → 503
        TadokuError (base)            → 500
        Exception (fallback)          → 500

    Responses never contain stack traces, SQL or store context for faults.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(NoReadingRecordError)
    async def handle_no_reading_record(request: Request, exc: NoReadingRecordError):
        return _error_response(404, "no_reading_record", exc.message)

    @app.exception_handler(GenerationLimitExceededError)
    async def handle_generation_limit(request: Request, exc: GenerationLimitExceededError):
        logger.info(
            "[%s] Generation limit reached (%d/%d)",
            request_id_var.get(""),
            exc.current_count,
            exc.limit,
        )
        return _error_response(
            429,
            "generation_limit_exceeded",
            exc.message,
            {"limit": exc.limit, "current_count": exc.current_count},
        )

    @app.exception_handler(StoreUnavailableError)
    async def handle_store_unavailable(request: Request, exc: StoreUnavailableError):
        logger.error(
            "[%s] Store unavailable: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(503, "store_unavailable", exc.message)

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return _error_response(
            503,
            "service_unavailable",
            exc.message,
            {"recovery_time": exc.recovery_time},
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(LLMServiceError)
    async def handle_llm_error(request: Request, exc: LLMServiceError):
        logger.error("[%s] Story generator error: %s", request_id_var.get(""), exc.message)
        headers = {"Retry-After": str(exc.retry_after)} if exc.retry_after else None
        return _error_response(503, "llm_service_error", exc.message, headers=headers)

    @app.exception_handler(TadokuError)
    async def handle_tadoku_error(request: Request, exc: TadokuError):
        logger.error(
            "[%s] Unhandled application error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return _error_response(500, "server_error", "An internal error occurred. Please try again later.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Tadoku API",
        description=(
            "Extensive-reading backend: AI-generated stories with a daily generation "
            "limit, a reading ledger and word-count statistics."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware runs in reverse order of addition.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(stories.router)
    app.include_router(users.router)
    app.include_router(health.router)

    return app


app = create_app()
