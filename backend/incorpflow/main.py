"""IncorpFlow Backend - Main FastAPI Application

Company-registration workflow service.

This module creates and configures the main FastAPI application, including:
- API routers (registrations, uploads)
- Middleware (request ID correlation, CORS)
- Exception handlers
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import get_settings
from .dependencies import get_storage
from .domain.errors import RegistrationError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .registrations.router import router as registrations_router
from .uploads.router import router as uploads_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings = get_settings()
    logger.info("IncorpFlow API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Storage backend: {settings.STORAGE_BACKEND}")

    if settings.STORAGE_BACKEND == "s3":
        # Fail fast on a missing bucket
        await get_storage().verify_bucket_exists()

    yield

    logger.info("IncorpFlow API shutting down...")


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

async def registration_exception_handler(
    request: Request,
    exc: RegistrationError
) -> JSONResponse:
    """Render workflow, slot, store and blob errors as ``{error, message}``."""
    if exc.http_status >= 500:
        logger.error(
            f"{exc.kind} on {request.method} {request.url.path}: {exc.message}",
            exc_info=exc
        )
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def http_exception_handler(
    request: Request,
    exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Returns a structured error response with field-level details.
    """
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": [
                {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
                for error in exc.errors()
            ],
        },
    )


async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "store_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Handle uncaught exceptions.

    Full details are logged but not exposed to the client.
    """
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# APPLICATION FACTORY
# =============================================================================

def create_app() -> FastAPI:
    """Build the FastAPI application from the current settings."""
    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    is_production = settings.ENVIRONMENT == "production"

    app = FastAPI(
        title="IncorpFlow API",
        description="Company registration workflow: steps, approvals and document exchange",
        version="0.1.0",
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )

    # Request ID Middleware (must be first for proper correlation)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(RegistrationError, registration_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Observability (health, metrics)
    app.include_router(observability_router)

    app.include_router(registrations_router, prefix="/api")
    app.include_router(uploads_router, prefix="/api")

    if settings.STORAGE_BACKEND == "local":
        # Serve stored files under the URLs recorded in attachments
        app.mount(
            settings.UPLOAD_URL_PREFIX,
            StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
            name="uploads",
        )

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        """Root endpoint - API information."""
        return {
            "name": "IncorpFlow API",
            "version": "0.1.0",
            "status": "running",
            "docs": None if is_production else "/docs",
        }

    return app


app = create_app()


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "incorpflow.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=get_settings().ENVIRONMENT == "development",
        log_level=get_settings().LOG_LEVEL.lower(),
    )
