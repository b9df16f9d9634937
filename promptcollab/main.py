"""Main FastAPI application."""

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest
from starlette.middleware.gzip import GZipMiddleware

from promptcollab.config import settings
from promptcollab.database import db_manager
from promptcollab.exceptions import (
    AuthenticationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PermissionDeniedError,
    PromptCollabException,
    ValidationError,
)

# Metrics
REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "endpoint", "status"]
)
REQUEST_DURATION = Histogram(
    "http_request_duration_seconds", "HTTP request duration", ["method", "endpoint"]
)

# Domain error -> HTTP status
ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    AuthenticationError: status.HTTP_401_UNAUTHORIZED,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    ConflictError: status.HTTP_409_CONFLICT,
    InfrastructureError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

logger = structlog.get_logger()


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info("Starting PromptCollab application", version=settings.app_version)

    # Startup
    try:
        await db_manager.initialize()
        if not settings.is_production:
            await db_manager.create_all()
        logger.info("Application startup completed")
        yield
    finally:
        # Cleanup
        logger.info("Shutting down PromptCollab application")
        await db_manager.close()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Collaborative prompt editing with version history",
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Configure CORS
    if settings.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=settings.cors_credentials,
            allow_methods=settings.cors_methods,
            allow_headers=settings.cors_headers,
        )

    # Security middleware
    app.add_middleware(
        TrustedHostMiddleware,
        allowed_hosts=settings.allowed_hosts,
    )

    # Compression middleware
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Request logging and metrics middleware
    @app.middleware("http")
    async def logging_middleware(request: Request, call_next) -> Response:
        start_time = time.time()

        logger.info(
            "Request started",
            method=request.method,
            url=str(request.url),
            client_host=request.client.host if request.client else None,
        )

        response = await call_next(request)

        duration = time.time() - start_time

        if settings.metrics_enabled:
            REQUEST_COUNT.labels(
                method=request.method,
                endpoint=request.url.path,
                status=response.status_code,
            ).inc()

            REQUEST_DURATION.labels(
                method=request.method,
                endpoint=request.url.path,
            ).observe(duration)

        logger.info(
            "Request completed",
            method=request.method,
            url=str(request.url),
            status_code=response.status_code,
            duration=duration,
        )

        return response

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        db_health = await db_manager.health_check()

        overall_healthy = all(
            db["status"] in ("healthy", "disabled") for db in db_health.values()
        )

        return {
            "status": "healthy" if overall_healthy else "degraded",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": time.time(),
            "databases": db_health,
        }

    # Metrics endpoint
    if settings.metrics_enabled:
        @app.get("/metrics")
        async def metrics():
            """Prometheus metrics endpoint."""
            return Response(
                generate_latest(),
                media_type="text/plain",
            )

    @app.exception_handler(PromptCollabException)
    async def domain_exception_handler(request: Request, exc: PromptCollabException):
        """Map domain errors to their HTTP status."""
        status_code = next(
            (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

        if status_code >= 500:
            logger.error(
                "Infrastructure failure",
                error=str(exc),
                error_type=type(exc).__name__,
                url=str(request.url),
                method=request.method,
            )
            message = str(exc) if settings.is_development else "Internal Server Error"
            return error_response(status_code, message)

        logger.info(
            "Request rejected",
            error=str(exc),
            error_type=type(exc).__name__,
            status_code=status_code,
            url=str(request.url),
        )
        return error_response(status_code, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Malformed or missing request data is a 400."""
        errors = exc.errors()
        if errors:
            first = errors[0]
            # Drop the location kind (body, query, path)
            field = ".".join(str(part) for part in tuple(first.get("loc", ()))[1:])
            message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
        else:
            message = "Invalid request"
        return error_response(status.HTTP_400_BAD_REQUEST, message)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            url=str(request.url),
            method=request.method,
            exc_info=True,
        )

        if settings.is_development:
            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": "Internal Server Error",
                    "detail": str(exc),
                    "type": type(exc).__name__,
                },
            )
        else:
            return error_response(500, "Internal Server Error")

    # Include routers
    from promptcollab.collaboration.routes import router as collaboration_router
    from promptcollab.history.routes import router as history_router

    app.include_router(collaboration_router, prefix="/api/v1")
    app.include_router(history_router, prefix="/api/v1")

    return app


app = create_app()
