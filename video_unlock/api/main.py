"""
Main FastAPI application.

Video catalog and unlock payment API with:
- CORS configuration
- Domain error → HTTP mapping
- Request ID tracking
- Structured logging
- Prometheus metrics
"""
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from video_unlock import __version__
from video_unlock.config import Settings, get_settings
from video_unlock.core.errors import (
    InternalError,
    MediaGatewayError,
    NotFoundError,
    PaymentNotCompletedError,
    ValidationError,
)
from video_unlock.monitoring.logging import setup_logging

from .dependencies import Services, build_services
from .routes import admin_router, catalog_router, monitoring_router, payment_router

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "Something broke on the server! Please try again later."


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Map domain errors raised by the core to status codes and JSON bodies."""

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        logger.warning("validation_error", error=exc.message, path=request.url.path)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        first_error = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(loc) for loc in first_error.get("loc", []))
        message = first_error.get("msg", "Invalid request")
        logger.warning("request_validation_error", field=field, error=message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Invalid request field '{field}': {message}"},
        )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": exc.message})

    @app.exception_handler(PaymentNotCompletedError)
    async def payment_not_completed_handler(
        request: Request, exc: PaymentNotCompletedError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.message, "status": exc.status},
        )

    @app.exception_handler(MediaGatewayError)
    async def media_gateway_handler(request: Request, exc: MediaGatewayError) -> JSONResponse:
        content: dict[str, Any] = {"message": exc.message}
        if settings.is_development:
            content["error"] = exc.details
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(InternalError)
    async def internal_error_handler(request: Request, exc: InternalError) -> JSONResponse:
        original = exc.original_error
        logger.error(
            "internal_error",
            error=exc.message,
            error_type=type(original or exc).__name__,
            path=request.url.path,
        )
        content: dict[str, Any] = {"message": GENERIC_ERROR_MESSAGE}
        if settings.is_development:
            content["error"] = exc.message
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled exceptions.
        """
        return await internal_error_handler(request, InternalError.wrap(exc))


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        services: Pre-built services (tests); built from settings at startup otherwise
    """
    settings = services.settings if services is not None else get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, Any]:
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(settings)

        logger.info(
            "application_startup",
            app_name=settings.app_name,
            env=settings.app_env,
            test_mode=settings.is_test_mode,
            cloud_name=settings.cloudinary_cloud_name,
        )

        yield

        logger.info("application_shutdown")
        await app.state.services.aclose()

    app = FastAPI(
        title="Video Unlock Backend",
        description=(
            "Lists uploaded videos from Cloudinary and sells a one-time unlock "
            "through Stripe PaymentIntents, tracking transactions per user."
        ),
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins_list(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next: Any) -> Response:
        """
        Add request ID to all requests for tracing.

        Also adds timing information and structured logging context.
        """
        request_id = str(uuid.uuid4())
        start_time = time.time()

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        logger.info(
            "request_started",
            client_host=request.client.host if request.client else None,
        )

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_seconds=time.time() - start_time,
            )
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                duration_seconds=time.time() - start_time,
            )
            raise

        finally:
            structlog.contextvars.clear_contextvars()

    register_exception_handlers(app, settings)

    app.include_router(payment_router)
    app.include_router(admin_router)
    app.include_router(catalog_router)
    app.include_router(monitoring_router)

    @app.get("/", tags=["root"])
    async def root(request: Request) -> dict[str, Any]:
        """Service information and payment statistics."""
        stats = request.app.state.services.queries.stats()
        return {
            "service": settings.app_name,
            "version": __version__,
            "status": "operational",
            "environment": settings.app_env,
            "cloudinary_cloud": settings.cloudinary_cloud_name,
            "stripe_configured": bool(settings.stripe_secret_key),
            "server_time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "payment_statistics": stats,
            "endpoints": [
                "GET /api/videos",
                "GET /api/test-stripe",
                "POST /api/create-payment",
                "POST /api/confirm-payment",
                "GET /api/user/{user_id}",
                "GET /api/admin/transactions",
                "GET /health",
                "GET /metrics",
            ],
        }

    return app


setup_logging()
app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
