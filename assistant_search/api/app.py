"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics and
health checks, and owns the lifecycle of the search services.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from assistant_search import __version__
from assistant_search.api.routes import router
from assistant_search.config import get_settings
from assistant_search.exceptions import AssistantSearchError, ErrorCode
from assistant_search.logging_config import get_logger, setup_logging
from assistant_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from assistant_search.services import SearchServices

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the service container on startup and tears it down on shutdown.
    """
    # Startup
    settings = get_settings()
    setup_logging(level=settings.log_level)
    logger.info(
        "Starting knowledge search",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
        },
    )

    services = SearchServices.from_settings(settings)
    await services.start()
    app.state.services = services

    yield

    # Shutdown
    logger.info("Shutting down knowledge search")
    await services.aclose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Assistant Knowledge Search",
        description="Retrieval and ranking over tenant knowledge for chat assistants",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(AssistantSearchError, search_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Register routes
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics, methods=["GET"], tags=["Observability"])
    app.include_router(router)

    return app


async def search_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle AssistantSearchError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, AssistantSearchError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code),
        content=exc.to_dict(),
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Report request validation failures as 400 with the error envelope."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    logger.info(
        "Invalid request",
        extra={"path": request.url.path, "errors": len(errors)},
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": ErrorCode.VALIDATION_ERROR.value,
                "message": "Invalid input",
                "details": {
                    "errors": [
                        {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
                        for e in errors
                    ]
                },
            }
        },
    )


_STATUS_BY_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.RECORD_NOT_FOUND: 404,
    ErrorCode.LLM_RATE_LIMIT: 429,
    ErrorCode.LLM_TIMEOUT: 504,
    ErrorCode.EMBEDDING_PROVIDERS_EXHAUSTED: 503,
}


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    return _STATUS_BY_CODE.get(error_code, 500)


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    The service stays ready without the vector store because document
    search falls back to keyword matching; that state is reported as
    ``degraded``.

    Returns:
        Readiness status with component checks.
    """
    checks: dict[str, str] = {
        "config": "ok",
    }

    services: SearchServices | None = getattr(request.app.state, "services", None)
    if services is not None:
        checks["vector_store"] = "ok" if services.vector_store_ready else "degraded"

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "degraded",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
