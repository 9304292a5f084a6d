"""
pgmonitor API - Main FastAPI Application

Serves derived PostgreSQL monitoring metrics to dashboard clients.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pgmonitor import __version__
from pgmonitor.api import ENDPOINTS
from pgmonitor.api import router as api_router
from pgmonitor.api.deps import get_datasource
from pgmonitor.config import Settings, settings as default_settings
from pgmonitor.datasource import DataSource
from pgmonitor.errors import DataSourceError, ReportFailed
from pgmonitor.host import prime_cpu_percent
from pgmonitor.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings: Settings = app.state.settings
    logger.info(f"pgmonitor {__version__} starting in {settings.APP_ENV} mode")
    prime_cpu_percent()
    try:
        await app.state.datasource.connect()
    except DataSourceError as e:
        # The pool is created lazily on the next request.
        logger.warning(f"Database not reachable at startup: {e}")

    yield

    # Shutdown
    logger.info("pgmonitor shutting down")
    await app.state.datasource.close()


def create_app(
    settings: Optional[Settings] = None,
    datasource: Optional[DataSource] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title="pgmonitor API",
        description="PostgreSQL monitoring dashboard backend",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.datasource = datasource or DataSource(settings)
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
    )

    # Request logging and timing middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        logger.info(f"{request.method} {request.url.path}")
        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = (time.perf_counter() - start_time) * 1000
        response.headers["X-Process-Time"] = f"{process_time:.2f}ms"
        return response

    @app.exception_handler(ReportFailed)
    async def report_failed_handler(request: Request, exc: ReportFailed):
        logger.error(f"{exc.message}: {exc.details}")
        return ORJSONResponse(
            status_code=500,
            content={"error": exc.message, "details": exc.details},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            content = {"error": "Endpoint not found"}
        else:
            content = {"error": str(exc.detail)}
        return ORJSONResponse(status_code=exc.status_code, content=content)

    # Global exception handler - return generic errors in production
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Server error on {request.method} {request.url.path}: {exc!r}")
        return ORJSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "details": str(exc) if settings.is_development else "An unexpected error occurred",
            },
        )

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check(
        source: Annotated[DataSource, Depends(get_datasource)],
    ) -> Any:
        """Health check endpoint; 503 when the database cannot be queried."""
        try:
            await source.ping()
        except DataSourceError as e:
            return ORJSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "error": "Database unavailable",
                    "details": str(e),
                },
            )
        return {
            "status": "ok",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - app.state.started_at, 3),
        }

    @app.get("/")
    async def root() -> dict[str, Any]:
        """Root endpoint."""
        return {
            "name": "pgmonitor API",
            "version": __version__,
            "endpoints": ENDPOINTS,
        }

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Console entry point."""
    import uvicorn
    uvicorn.run(
        "pgmonitor.main:app",
        host=default_settings.HOST,
        port=default_settings.PORT,
        reload=default_settings.DEBUG,
    )


if __name__ == "__main__":
    run()
