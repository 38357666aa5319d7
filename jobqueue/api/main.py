"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jobqueue import __version__
from jobqueue.api.routes import health_router, jobs_router, queues_router
from jobqueue.config import get_settings
from jobqueue.db import close_db, init_db
from jobqueue.errors import BadHandlerError, StoreUnavailableError
from jobqueue.observability.logging import setup_logging
from jobqueue.observability.metrics import setup_metrics
from jobqueue.observability.tracing import instrument_fastapi, setup_tracing
from jobqueue.types.api import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    setup_logging("api")
    setup_metrics()
    setup_tracing()
    await init_db()

    logger.info("Application started")

    yield

    # Shutdown
    await close_db()
    logger.info("Application shutdown")


async def bad_handler_exception_handler(request: Request, exc: BadHandlerError) -> JSONResponse:
    """Reject jobs whose handler cannot be built."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(error="bad_handler", detail=str(exc)).model_dump(),
    )


async def store_unavailable_exception_handler(
    request: Request,
    exc: StoreUnavailableError,
) -> JSONResponse:
    """Report a lost database connection as a temporary outage."""
    logger.error("Job store unavailable", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=ErrorResponse(error="store_unavailable", detail=str(exc)).model_dump(),
    )


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Job Queue API",
        description="Database-backed job queue with optimistic locking",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BadHandlerError, bad_handler_exception_handler)
    app.add_exception_handler(StoreUnavailableError, store_unavailable_exception_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(queues_router)

    # Instrument with OpenTelemetry
    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


# Create app instance for uvicorn
app = create_app()


if __name__ == "__main__":
    run()
