"""
SQLShift FastAPI Application.

HTTP API for uploading SQL files, converting them and tracking each file
through review, deployment and migration history.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware

from sqlshift import __version__
from sqlshift.api.errors import register_error_handlers
from sqlshift.api.routes import (
    comments,
    deployments,
    files,
    history,
    projects,
    review,
)
from sqlshift.config import settings
from sqlshift.logging_config import setup_logging
from sqlshift.startup import run_all_startup_checks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Runs startup checks before the application starts serving requests.
    """
    setup_logging(context="api")

    logger.info("Running startup checks...")
    run_all_startup_checks()
    logger.info("✓ Startup checks passed")

    yield

    logger.info("Application shutdown complete")


app = FastAPI(
    lifespan=lifespan,
    title="SQLShift API",
    description="API for tracking Sybase to Oracle code migrations",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint - API health check."""
    return {
        "status": "ok",
        "message": "SQLShift API is running",
        "version": __version__,
    }


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    from sqlshift.db.connection import check_connection

    db_status = "healthy" if check_connection() else "unhealthy"

    return {
        "status": "healthy" if db_status == "healthy" else "degraded",
        "database": db_status,
    }


@app.get("/ready")
async def ready():
    """
    Readiness probe endpoint.

    Returns 200 OK if ready to serve requests, 503 Service Unavailable otherwise.
    """
    from fastapi.responses import JSONResponse

    from sqlshift.startup import check_readiness

    is_ready, details = check_readiness()

    if not is_ready:
        return JSONResponse(
            content=details,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return details


app.include_router(projects.router, prefix="/projects", tags=["projects"])
app.include_router(files.router, prefix="/files", tags=["files"])
app.include_router(review.router, prefix="/review", tags=["review"])
app.include_router(deployments.router, prefix="/deployments", tags=["deployments"])
app.include_router(history.router, prefix="/history", tags=["history"])
app.include_router(comments.router, prefix="/comments", tags=["comments"])
