"""FastAPI application factory and main entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

import passcut.models  # noqa: F401  (registers tables on Base.metadata)
from passcut import __version__
from passcut.api.v1.router import api_router
from passcut.core.config import settings
from passcut.core.errors import (
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from passcut.core.logging import setup_logging
from passcut.db.base import Base
from passcut.db.engine import engine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    # Create tables (in production, use migrations)
    if settings.ENV == "dev":
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        description="Police written-exam scoring, ranking and pass-cut release API",
        openapi_url="/openapi.json" if settings.ENV != "prod" else None,
        docs_url="/docs" if settings.ENV != "prod" else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    # Add exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include API routers
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - API information."""
        return {"message": settings.PROJECT_NAME, "version": __version__}

    return app


# Create app instance
app = create_app()
