"""FastAPI application factory and server configuration."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from preptrack import __version__
from preptrack.config import get_settings
from preptrack.db.base import close_db, init_db
from preptrack.errors import PrepTrackError
from preptrack.log import configure_logging
from preptrack.middleware import AuthMiddleware, RateLimitMiddleware, RequestIDMiddleware
from preptrack.routes import auth, items, mock_tests, stats, users
from preptrack.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1

ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 404, 409, 503)
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan manager."""
    # Startup
    configure_logging(get_settings())
    await init_db()

    yield

    # Shutdown
    await close_db()


async def handle_domain_error(request: Request, exc: PrepTrackError) -> JSONResponse:
    """Render domain errors as ``ErrorResponse`` bodies."""
    headers = {}
    if exc.retryable:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=headers,
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_exception_handler(PrepTrackError, handle_domain_error)

    # Middleware; the last one added runs first
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(
        auth.router, prefix="/v1/auth", tags=["auth"], responses=ERROR_RESPONSES
    )
    app.include_router(
        users.router, prefix="/v1/users", tags=["users"], responses=ERROR_RESPONSES
    )
    app.include_router(
        items.router, prefix="/v1/items", tags=["items"], responses=ERROR_RESPONSES
    )
    app.include_router(
        stats.router, prefix="/v1/stats", tags=["stats"], responses=ERROR_RESPONSES
    )
    app.include_router(
        mock_tests.router, prefix="/v1/tests", tags=["tests"], responses=ERROR_RESPONSES
    )

    # Health check
    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "service": "preptrack"}

    @app.get("/")
    async def root():
        return JSONResponse(
            content={
                "service": settings.app_name,
                "version": __version__,
                "docs": "/docs" if settings.debug else None,
            }
        )

    return app


app = create_app()
