"""
FastAPI Application Entry Point

Builds the application and configures:
- API routes
- Middleware (logging, CORS)
- Rate limiting: token bucket limiters on app.state, slowapi for read endpoints
- Exception handlers mapping service errors to JSON responses
"""

import logging
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from linkbio.api import endpoints
from linkbio.core.exceptions import LinkBioException
from linkbio.core.rate_limit import build_rate_limiters, limiter
from linkbio.core.setting import Settings, settings
from linkbio.db.session import init_db
from linkbio.middleware.logging import add_logging_middleware

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


async def linkbio_exception_handler(request: Request, exc: LinkBioException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(
    config: Optional[Settings] = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings for the rate limiters and outbound services (defaults to env settings)
        clock: Time source for the token buckets (tests pass a fake clock)
    """
    config = config or settings

    app = FastAPI(
        title="Link-in-Bio Profile Service",
        description="Public profiles, music embeds, comments, tracking and AI writing help",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.limiter = limiter
    app.state.settings = config
    app.state.rate_limiters = build_rate_limiters(config, clock=clock)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(LinkBioException, linkbio_exception_handler)

    add_logging_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.BASE_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/", tags=["Health"])
    async def root():
        return {
            "message": "Link-in-Bio Profile Service",
            "version": VERSION,
            "docs": "/docs"
        }

    @app.get("/health", tags=["Health"])
    async def health_check():
        return {"status": "healthy"}

    app.include_router(endpoints.router, tags=["Profiles"])

    @app.on_event("startup")
    async def startup_event():
        await init_db()
        logger.info("Database schema ready")

    return app


app = create_app()
