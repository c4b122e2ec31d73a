"""
Main entry point of the proposal generation service.
Creates and configures the web application.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proposal_engine import __version__
from proposal_engine.api.endpoints import health
from proposal_engine.api.router import api_router
from proposal_engine.config import get_settings
from proposal_engine.exceptions import (
    ConfigurationError,
    InputValidationError,
    ProposalGeneratorError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle.

    On startup the settings and rate tables are loaded so a broken
    RateConfig fails fast instead of on the first request.
    """
    from proposal_engine.layers.layer1_pricing import get_rate_config

    settings = get_settings()
    get_rate_config()
    logger.info(f"Proposal engine starting on {settings.host}:{settings.port}")
    logger.info(f"Narrative provider: {settings.default_provider}")

    yield

    logger.info("Proposal engine shutting down")


def create_app() -> FastAPI:
    """
    Build the FastAPI application.

    1. App metadata
    2. CORS
    3. Error handlers
    4. Routers (/health and /api/v1)
    """
    settings = get_settings()

    app = FastAPI(
        title="Proposal Engine",
        description="Audit extract to priced, narrated Phase 2 proposal",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Project errors become structured JSON responses
    @app.exception_handler(ProposalGeneratorError)
    async def proposal_error_handler(request: Request, exc: ProposalGeneratorError):
        status_code = 400 if isinstance(exc, (InputValidationError, ConfigurationError)) else 500
        return JSONResponse(
            status_code=status_code,
            content={
                "error_code": exc.error_code,
                "message": exc.message,
                "details": exc.details,
                "timestamp": datetime.now().isoformat(),
            },
        )

    @app.exception_handler(Exception)
    async def general_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error_code": "ERR_INTERNAL",
                "message": "Internal server error",
                "details": None,
                "timestamp": datetime.now().isoformat(),
            },
        )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Basic service information."""
        return {
            "name": "Proposal Engine",
            "version": __version__,
            "docs": "/docs",
            "api": "/api/v1",
        }

    return app


# Application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "proposal_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
