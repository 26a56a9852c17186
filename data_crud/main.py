"""
Application factory.

Usage:
    from data_crud.main import create_app

    app = create_app(foo_router.router, bar_router.router, title="Inventory API")
"""

from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.constants import CONTENT_DISPOSITION
from shared.config.logging import crud_logger as logger, setup_logging
from shared.config.settings import settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from shared.infrastructure.mongo import close_mongo_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Runs on startup and shutdown.
    """
    setup_logging()

    config_errors = settings.validate_production_settings()
    if config_errors:
        for error in config_errors:
            logger.error("Configuration error: %s", error)
        if settings.environment == "production":
            raise RuntimeError(f"Production configuration errors: {'; '.join(config_errors)}")

    logger.info("Starting CRUD API", env=settings.environment)

    yield

    logger.info("Shutting down CRUD API")
    close_mongo_client()


def create_app(
    *routers: APIRouter,
    title: str = "Data CRUD API",
    version: str = "0.1.0",
) -> FastAPI:
    """Build the FastAPI app with logging, correlation ids, CORS and ``routers``."""
    app = FastAPI(title=title, version=version, lifespan=lifespan)

    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[CONTENT_DISPOSITION, CorrelationIdMiddleware.HEADER_NAME],
    )

    @app.get("/api/health")
    def health_check():
        """Basic health check endpoint."""
        return {
            "status": "healthy",
            "service": "data-crud",
            "environment": settings.environment,
        }

    for router in routers:
        app.include_router(router)

    return app


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "data_crud.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=settings.api_port,
        reload=True,
    )
