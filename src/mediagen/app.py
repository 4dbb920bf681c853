"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Response, status
from sqlalchemy import text

from mediagen.api.routes import worker
from mediagen.core.config import Settings, configure_logging
from mediagen.core.database import setup_db_session
from mediagen.uow import create_uow_factory
from mediagen.workers.generation_worker import build_collaborators

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    Startup: configure logging, create the session and UoW factories and wire
    the executor's collaborators into app.state.
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    uow_factory = create_uow_factory(session_factory)

    app.state.session_factory = session_factory
    app.state.uow_factory = uow_factory
    app.state.collaborators = build_collaborators(settings, uow_factory)

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        image_provider=settings.image_provider,
    )

    yield

    logger.info("application.shutdown")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title="mediagen",
        description="Generation job executor for AI image and video variations",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.include_router(worker.router)

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()
