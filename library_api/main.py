import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from library_api.api.v1.endpoints import ai, auth, book, health, user
from library_api.core.config import settings
from library_api.core.exception_handler import register_exception_handlers
from library_api.core.logging_config import setup_logging
from library_api.core.middleware import register_middlewares
from library_api.db.session import db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup and release the engine on shutdown."""
    await db.connect()
    logger.info(
        f"{settings.PROJECT_NAME} started",
        extra={"environment": settings.ENVIRONMENT, "version": settings.VERSION},
    )
    yield
    await db.disconnect()


def create_application() -> FastAPI:
    """Build the FastAPI app with middleware, error handlers and v1 routes."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        docs_url=f"{settings.API_V1_STR}/docs",
        lifespan=lifespan,
    )

    register_middlewares(app)
    register_exception_handlers(app)

    for router in (health.router, auth.router, user.router, book.router, ai.router):
        app.include_router(router)

    return app


app = create_application()
