"""
FastAPI Production Application

Main entry point for the PC Store API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
import structlog

from pcstore.config import get_settings
from pcstore.database.connection import init_database, close_database
from pcstore.integrations.identity import KeycloakAdminClient
from pcstore.integrations.images import CloudinaryClient
from pcstore.serving.api.main import create_api_app
from pcstore.serving.cache import init_redis, close_redis

settings = get_settings()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    from pcstore.config.logging import configure_logging
    configure_logging()

    logger.info("Starting PC Store API", environment=settings.app_env)

    await init_database()

    try:
        await init_redis()
    except Exception as e:
        logger.warning("Redis init failed, serving without cache", error=str(e))

    # External clients are built once and injected into services per request
    app.state.identity_provider = KeycloakAdminClient.from_settings(settings)
    app.state.image_store = CloudinaryClient.from_settings(settings)

    yield

    logger.info("Shutting down...")
    await app.state.identity_provider.close()
    await app.state.image_store.close()
    await close_redis()
    await close_database()


app = create_api_app(settings, lifespan=lifespan)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
