"""
FastAPI Application Factory

Creates and configures the API application: middleware, error handlers,
and routers.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from pcstore.config import Settings, get_settings
from pcstore.serving.api.errors import register_exception_handlers
from pcstore.serving.api.middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
)
from pcstore.serving.api.routes import (
    auth_debug_router,
    auth_router,
    categories_router,
    health_router,
    images_router,
    products_router,
)


def create_api_app(settings: Optional[Settings] = None, lifespan=None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Settings to build from (defaults to the cached settings)
        lifespan: Lifespan context that provisions the database and clients

    Returns:
        Configured FastAPI app instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="PC Store API",
        description="Storefront and admin API for PC hardware products",
        version=settings.version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.security.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.security.rate_limit_requests,
        window_seconds=settings.security.rate_limit_window_seconds,
    )

    register_exception_handlers(app)

    app.include_router(auth_router, prefix="/auth", tags=["Auth"])
    if settings.exposes_debug_routes:
        app.include_router(auth_debug_router, prefix="/auth", tags=["Auth"])
    app.include_router(categories_router, prefix="/api/categories", tags=["Categories"])
    app.include_router(products_router, prefix="/api/products", tags=["Products"])
    app.include_router(images_router, prefix="/api/cloudinary", tags=["Images"])
    app.include_router(health_router, prefix="/api/v1", tags=["Health"])

    @app.get("/api/v1/info")
    async def api_info():
        """API information endpoint."""
        return {
            "name": "PC Store API",
            "version": settings.version,
            "environment": settings.app_env,
            "documentation": "/docs",
        }

    return app
