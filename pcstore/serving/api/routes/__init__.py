"""
API Routes Module
"""
from .auth import router as auth_router, debug_router as auth_debug_router
from .categories import router as categories_router
from .health import router as health_router
from .images import router as images_router
from .products import router as products_router

__all__ = [
    "auth_router",
    "auth_debug_router",
    "categories_router",
    "health_router",
    "images_router",
    "products_router",
]
