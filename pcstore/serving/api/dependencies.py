"""
API Dependencies

Wires request-scoped services from the database session and the external
clients the application lifespan stored on `app.state`. Tests replace any of
these through `app.dependency_overrides`.
"""

from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from pcstore.config import get_settings
from pcstore.database.connection import get_db_dependency
from pcstore.integrations.identity import IdentityProvider
from pcstore.integrations.images import ImageStore
from pcstore.services.catalog import PageRequest
from pcstore.services.categories import CategoryService
from pcstore.services.products import ProductService
from pcstore.services.registration import RegistrationService


def get_identity_provider(request: Request) -> IdentityProvider:
    return request.app.state.identity_provider


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def get_registration_service(
    db: AsyncSession = Depends(get_db_dependency),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> RegistrationService:
    return RegistrationService(db, identity_provider)


def get_category_service(
    db: AsyncSession = Depends(get_db_dependency),
    image_store: ImageStore = Depends(get_image_store),
) -> CategoryService:
    return CategoryService(db, image_store)


def get_product_service(
    db: AsyncSession = Depends(get_db_dependency),
    image_store: ImageStore = Depends(get_image_store),
) -> ProductService:
    return ProductService(db, image_store)


def get_page_request(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    search: str = Query(""),
) -> PageRequest:
    """Listing parameters; out-of-range values become InvalidLimit / ValidationError."""
    catalog = get_settings().catalog
    return PageRequest.build(
        page=page,
        limit=limit,
        search=search,
        default_limit=catalog.default_page_size,
        max_limit=catalog.max_page_size,
    )
