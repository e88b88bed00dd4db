"""
Product Mutation and Query Service

Validates product fields and keeps hosted product images in step with the
stored record. Image cleanup is best-effort: the database row is the source
of truth and a leaked remote image is acceptable, a failed mutation is not.
"""

import math
import uuid
from typing import List, Optional, Tuple, Union

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from pcstore.database.models import Product
from pcstore.integrations.images import ImageStore
from pcstore.services.catalog import PageRequest, Pagination, paginate, search_condition
from pcstore.services.cleanup import delete_image_best_effort, delete_images_best_effort
from pcstore.services.errors import NotFound, ValidationError

logger = structlog.get_logger(__name__)

MISSING_FIELDS_MESSAGE = "Missing required fields: name, brand, category, price"


def normalize_product_images(images: Union[str, List[str], None]) -> List[str]:
    """Accept one URL or a list of URLs; blank entries are dropped."""
    if isinstance(images, str):
        return [images.strip()] if images.strip() else []
    if not images:
        return []
    return [url.strip() for url in images if isinstance(url, str) and url.strip()]


def _validate(
    name: Optional[str],
    brand: Optional[str],
    category: Optional[uuid.UUID],
    price: Optional[float],
    stock: Optional[int],
) -> None:
    if not name or not name.strip() or not brand or not brand.strip() or category is None or not price:
        raise ValidationError(MISSING_FIELDS_MESSAGE)
    if not math.isfinite(price) or price <= 0:
        raise ValidationError("price must be a positive number")
    if stock is not None and stock < 0:
        raise ValidationError("stock must be a non-negative integer")


class ProductService:
    """Create, read, update, delete and list products"""

    def __init__(self, session: AsyncSession, image_store: ImageStore):
        self.session = session
        self.image_store = image_store

    async def _load(self, product_id: uuid.UUID, refresh: bool = False) -> Optional[Product]:
        query = select(Product).options(selectinload(Product.category)).where(Product.id == product_id)
        if refresh:
            query = query.execution_options(populate_existing=True)
        return await self.session.scalar(query)

    async def get_product(self, product_id: uuid.UUID) -> Product:
        """Fetch a product with its category populated."""
        product = await self._load(product_id)
        if product is None:
            raise NotFound("Product not found")
        return product

    async def create_product(
        self,
        name: Optional[str],
        brand: Optional[str],
        category: Optional[uuid.UUID],
        price: Optional[float],
        description: Optional[str] = None,
        stock: Optional[int] = None,
        featured: Optional[bool] = None,
        images: Union[str, List[str], None] = None,
    ) -> Product:
        _validate(name, brand, category, price, stock)

        product = Product(
            name=name.strip(),
            brand=brand.strip(),
            description=description or "",
            category_id=category,
            price=price,
            stock=stock or 0,
            featured=bool(featured),
            images=normalize_product_images(images),
        )
        self.session.add(product)
        await self.session.commit()

        logger.info("product_created", product_id=str(product.id), category_id=str(category))
        return await self._load(product.id, refresh=True)

    async def update_product(
        self,
        product_id: uuid.UUID,
        name: Optional[str],
        brand: Optional[str],
        category: Optional[uuid.UUID],
        price: Optional[float],
        description: Optional[str] = None,
        stock: Optional[int] = None,
        featured: Optional[bool] = None,
        images: Union[str, List[str], None] = None,
    ) -> Product:
        """
        Replace a product's fields.

        When the first image changes (both old and new first image present),
        the old first image is deleted from the image host, best-effort.
        Other replaced images are left on the host.
        """
        product = await self.get_product(product_id)
        _validate(name, brand, category, price, stock)

        new_images = normalize_product_images(images)
        old_first = product.images[0] if product.images else None
        new_first = new_images[0] if new_images else None
        if old_first and new_first and old_first != new_first:
            await delete_image_best_effort(self.image_store, old_first, product_id=str(product.id))

        product.name = name.strip()
        product.brand = brand.strip()
        product.description = description or ""
        product.category_id = category
        product.price = price
        product.stock = stock or 0
        product.featured = bool(featured)
        product.images = new_images
        await self.session.commit()

        logger.info("product_updated", product_id=str(product.id))
        return await self._load(product.id, refresh=True)

    async def delete_product(self, product_id: uuid.UUID) -> Product:
        """
        Delete a product after attempting to delete every one of its images.

        The image deletes run concurrently; failures are logged and do not
        stop the other deletes or the removal of the row.
        """
        product = await self.get_product(product_id)

        if product.images:
            failures = [f for f in await delete_images_best_effort(
                self.image_store, product.images, product_id=str(product.id)
            ) if f is not None]
            if failures:
                logger.warning("product_images_leaked", product_id=str(product.id), failed=len(failures))

        await self.session.delete(product)
        await self.session.commit()

        logger.info("product_deleted", product_id=str(product.id))
        return product

    async def list_products(
        self,
        request: PageRequest,
        category_id: Optional[uuid.UUID] = None,
    ) -> Tuple[List[Product], Pagination]:
        """List products newest first, optionally searched and scoped to one category."""
        query = select(Product)
        condition = search_condition(request.search, (Product.name, Product.brand, Product.description))
        if condition is not None:
            query = query.where(condition)
        if category_id is not None:
            query = query.where(Product.category_id == category_id)

        return await paginate(
            self.session,
            query,
            request,
            order_by=(Product.created_at.desc(), Product.id),
            options=(selectinload(Product.category),),
        )
