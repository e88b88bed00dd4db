"""
Category Mutation and Query Service

Keeps name/slug uniqueness and the hosted category image consistent with
the stored record across create, update and delete.
"""

import uuid
from typing import Any, List, Optional, Tuple, Union

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pcstore.database.models import Category
from pcstore.integrations.images import ImageStore
from pcstore.services.catalog import PageRequest, Pagination, paginate, search_condition, slugify
from pcstore.services.cleanup import delete_image_best_effort
from pcstore.services.errors import DuplicateName, NotFound, ValidationError

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = ("name", "description", "image")


def normalize_category_image(image: Union[str, List[str], None]) -> str:
    """A category holds one image URL; lists contribute their first entry."""
    if isinstance(image, list):
        image = next((url for url in image if isinstance(url, str) and url.strip()), "")
    if not isinstance(image, str):
        return ""
    return image.strip()


class CategoryService:
    """Create, read, update, delete and list categories"""

    def __init__(self, session: AsyncSession, image_store: ImageStore):
        self.session = session
        self.image_store = image_store

    async def _find_conflict(self, name: str, slug: str, exclude_id: Optional[uuid.UUID] = None) -> Optional[Category]:
        query = select(Category).where(or_(Category.name == name, Category.slug == slug))
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        return await self.session.scalar(query.limit(1))

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateName(detail=str(e)) from e

    async def create_category(
        self,
        name: Optional[str],
        description: Optional[str] = None,
        image: Union[str, List[str], None] = None,
    ) -> Category:
        if not name or not name.strip():
            raise ValidationError("Category name is required")

        name = name.strip()
        slug = slugify(name)
        if await self._find_conflict(name, slug) is not None:
            raise DuplicateName()

        category = Category(
            name=name,
            slug=slug,
            description=description,
            image=normalize_category_image(image),
        )
        self.session.add(category)
        await self._commit()

        logger.info("category_created", category_id=str(category.id), slug=slug)
        return category

    async def get_category(self, category_id: uuid.UUID) -> Category:
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NotFound("Category not found")
        return category

    async def update_category(self, category_id: uuid.UUID, **changes: Any) -> Category:
        """
        Partially update a category.

        Only keys present in `changes` are applied. A new name re-derives the
        slug and is checked against every other category. A replaced or
        cleared image triggers a best-effort delete of the previous one.
        """
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown category fields: {', '.join(sorted(unknown))}")

        category = await self.get_category(category_id)

        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Category name is required")
            if name != category.name:
                slug = slugify(name)
                if await self._find_conflict(name, slug, exclude_id=category.id) is not None:
                    raise DuplicateName()
                category.name = name
                category.slug = slug

        if "description" in changes:
            category.description = changes["description"]

        old_image = category.image or ""
        if "image" in changes:
            new_image = normalize_category_image(changes["image"])
            if new_image != old_image and old_image:
                await delete_image_best_effort(
                    self.image_store, old_image, category_id=str(category.id)
                )
            category.image = new_image

        await self._commit()
        logger.info("category_updated", category_id=str(category.id), fields=sorted(changes))
        return category

    async def delete_category(self, category_id: uuid.UUID) -> Category:
        """Delete a category and, best-effort, its hosted image; returns its last state."""
        category = await self.get_category(category_id)

        if category.image:
            await delete_image_best_effort(self.image_store, category.image, category_id=str(category.id))

        await self.session.delete(category)
        await self.session.commit()

        logger.info("category_deleted", category_id=str(category.id))
        return category

    async def list_categories(self, request: PageRequest) -> Tuple[List[Category], Pagination]:
        query = select(Category)
        condition = search_condition(request.search, (Category.name, Category.description, Category.slug))
        if condition is not None:
            query = query.where(condition)

        return await paginate(
            self.session,
            query,
            request,
            order_by=(Category.created_at.desc(), Category.id),
        )
