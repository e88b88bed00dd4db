"""
Categories API Endpoints

REST API for managing product categories.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pcstore.serving.api.dependencies import get_category_service, get_page_request
from pcstore.serving.cache import categories_cache, products_cache
from pcstore.services.catalog import PageRequest
from pcstore.services.categories import CategoryService

router = APIRouter()


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CategoryPayload(BaseModel):
    """Create or partial-update body"""
    name: Optional[str] = None
    description: Optional[str] = None
    image: Union[str, List[str], None] = None


class CategoryResponse(BaseModel):
    """Category as returned to clients"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    name: str
    slug: str
    description: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class CategoryListResponse(BaseModel):
    """Paginated category list"""
    categories: List[CategoryResponse]
    pagination: Dict[str, Any]


class CategoryDeleteResponse(BaseModel):
    """Deletion confirmation"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    deleted_category: CategoryResponse


# =============================================================================
# ENDPOINTS
# =============================================================================

async def _invalidate() -> None:
    await categories_cache.invalidate_all()
    await products_cache.invalidate_all()


@router.get("", response_model=CategoryListResponse)
async def list_categories(
    page_request: PageRequest = Depends(get_page_request),
    service: CategoryService = Depends(get_category_service),
) -> CategoryListResponse:
    """
    List categories newest first.

    `search` matches name, description or slug, case-insensitively.
    """
    categories, pagination = await service.list_categories(page_request)
    return CategoryListResponse(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        pagination=pagination.to_dict("totalCategories"),
    )


@router.post("", response_model=CategoryResponse, status_code=201)
async def create_category(
    payload: CategoryPayload,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.create_category(payload.name, payload.description, payload.image)
    await _invalidate()
    return CategoryResponse.model_validate(category)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    """Get a single category."""
    cached = await categories_cache.get(str(category_id))
    if cached:
        return CategoryResponse.model_validate(cached)

    category = CategoryResponse.model_validate(await service.get_category(category_id))
    await categories_cache.set(str(category_id), category.model_dump(mode="json"))
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: UUID,
    payload: CategoryPayload,
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    """Partially update a category; omitted fields keep their values."""
    category = await service.update_category(category_id, **payload.model_dump(exclude_unset=True))
    await _invalidate()
    return CategoryResponse.model_validate(category)


@router.delete("/{category_id}", response_model=CategoryDeleteResponse)
async def delete_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
) -> CategoryDeleteResponse:
    category = await service.delete_category(category_id)
    await _invalidate()
    return CategoryDeleteResponse(
        message="Category deleted successfully",
        deleted_category=CategoryResponse.model_validate(category),
    )
