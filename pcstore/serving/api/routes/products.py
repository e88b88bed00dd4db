"""
Products API Endpoints

REST API for the product catalog. Every product is returned with its
category populated.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pcstore.serving.api.dependencies import get_page_request, get_product_service
from pcstore.serving.api.routes.categories import CategoryResponse
from pcstore.serving.cache import products_cache
from pcstore.services.catalog import PageRequest
from pcstore.services.products import ProductService

router = APIRouter()


class ProductPayload(BaseModel):
    """Create or replace body"""
    name: Optional[str] = None
    brand: Optional[str] = None
    description: Optional[str] = None
    category: Optional[UUID] = None
    price: Optional[float] = Field(None, allow_inf_nan=False)
    stock: Optional[int] = None
    featured: Optional[bool] = None
    images: Union[str, List[str], None] = None


class ProductResponse(BaseModel):
    """Product with populated category"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    name: str
    brand: str
    description: Optional[str] = None
    category_id: UUID
    category: Optional[CategoryResponse] = None
    price: float
    stock: int
    images: List[str]
    featured: bool
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    """Paginated product list"""
    products: List[ProductResponse]
    pagination: Dict[str, Any]


class ProductDeleteResponse(BaseModel):
    """Deletion confirmation"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    message: str
    deleted_product: ProductResponse


def _list_response(products, pagination) -> ProductListResponse:
    return ProductListResponse(
        products=[ProductResponse.model_validate(p) for p in products],
        pagination=pagination.to_dict("totalProducts"),
    )


@router.get("", response_model=ProductListResponse)
async def list_products(
    page_request: PageRequest = Depends(get_page_request),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    """
    List products newest first.

    `search` matches name, brand or description, case-insensitively.
    """
    return _list_response(*await service.list_products(page_request))


@router.get("/category/{category_id}", response_model=ProductListResponse)
async def list_products_by_category(
    category_id: UUID,
    page_request: PageRequest = Depends(get_page_request),
    service: ProductService = Depends(get_product_service),
) -> ProductListResponse:
    """Same as the product list, restricted to one category."""
    return _list_response(*await service.list_products(page_request, category_id=category_id))


@router.post("", response_model=ProductResponse, status_code=201)
async def create_product(
    payload: ProductPayload,
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    product = await service.create_product(**payload.model_dump())
    return ProductResponse.model_validate(product)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: UUID,
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    """Get product details."""
    cached = await products_cache.get(str(product_id))
    if cached:
        return ProductResponse.model_validate(cached)

    product = ProductResponse.model_validate(await service.get_product(product_id))
    await products_cache.set(str(product_id), product.model_dump(mode="json"))
    return product


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: UUID,
    payload: ProductPayload,
    service: ProductService = Depends(get_product_service),
) -> ProductResponse:
    product = await service.update_product(product_id, **payload.model_dump())
    await products_cache.invalidate_all()
    return ProductResponse.model_validate(product)


@router.delete("/{product_id}", response_model=ProductDeleteResponse)
async def delete_product(
    product_id: UUID,
    service: ProductService = Depends(get_product_service),
) -> ProductDeleteResponse:
    """Delete a product and, best-effort, all of its hosted images."""
    product = await service.delete_product(product_id)
    await products_cache.invalidate_all()
    return ProductDeleteResponse(
        message="Product deleted successfully",
        deleted_product=ProductResponse.model_validate(product),
    )
