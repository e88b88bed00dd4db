"""
Image Host API Endpoints

Direct access to the remote image store for the admin console: delete an
asset by id and upload a new image.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import structlog

from pcstore.integrations.images import ImageStore
from pcstore.serving.api.dependencies import get_image_store
from pcstore.services.errors import AssetDeletionFailed, ValidationError

logger = structlog.get_logger(__name__)
router = APIRouter()

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class DeleteImageRequest(BaseModel):
    public_id: Optional[str] = Field(default=None, alias="publicId")


class DeleteImageResponse(BaseModel):
    message: str
    result: str


class UploadImageResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    secure_url: str
    asset_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    format: Optional[str] = None


@router.post("/delete", response_model=DeleteImageResponse)
async def delete_image(
    payload: DeleteImageRequest,
    image_store: ImageStore = Depends(get_image_store),
):
    """Delete an image by asset id; a missing asset counts as deleted."""
    if not payload.public_id:
        raise ValidationError("publicId is required")

    try:
        result = await image_store.delete_asset(payload.public_id)
    except AssetDeletionFailed as e:
        logger.error("image_delete_failed", asset_id=payload.public_id, detail=e.detail)
        return JSONResponse(
            status_code=e.status_code,
            content={"message": e.public_message, "result": e.result},
        )

    return DeleteImageResponse(message="Image deleted successfully", result=result)


@router.post("/upload", response_model=UploadImageResponse, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    folder: Optional[str] = Form(None),
    image_store: ImageStore = Depends(get_image_store),
) -> UploadImageResponse:
    """Upload an image file to the image host."""
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError("Please select an image file (JPEG, PNG, GIF, etc.)")

    content = await file.read()
    if len(content) > MAX_UPLOAD_BYTES:
        raise ValidationError("Image size must be less than 5MB")

    result = await image_store.upload_asset(
        (file.filename or "upload", content, file.content_type),
        folder=folder,
    )
    return UploadImageResponse(
        secure_url=result.secure_url,
        asset_id=result.asset_id,
        width=result.width,
        height=result.height,
        format=result.format,
    )
