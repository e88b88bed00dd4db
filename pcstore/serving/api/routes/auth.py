"""
Auth API Endpoints

Account registration backed by the identity provider.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from pcstore.database.models import UserRole
from pcstore.serving.api.dependencies import get_registration_service
from pcstore.services.registration import RegistrationService

router = APIRouter()
debug_router = APIRouter()


class RegisterRequest(BaseModel):
    """Registration body"""
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class UserResponse(BaseModel):
    """Local user record"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(validation_alias=AliasChoices("id", "_id"), serialization_alias="_id")
    keycloak_id: str
    username: str
    email: str
    role: UserRole
    created_at: datetime
    updated_at: datetime


class RegisterResponse(BaseModel):
    message: str
    user: UserResponse


class UserListResponse(BaseModel):
    count: int
    users: List[UserResponse]


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    """
    Register a user.

    The identity provider account is created first; the local record is
    written only after that succeeds.
    """
    user = await service.register_user(payload.username, payload.email, payload.password)
    return RegisterResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
    )


@debug_router.get("/all", response_model=UserListResponse)
async def list_users(
    service: RegistrationService = Depends(get_registration_service),
) -> UserListResponse:
    """List local users. Mounted in development and testing only."""
    users = await service.list_users()
    return UserListResponse(count=len(users), users=[UserResponse.model_validate(u) for u in users])
