"""
Registration Orchestrator

Creates a local User only after the identity provider has an account for
it. The two writes are not coordinated: when the local write fails after the
provider succeeded, the provider account is left in place and logged as
orphaned.
"""

from typing import List, Optional

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from pcstore.database.models import User, UserRole
from pcstore.integrations.identity import IdentityProvider
from pcstore.services.errors import (
    AlreadyExists,
    InvalidUserData,
    RegistrationFailed,
    StoreError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

MAX_USERNAME_LENGTH = 150
MAX_EMAIL_LENGTH = 255


class RegistrationService:
    """Two-phase user registration against an external identity provider"""

    def __init__(self, session: AsyncSession, identity_provider: IdentityProvider):
        self.session = session
        self.identity_provider = identity_provider

    async def register_user(self, username: Optional[str], email: Optional[str], password: Optional[str]) -> User:
        """
        Register a user.

        Steps run strictly in order: uniqueness check, identity provisioning,
        local persist.

        Raises:
            ValidationError: a field is missing or blank
            AlreadyExists: username or email taken locally or in the provider
            ProvisioningAuthFailed / ProvisioningFailed: the provider failed
            InvalidUserData: the local record was rejected
            RegistrationFailed: anything else
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username or not email or not password or not password.strip():
            raise ValidationError("Missing required fields: username, email, and password are required")

        log = logger.bind(username=username, email=email)

        try:
            existing = await self.session.scalar(
                select(User).where(or_(User.username == username, User.email == email)).limit(1)
            )
            if existing is not None:
                raise AlreadyExists("User with this username or email already exists")

            identity = await self.identity_provider.create_user(username, email, password)
        except StoreError:
            raise
        except Exception as e:
            log.error("registration_failed", stage="provisioning", error=str(e), error_type=type(e).__name__)
            raise RegistrationFailed(detail=str(e)) from e

        try:
            user = self._build_user(identity.id, username, email)
            self.session.add(user)
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            log.error(
                "registration_orphaned_identity",
                keycloak_id=identity.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            if isinstance(e, IntegrityError):
                raise AlreadyExists("User with this username or email already exists", detail=str(e)) from e
            if isinstance(e, InvalidUserData):
                raise
            raise RegistrationFailed(detail=str(e)) from e

        log.info("user_registered", user_id=str(user.id), keycloak_id=identity.id)
        return user

    @staticmethod
    def _build_user(keycloak_id: str, username: str, email: str) -> User:
        problems: List[str] = []
        if not keycloak_id:
            problems.append("keycloak_id is required")
        if len(username) > MAX_USERNAME_LENGTH:
            problems.append(f"username exceeds {MAX_USERNAME_LENGTH} characters")
        if len(email) > MAX_EMAIL_LENGTH or "@" not in email:
            problems.append("email is not valid")
        if problems:
            raise InvalidUserData(detail="; ".join(problems))

        return User(keycloak_id=keycloak_id, username=username, email=email, role=UserRole.USER)

    async def list_users(self) -> List[User]:
        result = await self.session.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())
