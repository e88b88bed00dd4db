"""
Unit Tests - Registration
"""
import pytest
from sqlalchemy import func, select

from pcstore.database.models import User, UserRole
from pcstore.services.errors import (
    AlreadyExists,
    InvalidUserData,
    ProvisioningFailed,
    RegistrationFailed,
    ValidationError,
)
from pcstore.services.registration import RegistrationService


async def count_users(session) -> int:
    return await session.scalar(select(func.count()).select_from(User))


@pytest.fixture
def service(test_db, identity_provider):
    return RegistrationService(test_db, identity_provider)


class TestRegisterUser:
    """Tests for RegistrationService.register_user"""

    async def test_successful_registration(self, service, identity_provider, test_db):
        """Test provider account then local record"""
        user = await service.register_user("alice", "alice@example.com", "s3cret!")

        assert user.keycloak_id == "kc-1"
        assert user.username == "alice"
        assert user.role == UserRole.USER
        assert user.created_at is not None
        assert identity_provider.calls == [
            {"username": "alice", "email": "alice@example.com", "password": "s3cret!"}
        ]
        assert await count_users(test_db) == 1

    async def test_missing_fields(self, service, identity_provider):
        """Test missing password is rejected before any call"""
        with pytest.raises(ValidationError):
            await service.register_user("alice", "alice@example.com", "")

        assert identity_provider.calls == []

    @pytest.mark.parametrize(
        "username,email,password",
        [
            ("   ", "alice@example.com", "s3cret!"),
            ("alice", "\t ", "s3cret!"),
            ("alice", "alice@example.com", "  "),
            (None, "alice@example.com", "s3cret!"),
        ],
    )
    async def test_blank_fields(self, service, identity_provider, test_db, username, email, password):
        """Test whitespace-only fields count as missing"""
        with pytest.raises(ValidationError):
            await service.register_user(username, email, password)

        assert identity_provider.calls == []
        assert await count_users(test_db) == 0

    async def test_identity_fields_are_trimmed(self, service, identity_provider):
        """Test surrounding whitespace is removed before provisioning and storage"""
        user = await service.register_user("  alice ", " alice@example.com ", "s3cret!")

        assert user.username == "alice"
        assert user.email == "alice@example.com"
        assert identity_provider.calls[0]["username"] == "alice"

    @pytest.mark.parametrize(
        "username,email",
        [("alice", "other@example.com"), ("other", "alice@example.com")],
    )
    async def test_duplicate_skips_provider(self, service, identity_provider, username, email):
        """Test local duplicate is detected before provisioning"""
        await service.register_user("alice", "alice@example.com", "s3cret!")
        identity_provider.calls.clear()

        with pytest.raises(AlreadyExists) as exc_info:
            await service.register_user(username, email, "s3cret!")

        assert exc_info.value.message == "User with this username or email already exists"
        assert identity_provider.calls == []

    async def test_provider_failure_writes_nothing(self, service, identity_provider, test_db):
        """Test provider failure propagates and leaves no row"""
        identity_provider.error = ProvisioningFailed("Keycloak error (500): Unknown error")

        with pytest.raises(ProvisioningFailed):
            await service.register_user("alice", "alice@example.com", "s3cret!")

        assert await count_users(test_db) == 0

    async def test_provider_conflict_propagates(self, service, identity_provider, test_db):
        """Test provider-side duplicate keeps its kind"""
        identity_provider.error = AlreadyExists("User already exists in Keycloak")

        with pytest.raises(AlreadyExists) as exc_info:
            await service.register_user("alice", "alice@example.com", "s3cret!")

        assert exc_info.value.message == "User already exists in Keycloak"
        assert await count_users(test_db) == 0

    async def test_unexpected_provider_error(self, service, identity_provider):
        """Test unclassified errors become RegistrationFailed"""
        identity_provider.error = RuntimeError("socket closed")

        with pytest.raises(RegistrationFailed):
            await service.register_user("alice", "alice@example.com", "s3cret!")

    async def test_local_rejection_after_provisioning(self, service, identity_provider, test_db):
        """Test invalid local data is reported after the provider account exists"""
        with pytest.raises(InvalidUserData):
            await service.register_user("alice", "not-an-email", "s3cret!")

        assert len(identity_provider.calls) == 1
        assert await count_users(test_db) == 0

    async def test_persist_conflict_is_already_exists(self, service, identity_provider, test_db):
        """Test a unique violation on persist maps to AlreadyExists"""
        await service.register_user("alice", "alice@example.com", "s3cret!")
        identity_provider.next_id = "kc-1"

        with pytest.raises(AlreadyExists):
            await service.register_user("bob", "bob@example.com", "s3cret!")

        assert len(identity_provider.calls) == 2
        assert await count_users(test_db) == 1


class TestListUsers:
    """Tests for RegistrationService.list_users"""

    async def test_lists_registered_users(self, service):
        """Test every registered user is returned"""
        await service.register_user("alice", "alice@example.com", "s3cret!")
        await service.register_user("bob", "bob@example.com", "s3cret!")

        users = await service.list_users()

        assert {u.username for u in users} == {"alice", "bob"}
