"""
Test Suite Configuration
"""
import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import AsyncGenerator, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from pcstore.config import Settings
from pcstore.database.connection import build_session_factory, get_db_dependency
from pcstore.database.models import Base
from pcstore.integrations.identity import ProvisionedIdentity
from pcstore.integrations.images import UploadResult, extract_asset_id
from pcstore.serving.api.main import create_api_app


class RecordingIdentityProvider:
    """Identity provider double that records every create_user call"""

    def __init__(self):
        self.calls: List[Dict[str, str]] = []
        self.error: Optional[Exception] = None
        self.next_id: Optional[str] = None

    async def create_user(self, username: str, email: str, password: str) -> ProvisionedIdentity:
        self.calls.append({"username": username, "email": email, "password": password})
        if self.error is not None:
            raise self.error
        identity_id = self.next_id or f"kc-{len(self.calls)}"
        return ProvisionedIdentity(id=identity_id, username=username, email=email)


class RecordingImageStore:
    """Image store double; URLs or ids listed in `failing` raise on delete"""

    def __init__(self):
        self.deleted_ids: List[str] = []
        self.deleted_urls: List[str] = []
        self.failing: set = set()
        self.results: Dict[str, str] = {}
        self.uploads: List[Dict] = []
        self.upload_error: Optional[Exception] = None

    async def delete_asset(self, asset_id: str) -> str:
        if asset_id in self.failing:
            raise RuntimeError(f"image host unavailable for {asset_id}")
        self.deleted_ids.append(asset_id)
        return self.results.get(asset_id, "ok")

    async def delete_asset_by_url(self, url: str) -> Optional[str]:
        self.deleted_urls.append(url)
        if url in self.failing:
            raise RuntimeError(f"image host unavailable for {url}")
        asset_id = extract_asset_id(url)
        if asset_id is None:
            return None
        return await self.delete_asset(asset_id)

    async def upload_asset(self, file, folder=None, preset_name=None) -> UploadResult:
        self.uploads.append({"file": file, "folder": folder, "preset_name": preset_name})
        if self.upload_error is not None:
            raise self.upload_error
        return UploadResult(
            secure_url="https://res.cloudinary.com/pcstore/image/upload/v1/pc-store/categories/new.png",
            asset_id="pc-store/categories/new",
            width=640,
            height=480,
            format="png",
        )


def image_url(asset_id: str, version: int = 1700000000, ext: str = "jpg") -> str:
    return f"https://res.cloudinary.com/pcstore/image/upload/v{version}/{asset_id}.{ext}"


@pytest.fixture
def make_image_url():
    """Delivery URL builder for hosted images"""
    return image_url


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(APP_ENV="testing", DEBUG=True)


@pytest.fixture
async def test_engine():
    """In-memory SQLite engine shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return build_session_factory(test_engine)


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def identity_provider() -> RecordingIdentityProvider:
    return RecordingIdentityProvider()


@pytest.fixture
def image_store() -> RecordingImageStore:
    return RecordingImageStore()


@pytest.fixture
def app(test_settings, session_factory, identity_provider, image_store):
    """API app wired to the test database and the recording doubles"""
    application = create_api_app(test_settings)
    application.state.identity_provider = identity_provider
    application.state.image_store = image_store

    async def _test_db_dependency():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_dependency] = _test_db_dependency
    return application


@pytest.fixture
async def client(app) -> AsyncGenerator[httpx.AsyncClient, None]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client
