"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import promptcollab.models  # noqa: F401
from promptcollab.auth.models import User
from promptcollab.auth.security import token_manager
from promptcollab.database import Base
from promptcollab.database_deps import get_db
from promptcollab.documents.models import Document
from promptcollab.main import app


@pytest_asyncio.fixture
async def test_engine():
    """In-memory SQLite engine, fresh for every test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def test_app(test_session):
    """FastAPI app whose requests share the test session."""

    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create async test client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# Test data factories
class TestDataFactory:
    """Factory for creating test data."""

    @staticmethod
    def user_data(**overrides):
        data = {
            "email": "alice@example.com",
            "display_name": "Alice",
            "is_active": True,
        }
        data.update(overrides)
        return data

    @staticmethod
    def document_data(**overrides):
        data = {
            "name": "Greeting prompt",
            "content": "",
            "description": "Says hello",
            "tags": ["greeting"],
            "category": "general",
            "parameters": {"temperature": 0.7},
            "attachments": [{"type": "image", "url": "https://cdn.example.com/a.png"}],
            "preview_asset_url": "https://cdn.example.com/preview.png",
            "is_public": False,
        }
        data.update(overrides)
        return data


@pytest.fixture
def test_data():
    """Provide test data factory."""
    return TestDataFactory


# Helper functions for testing
class TestHelpers:
    """Helper functions for tests."""

    @staticmethod
    async def create_test_user(session: AsyncSession, **overrides) -> User:
        """Create a test user in the database."""
        user = User(**TestDataFactory.user_data(**overrides))
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    @staticmethod
    async def create_test_document(session: AsyncSession, owner_id, **overrides) -> Document:
        """Create a test document in the database."""
        document = Document(owner_id=owner_id, **TestDataFactory.document_data(**overrides))
        session.add(document)
        await session.commit()
        await session.refresh(document)
        return document

    @staticmethod
    def auth_headers(user_id) -> dict:
        """Bearer header carrying a freshly issued token for the user."""
        token = token_manager.create_access_token({"user_id": str(user_id)})
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def helpers():
    """Provide test helpers."""
    return TestHelpers


@pytest_asyncio.fixture
async def alice(test_session):
    return await TestHelpers.create_test_user(test_session)


@pytest_asyncio.fixture
async def bob(test_session):
    return await TestHelpers.create_test_user(
        test_session, email="bob@example.com", display_name="Bob"
    )


@pytest_asyncio.fixture
async def document(test_session, alice):
    """A private document owned by alice."""
    return await TestHelpers.create_test_document(test_session, alice.id)
