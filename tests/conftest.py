"""Pytest configuration and fixtures."""

from pathlib import Path
from typing import AsyncGenerator, Callable

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import DEFAULT_PLACEHOLDER_DIR
from app.core.deps import (
    get_db,
    get_reconcile_lock_path,
    get_storage_layout,
    get_tie_break_policy,
)
from app.core.security import create_access_token, get_password_hash
from app.db import models_registry  # noqa: F401 - Import to register models
from app.db.base import Base
from app.imagestore.layout import StorageLayout
from app.imagestore.records import TieBreakPolicy
from app.main import app
from app.models.store import Product, Store
from app.models.user import User

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Cheap bcrypt cost for tests
TEST_BCRYPT_ROUNDS = 4


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with async_session_maker() as session:
        yield session


@pytest.fixture
def layout(tmp_path: Path) -> StorageLayout:
    """Uploads root in a temporary directory, bundled placeholders."""
    uploads_root = tmp_path / "uploads"
    uploads_root.mkdir()
    return StorageLayout(uploads_root=uploads_root, placeholder_dir=DEFAULT_PLACEHOLDER_DIR)


@pytest.fixture
def write_upload(layout: StorageLayout) -> Callable[..., Path]:
    """Write a file relative to the uploads root."""

    def _write(relative_path: str, content: bytes = b"\x89PNG fake image") -> Path:
        path = layout.uploads_root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _write


@pytest_asyncio.fixture(scope="function")
async def client(
    db_session: AsyncSession,
    layout: StorageLayout,
    tmp_path: Path,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with overridden dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage_layout] = lambda: layout
    app.dependency_overrides[get_tie_break_policy] = lambda: TieBreakPolicy.MOST_RECENT
    app.dependency_overrides[get_reconcile_lock_path] = lambda: tmp_path / "reconcile.lock"

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create an editor without admin rights."""
    user = User(
        id="editor",
        username="editor",
        hashed_password=get_password_hash("editorpassword", rounds=TEST_BCRYPT_ROUNDS),
        is_active=True,
        is_superuser=False,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    """Create admin user."""
    user = User(
        id="admin",
        username="admin",
        hashed_password=get_password_hash("admin", rounds=TEST_BCRYPT_ROUNDS),
        is_active=True,
        is_superuser=True,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
def auth_headers(test_user: User) -> dict:
    """Create authorization headers."""
    token = create_access_token(
        data={"sub": test_user.id, "username": test_user.username}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_auth_headers(admin_user: User) -> dict:
    """Create admin authorization headers."""
    token = create_access_token(
        data={"sub": admin_user.id, "username": admin_user.username}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(scope="function")
async def sample_catalog(db_session: AsyncSession) -> dict:
    """Two stores; products 21 and 22 belong to store 3, product 40 to store 7."""
    stores = [Store(id=3, name="Corner Bakery"), Store(id=7, name="Hardware Hub")]
    products = [
        Product(id=21, store_id=3, name="Sourdough Loaf"),
        Product(id=22, store_id=3, name="Croissant"),
        Product(id=40, store_id=7, name="Claw Hammer"),
    ]
    db_session.add_all(stores)
    await db_session.commit()
    db_session.add_all(products)
    await db_session.commit()
    return {"stores": stores, "products": products}
