"""FastAPI dependencies for dependency injection."""

from pathlib import Path
from typing import Annotated, AsyncGenerator

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.security import decode_access_token
from app.db.session import async_session_maker
from app.imagestore.layout import StorageLayout
from app.imagestore.records import TieBreakPolicy
from app.models.user import User
from app.services.image_service import ImageService
from app.services.user_service import UserService

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session."""
    async with async_session_maker() as session:
        try:
            yield session
        finally:
            await session.close()


def get_storage_layout() -> StorageLayout:
    """Uploads root and placeholder assets from settings."""
    return StorageLayout.from_settings(get_settings())


def get_tie_break_policy() -> TieBreakPolicy:
    return get_settings().tie_break_policy


def get_reconcile_lock_path() -> Path:
    return Path(get_settings().reconcile_lock_file)


async def get_image_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    layout: Annotated[StorageLayout, Depends(get_storage_layout)],
    policy: Annotated[TieBreakPolicy, Depends(get_tie_break_policy)],
) -> ImageService:
    return ImageService(db, layout, policy)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get current authenticated user from JWT token."""
    if not credentials:
        return None

    token = credentials.credentials
    payload = decode_access_token(token)

    if not payload:
        return None

    user_id = payload.get("sub")
    if not user_id:
        return None

    user_service = UserService(db)
    user = await user_service.get_by_id(user_id)
    return user


async def get_current_user_required(
    user: Annotated[User | None, Depends(get_current_user)],
) -> User:
    """Require authenticated user, raise 401 if not authenticated."""
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_superuser(
    user: Annotated[User, Depends(get_current_user_required)],
) -> User:
    """Require an administrator, raise 403 otherwise."""
    if not user.is_superuser:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return user


# Type aliases for cleaner dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
Layout = Annotated[StorageLayout, Depends(get_storage_layout)]
Images = Annotated[ImageService, Depends(get_image_service)]
ReconcileLockPath = Annotated[Path, Depends(get_reconcile_lock_path)]
CurrentUser = Annotated[User | None, Depends(get_current_user)]
CurrentUserRequired = Annotated[User, Depends(get_current_user_required)]
CurrentSuperuser = Annotated[User, Depends(get_current_superuser)]
