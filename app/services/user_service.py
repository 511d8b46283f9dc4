"""User service for the administration accounts."""

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_password_hash, verify_password
from app.models.user import User
from app.services.base_service import BaseService


class UserService(BaseService[User]):
    """Accounts allowed to change galleries or run reconciliation."""

    def __init__(self, db: AsyncSession):
        super().__init__(db, User)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    async def authenticate(self, user_id: str, password: str) -> User | None:
        """User whose id or username and password match."""
        user = await self.get_by_id(user_id) or await self.get_by_username(user_id)
        if not user or not verify_password(password, user.hashed_password):
            return None
        return user

    async def create_user(
        self,
        user_id: str,
        username: str,
        password: str,
        is_superuser: bool = False,
    ) -> User:
        """Create new user."""
        user = User(
            id=user_id,
            username=username,
            hashed_password=get_password_hash(password),
            is_active=True,
            is_superuser=is_superuser,
        )
        return await self.create(user)

    async def ensure_admin(self, user_id: str, password: str) -> User:
        """Create the administrator account on first start."""
        existing = await self.get_by_id(user_id)
        if existing:
            return existing
        user = await self.create_user(user_id, user_id, password, is_superuser=True)
        logger.info(f"Default admin user {user_id!r} created")
        return user
