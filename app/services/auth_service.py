"""Auth service for authentication."""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import create_access_token
from app.schemas.auth import Token
from app.services.user_service import UserService


class AuthService:
    """Authentication service."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.user_service = UserService(db)

    async def login(self, user_id: str, password: str) -> Token | None:
        """Authenticate an active user and return a JWT token."""
        user = await self.user_service.authenticate(user_id, password)
        if not user or not user.is_active:
            return None

        token = create_access_token(
            data={
                "sub": user.id,
                "username": user.username,
                "admin": user.is_superuser,
            }
        )
        logger.info(f"Issued token for {user.id}")
        return Token(token=token)
