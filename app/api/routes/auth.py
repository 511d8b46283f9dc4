"""Authentication API endpoints."""

from fastapi import APIRouter, HTTPException, status
from loguru import logger

from app.core.deps import CurrentUserRequired, DBSession
from app.schemas.auth import Token, UserInfo, UserLogin
from app.services.auth_service import AuthService

router = APIRouter()


@router.post("", response_model=Token)
async def login(
    credentials: UserLogin,
    db: DBSession,
) -> Token:
    """
    Exchange credentials for a bearer token.

    Gallery changes need any active user; reconciliation needs an administrator.
    """
    token = await AuthService(db).login(credentials.id, credentials.password)
    if not token:
        logger.warning(f"Failed login for {credentials.id!r}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
        )
    return token


@router.get("/me", response_model=UserInfo)
async def whoami(current_user: CurrentUserRequired) -> UserInfo:
    """The authenticated user."""
    return UserInfo.model_validate(current_user)
