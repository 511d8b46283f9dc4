"""Authentication schemas."""

from pydantic import BaseModel, Field


class UserLogin(BaseModel):
    """Login request schema."""

    id: str = Field(..., description="User ID")
    password: str = Field(..., description="User password")


class Token(BaseModel):
    """JWT token response schema."""

    token: str = Field(..., description="JWT access token")


class UserInfo(BaseModel):
    """Authenticated user."""

    id: str
    username: str
    is_superuser: bool = Field(False, alias="isSuperuser")

    model_config = {"populate_by_name": True, "from_attributes": True}
