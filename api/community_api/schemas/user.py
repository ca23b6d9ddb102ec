import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from community_api.schemas import AppBaseModel


class UserCreate(AppBaseModel):
    """POST /community/users request body."""

    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_]+$")
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar: Optional[str] = Field(None, max_length=2083)

    @field_validator("username")
    @classmethod
    def lowercase_username(cls, value: str) -> str:
        return value.lower()


class UserProfile(AppBaseModel):
    """GET /community/users/{username} response."""

    id: uuid.UUID
    username: str
    display_name: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    post_count: int
    comment_count: int
    like_count: int
    reputation: int
    badges: list[str]
    is_verified: bool
    created_at: datetime
    last_active: datetime


class AuthorSummary(AppBaseModel):
    """Author details embedded in thread detail responses."""

    display_name: str
    avatar: Optional[str] = None
    reputation: int
    badges: list[str]
