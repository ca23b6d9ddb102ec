import uuid
from datetime import datetime
from typing import Annotated, Literal, Optional

from pydantic import Field

from community_api.schemas import AppBaseModel
from community_api.schemas.user import AuthorSummary

ThreadSort = Literal["newest", "oldest", "popular", "trending", "most_commented"]


class ThreadCreate(AppBaseModel):
    """POST /community/threads request body."""

    title: str = Field(..., min_length=5, max_length=200)
    content: str = Field(..., min_length=10, max_length=10000)
    author: str = Field(..., min_length=1, max_length=30)
    category: str = Field("general", min_length=1, max_length=50)
    tags: list[Annotated[str, Field(max_length=50)]] = Field(
        default_factory=list, max_length=10
    )


class CommentCreate(AppBaseModel):
    """POST /community/comment request body."""

    thread_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=2000)
    author: str = Field(..., min_length=1, max_length=30)


class ReplyCreate(AppBaseModel):
    """POST /community/reply request body."""

    comment_id: uuid.UUID
    content: str = Field(..., min_length=1, max_length=1000)
    author: str = Field(..., min_length=1, max_length=30)


class LikeRequest(AppBaseModel):
    """POST /community/like request body.

    With comment_id the comment is liked, otherwise the thread.
    """

    thread_id: uuid.UUID
    comment_id: Optional[uuid.UUID] = None


class LikeResponse(AppBaseModel):
    success: bool
    likes: int


class ReplyResponse(AppBaseModel):
    id: uuid.UUID
    comment_id: uuid.UUID
    content: str
    author: str
    likes: int
    created_at: datetime


class CommentResponse(AppBaseModel):
    id: uuid.UUID
    thread_id: uuid.UUID
    content: str
    author: str
    likes: int
    created_at: datetime
    replies: list[ReplyResponse] = []


class ThreadListItem(AppBaseModel):
    """GET /community/threads response item (no comment bodies)."""

    id: uuid.UUID
    title: str
    content: str
    author: str
    category: str
    tags: list[str]
    likes: int
    views: int
    comment_count: int
    is_pinned: bool
    is_locked: bool
    created_at: datetime
    updated_at: datetime
    last_activity: datetime


class ThreadDetail(ThreadListItem):
    """GET /community/threads/{id} response."""

    comments: list[CommentResponse] = []
    authors: dict[str, AuthorSummary] = {}


class ThreadListResponse(AppBaseModel):
    """GET /community/threads paginated response."""

    items: list[ThreadListItem]
    total: int
    page: int
    per_page: int
    has_more: bool
