import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from community_api.schemas import AppBaseModel


class ReportCreate(AppBaseModel):
    """POST /community/report request body."""

    thread_id: uuid.UUID
    reporter_id: uuid.UUID
    reason: str = Field(..., min_length=1, max_length=500)


class ReportCreated(AppBaseModel):
    success: bool
    message: str


class ReportResponse(AppBaseModel):
    """GET /community/reports response item."""

    id: uuid.UUID
    thread_id: uuid.UUID
    reporter_id: uuid.UUID
    reason: str
    status: str
    thread_title: Optional[str] = None
    thread_author: Optional[str] = None
    reporter_username: Optional[str] = None
    created_at: datetime


class ReportListResponse(AppBaseModel):
    items: list[ReportResponse]
    total: int
    page: int
    per_page: int
