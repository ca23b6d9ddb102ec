from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Security
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from community_api.database import get_session
from community_api.dependencies import verify_api_key
from community_api.models.user import CommunityUser
from community_api.rate_limit import limiter
from community_api.schemas.report import (
    ReportCreate,
    ReportCreated,
    ReportListResponse,
)
from community_api.services.report_service import (
    create_report,
    get_reports,
    has_reported,
)
from community_api.services.thread_service import get_thread_by_id

router = APIRouter(prefix="/community", tags=["community"])


@router.post("/report", response_model=ReportCreated, status_code=201)
@limiter.limit("10/minute")
async def report_thread(
    request: Request,
    data: ReportCreate,
    session: AsyncSession = Depends(get_session),
):
    thread = await get_thread_by_id(session, data.thread_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    reporter = await session.get(CommunityUser, data.reporter_id)
    if reporter is None:
        raise HTTPException(status_code=404, detail="Reporter not found")
    if await has_reported(session, thread, reporter):
        raise HTTPException(
            status_code=409, detail="You have already reported this thread"
        )

    await create_report(session, thread, reporter, data.reason)
    return ReportCreated(success=True, message="Thread reported successfully")


@router.get("/reports", response_model=ReportListResponse)
@limiter.limit("30/minute")
async def list_reports(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None, max_length=20),
    session: AsyncSession = Depends(get_session),
    _api_key: str = Security(verify_api_key),
):
    reports, total = await get_reports(session, page, per_page, status)
    return ReportListResponse(items=reports, total=total, page=page, per_page=per_page)
