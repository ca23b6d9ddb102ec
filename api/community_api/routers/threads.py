import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from community_api.database import get_session
from community_api.rate_limit import limiter
from community_api.schemas.thread import (
    ThreadCreate,
    ThreadDetail,
    ThreadListResponse,
    ThreadSort,
)
from community_api.schemas.user import AuthorSummary
from community_api.services.thread_service import (
    create_thread,
    get_thread_by_id,
    get_threads,
    increment_views,
)
from community_api.services.user_service import (
    get_user_by_username,
    get_users_by_usernames,
)

router = APIRouter(prefix="/community/threads", tags=["community"])


@router.get("", response_model=ThreadListResponse)
@limiter.limit("60/minute")
async def list_threads(
    request: Request,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category: Optional[str] = Query(None, max_length=50),
    search: Optional[str] = Query(None, max_length=100),
    sort: ThreadSort = Query("newest"),
    session: AsyncSession = Depends(get_session),
):
    threads, total = await get_threads(
        session, page, per_page, category=category, search=search, sort=sort
    )
    return ThreadListResponse(
        items=threads,
        total=total,
        page=page,
        per_page=per_page,
        has_more=(page - 1) * per_page + len(threads) < total,
    )


@router.post("", response_model=ThreadDetail, status_code=201)
@limiter.limit("10/minute")
async def create_thread_endpoint(
    request: Request,
    data: ThreadCreate,
    session: AsyncSession = Depends(get_session),
):
    author = await get_user_by_username(session, data.author)
    if author is None:
        raise HTTPException(status_code=404, detail="User not found")
    thread = await create_thread(session, data, author)
    return thread


@router.get("/{thread_id}", response_model=ThreadDetail)
@limiter.limit("60/minute")
async def get_thread(
    request: Request,
    thread_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    thread = await get_thread_by_id(session, thread_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Thread not found")

    usernames = {thread.author}
    for comment in thread.comments:
        usernames.add(comment.author)
        usernames.update(reply.author for reply in comment.replies)
    users = await get_users_by_usernames(session, usernames)

    detail = ThreadDetail.model_validate(thread)
    detail.authors = {
        name: AuthorSummary.model_validate(user) for name, user in users.items()
    }
    return detail


@router.post("/{thread_id}/views")
@limiter.limit("120/minute")
async def track_view(
    request: Request,
    thread_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
):
    views = await increment_views(session, thread_id)
    if views is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    return {"views": views}
