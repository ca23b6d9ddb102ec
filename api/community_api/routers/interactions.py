"""Comment, reply and like endpoints.

Each commits its own write first, then broadcasts the change to
/community/events subscribers before responding.
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from community_api.database import get_session
from community_api.dependencies import get_broadcast_registry
from community_api.rate_limit import limiter
from community_api.schemas.event import EventType
from community_api.schemas.thread import (
    CommentCreate,
    CommentResponse,
    LikeRequest,
    LikeResponse,
    ReplyCreate,
    ReplyResponse,
)
from community_api.services.broadcast import BroadcastRegistry
from community_api.services.comment_service import (
    create_comment,
    create_reply,
    get_comment_by_id,
    like_comment,
    like_thread,
)
from community_api.services.thread_service import get_thread_by_id
from community_api.services.user_service import get_user_by_username

router = APIRouter(prefix="/community", tags=["community"])


@router.post("/comment", response_model=CommentResponse, status_code=201)
@limiter.limit("30/minute")
async def create_comment_endpoint(
    request: Request,
    data: CommentCreate,
    session: AsyncSession = Depends(get_session),
    registry: BroadcastRegistry = Depends(get_broadcast_registry),
):
    thread = await get_thread_by_id(session, data.thread_id)
    if thread is None:
        raise HTTPException(status_code=404, detail="Thread not found")
    if thread.is_locked:
        raise HTTPException(status_code=409, detail="Thread is locked")
    author = await get_user_by_username(session, data.author)
    if author is None:
        raise HTTPException(status_code=404, detail="User not found")

    comment = await create_comment(session, thread, data.content, author)
    await session.commit()

    result = CommentResponse.model_validate(comment)
    registry.publish(
        EventType.NEW_COMMENT,
        {"thread_id": str(thread.id), "comment": result.model_dump(mode="json")},
    )
    return result


@router.post("/reply", response_model=ReplyResponse, status_code=201)
@limiter.limit("30/minute")
async def create_reply_endpoint(
    request: Request,
    data: ReplyCreate,
    session: AsyncSession = Depends(get_session),
    registry: BroadcastRegistry = Depends(get_broadcast_registry),
):
    comment = await get_comment_by_id(session, data.comment_id)
    if comment is None:
        raise HTTPException(status_code=404, detail="Comment not found")
    author = await get_user_by_username(session, data.author)
    if author is None:
        raise HTTPException(status_code=404, detail="User not found")

    reply = await create_reply(session, comment, data.content, author)
    await session.commit()

    result = ReplyResponse.model_validate(reply)
    registry.publish(
        EventType.NEW_REPLY,
        {
            "thread_id": str(comment.thread_id),
            "comment_id": str(comment.id),
            "reply": result.model_dump(mode="json"),
        },
    )
    return result


@router.post("/like", response_model=LikeResponse)
@limiter.limit("60/minute")
async def like_endpoint(
    request: Request,
    data: LikeRequest,
    session: AsyncSession = Depends(get_session),
    registry: BroadcastRegistry = Depends(get_broadcast_registry),
):
    if data.comment_id is not None:
        likes = await like_comment(session, data.thread_id, data.comment_id)
        if likes is None:
            raise HTTPException(
                status_code=404, detail="Thread or comment not found"
            )
        event_type = EventType.COMMENT_LIKED
        payload = {
            "thread_id": str(data.thread_id),
            "comment_id": str(data.comment_id),
            "likes": likes,
        }
    else:
        likes = await like_thread(session, data.thread_id)
        if likes is None:
            raise HTTPException(status_code=404, detail="Thread not found")
        event_type = EventType.THREAD_LIKED
        payload = {"thread_id": str(data.thread_id), "likes": likes}

    await session.commit()
    registry.publish(event_type, payload)
    return LikeResponse(success=True, likes=likes)
