import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from community_api.models.thread import Comment, Reply, Thread
from community_api.models.user import CommunityUser
from community_api.services.user_service import COMMENT_REPUTATION, record_activity


async def create_comment(
    session: AsyncSession, thread: Thread, content: str, author: CommunityUser
) -> Comment:
    now = datetime.now(timezone.utc)
    comment = Comment(
        content=content,
        author=author.username,
        created_at=now,
        replies=[],
    )
    thread.comments.append(comment)
    thread.comment_count += 1
    thread.last_activity = now
    thread.updated_at = now
    await session.flush()
    await record_activity(session, author, comments=1, reputation=COMMENT_REPUTATION)
    return comment


async def get_comment_by_id(
    session: AsyncSession, comment_id: uuid.UUID
) -> Comment | None:
    result = await session.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_reply(
    session: AsyncSession, comment: Comment, content: str, author: CommunityUser
) -> Reply:
    now = datetime.now(timezone.utc)
    reply = Reply(content=content, author=author.username, created_at=now)
    comment.replies.append(reply)

    thread = await session.get(Thread, comment.thread_id)
    if thread is not None:
        thread.last_activity = now
        thread.updated_at = now

    await session.flush()
    await record_activity(session, author, comments=1, reputation=COMMENT_REPUTATION)
    return reply


async def like_thread(session: AsyncSession, thread_id: uuid.UUID) -> int | None:
    """Returns the new like count, or None if the thread does not exist."""
    result = await session.execute(
        update(Thread)
        .where(Thread.id == thread_id)
        .values(likes=Thread.likes + 1)
        .returning(Thread.likes)
    )
    return result.scalar_one_or_none()


async def like_comment(
    session: AsyncSession, thread_id: uuid.UUID, comment_id: uuid.UUID
) -> int | None:
    """Returns the new like count, or None if no such comment on that thread."""
    result = await session.execute(
        update(Comment)
        .where(Comment.id == comment_id, Comment.thread_id == thread_id)
        .values(likes=Comment.likes + 1)
        .returning(Comment.likes)
    )
    return result.scalar_one_or_none()
