import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import noload

from community_api.models.thread import Thread
from community_api.models.user import CommunityUser
from community_api.schemas.thread import ThreadCreate, ThreadSort
from community_api.services.user_service import THREAD_REPUTATION, record_activity

TRENDING_WINDOW = timedelta(hours=24)


def _sort_clauses(sort: ThreadSort) -> list:
    if sort == "oldest":
        return [Thread.created_at.asc()]
    if sort == "popular":
        return [Thread.likes.desc(), Thread.views.desc(), Thread.created_at.desc()]
    if sort == "trending":
        return [Thread.likes.desc(), Thread.comment_count.desc(), Thread.views.desc()]
    if sort == "most_commented":
        return [Thread.comment_count.desc(), Thread.created_at.desc()]
    return [Thread.created_at.desc()]


async def get_threads(
    session: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    category: Optional[str] = None,
    search: Optional[str] = None,
    sort: ThreadSort = "newest",
) -> tuple[list[Thread], int]:
    query = select(Thread).options(noload(Thread.comments))

    if category and category != "all":
        query = query.where(Thread.category == category)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Thread.title.ilike(pattern),
                Thread.content.ilike(pattern),
                func.array_to_string(Thread.tags, " ").ilike(pattern),
            )
        )
    if sort == "trending":
        since = datetime.now(timezone.utc) - TRENDING_WINDOW
        query = query.where(Thread.created_at >= since)

    count_result = await session.execute(
        select(func.count()).select_from(query.subquery())
    )
    total = count_result.scalar_one()

    result = await session.execute(
        query.order_by(*_sort_clauses(sort))
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    threads = list(result.scalars().all())
    return threads, total


async def get_thread_by_id(
    session: AsyncSession, thread_id: uuid.UUID
) -> Thread | None:
    # populate_existing: the session may already hold this thread with a
    # stale comments collection.
    result = await session.execute(
        select(Thread)
        .where(Thread.id == thread_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_thread(
    session: AsyncSession, data: ThreadCreate, author: CommunityUser
) -> Thread:
    now = datetime.now(timezone.utc)
    thread = Thread(
        title=data.title,
        content=data.content,
        author=author.username,
        category=data.category,
        tags=data.tags,
        comments=[],
        created_at=now,
        updated_at=now,
        last_activity=now,
    )
    session.add(thread)
    await session.flush()
    await record_activity(session, author, posts=1, reputation=THREAD_REPUTATION)
    return thread


async def increment_views(session: AsyncSession, thread_id: uuid.UUID) -> int | None:
    """Returns the new view count, or None if the thread does not exist."""
    result = await session.execute(
        update(Thread)
        .where(Thread.id == thread_id)
        .values(views=Thread.views + 1)
        .returning(Thread.views)
    )
    return result.scalar_one_or_none()
