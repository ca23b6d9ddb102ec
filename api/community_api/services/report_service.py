from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from community_api.models.thread import Report, Thread
from community_api.models.user import CommunityUser


async def has_reported(
    session: AsyncSession, thread: Thread, reporter: CommunityUser
) -> bool:
    result = await session.execute(
        select(func.count()).where(
            Report.thread_id == thread.id, Report.reporter_id == reporter.id
        )
    )
    return result.scalar_one() > 0


async def create_report(
    session: AsyncSession, thread: Thread, reporter: CommunityUser, reason: str
) -> Report:
    report = Report(
        thread_id=thread.id,
        reporter_id=reporter.id,
        reason=reason,
        status="pending",
        thread_title=thread.title,
        thread_author=thread.author,
        reporter_username=reporter.username,
    )
    session.add(report)
    await session.flush()
    return report


async def get_reports(
    session: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    status: Optional[str] = None,
) -> tuple[list[Report], int]:
    query = select(Report)
    if status:
        query = query.where(Report.status == status)

    count_result = await session.execute(
        select(func.count()).select_from(query.subquery())
    )
    total = count_result.scalar_one()

    result = await session.execute(
        query.order_by(Report.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total
