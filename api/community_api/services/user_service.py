from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from community_api.models.user import CommunityUser
from community_api.schemas.user import UserCreate

# Reputation needed for each badge, lowest first.
BADGE_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (50, "regular"),
    (100, "veteran"),
    (500, "expert"),
    (1000, "legend"),
)

THREAD_REPUTATION = 5
COMMENT_REPUTATION = 2


async def create_user(session: AsyncSession, data: UserCreate) -> CommunityUser:
    user = CommunityUser(
        username=data.username,
        display_name=data.display_name or data.username,
        bio=data.bio,
        avatar=data.avatar,
        badges=[],
    )
    session.add(user)
    await session.flush()
    return user


async def get_user_by_username(
    session: AsyncSession, username: str
) -> CommunityUser | None:
    result = await session.execute(
        select(CommunityUser).where(CommunityUser.username == username.lower())
    )
    return result.scalar_one_or_none()


async def get_users_by_usernames(
    session: AsyncSession, usernames: set[str]
) -> dict[str, CommunityUser]:
    if not usernames:
        return {}
    result = await session.execute(
        select(CommunityUser).where(CommunityUser.username.in_(usernames))
    )
    return {user.username: user for user in result.scalars().all()}


def badges_for(reputation: int, current: list[str]) -> list[str]:
    """Badges earned at this reputation that the user does not hold yet."""
    return [
        badge
        for threshold, badge in BADGE_THRESHOLDS
        if reputation >= threshold and badge not in current
    ]


async def record_activity(
    session: AsyncSession,
    user: CommunityUser,
    *,
    posts: int = 0,
    comments: int = 0,
    reputation: int = 0,
) -> CommunityUser:
    """Bump a user's counters and reputation, awarding any new badges."""
    user.post_count += posts
    user.comment_count += comments
    user.reputation += reputation
    new_badges = badges_for(user.reputation, user.badges or [])
    if new_badges:
        user.badges = [*(user.badges or []), *new_badges]
    user.last_active = datetime.now(timezone.utc)
    await session.flush()
    return user
