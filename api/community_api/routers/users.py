from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from community_api.database import get_session
from community_api.rate_limit import limiter
from community_api.schemas.user import UserCreate, UserProfile
from community_api.services.user_service import create_user, get_user_by_username

router = APIRouter(prefix="/community/users", tags=["community"])


@router.post("", response_model=UserProfile, status_code=201)
@limiter.limit("5/minute")
async def register_user(
    request: Request,
    data: UserCreate,
    session: AsyncSession = Depends(get_session),
):
    if await get_user_by_username(session, data.username) is not None:
        raise HTTPException(status_code=409, detail="Username is already taken")
    try:
        user = await create_user(session, data)
        return user
    except IntegrityError:
        raise HTTPException(status_code=409, detail="Username is already taken")


@router.get("/{username}", response_model=UserProfile)
@limiter.limit("60/minute")
async def get_user(
    request: Request,
    username: str = Path(..., min_length=1, max_length=30),
    session: AsyncSession = Depends(get_session),
):
    user = await get_user_by_username(session, username)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
