from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from community_api.database import get_session
from community_api.dependencies import get_broadcast_registry
from community_api.schemas.health import HealthResponse
from community_api.services.broadcast import BroadcastRegistry

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    session: AsyncSession = Depends(get_session),
    registry: BroadcastRegistry = Depends(get_broadcast_registry),
):
    try:
        await session.execute(text("SELECT 1"))
        return HealthResponse(
            status="healthy",
            db="connected",
            sse_connections=registry.connection_count,
        )
    except Exception:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "db": "disconnected",
                "sse_connections": registry.connection_count,
            },
        )
