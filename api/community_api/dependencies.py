from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader
from starlette.requests import Request

from community_api.database import settings
from community_api.services.broadcast import BroadcastRegistry
from community_api.services.connection_manager import ConnectionManager

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: str | None = Security(api_key_header),
) -> str:
    keys = settings.get_api_keys()
    if not keys:
        # No keys configured (development mode): skip auth
        return ""
    if not api_key or api_key not in keys:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")
    return api_key


def get_broadcast_registry(request: Request) -> BroadcastRegistry:
    return request.app.state.broadcast_registry


def get_connection_manager(request: Request) -> ConnectionManager:
    return request.app.state.connection_manager
