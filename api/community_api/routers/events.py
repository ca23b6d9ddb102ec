"""SSE endpoint: real-time stream of community likes, comments and replies."""

from fastapi import APIRouter, Depends, Request

from community_api.dependencies import get_connection_manager
from community_api.rate_limit import limiter
from community_api.services.connection_manager import ConnectionManager

router = APIRouter(tags=["events"])


@router.get("/community/events")
@limiter.limit("30/minute")
async def stream_events(
    request: Request,
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """SSE stream of community updates.

    Every frame is an unnamed ``data:`` event carrying a JSON envelope:
      const es = new EventSource('/community/events')
      es.onmessage = (e) => { const { type, data } = JSON.parse(e.data) }
    """
    return manager.subscribe()
