"""Per-subscriber lifecycle for /community/events: open, keep-alive, teardown."""

import asyncio
import logging
from collections.abc import AsyncIterator

from sse_starlette import EventSourceResponse
from starlette.background import BackgroundTask

from community_api.schemas.event import connected_frame, ping_frame
from community_api.services.broadcast import (
    DEFAULT_QUEUE_MAXSIZE,
    BroadcastRegistry,
    Channel,
    QueueSink,
)

logger = logging.getLogger(__name__)

KEEPALIVE_INTERVAL_SECONDS = 30.0

STREAM_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Connection": "keep-alive",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Cache-Control",
}


class ConnectionManager:
    """Turns subscribe requests into registered, kept-alive channels."""

    def __init__(
        self,
        registry: BroadcastRegistry,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
        queue_maxsize: int = DEFAULT_QUEUE_MAXSIZE,
    ) -> None:
        self.registry = registry
        self.keepalive_interval = keepalive_interval
        self.queue_maxsize = queue_maxsize

    def open_channel(self) -> Channel:
        """Register a new channel, write the handshake and start keep-alive.

        Must be called from inside the running event loop.
        """
        channel = Channel(QueueSink(maxsize=self.queue_maxsize))
        self.registry.register(channel)

        if not channel.send(connected_frame()):
            logger.warning("SSE channel %s: handshake write failed", channel.id)
            self.close_channel(channel)
            return channel

        channel.keepalive_task = asyncio.create_task(self._keepalive(channel))
        return channel

    def close_channel(self, channel: Channel) -> None:
        """Teardown shared by disconnect, write failure and shutdown."""
        self.registry.unregister(channel)
        channel.close()

    async def _keepalive(self, channel: Channel) -> None:
        while channel.is_open:
            await asyncio.sleep(self.keepalive_interval)
            if not channel.is_open:
                return
            if not channel.send(ping_frame()):
                logger.warning("SSE channel %s: ping failed, closing", channel.id)
                self.close_channel(channel)
                return

    async def stream(self, channel: Channel) -> AsyncIterator[bytes]:
        """Drain one channel's frames into the HTTP response."""
        try:
            async for frame in channel.sink.frames():
                yield frame
        finally:
            self.close_channel(channel)

    def subscribe(self) -> EventSourceResponse:
        """Open a channel and return its streaming response immediately.

        The background task runs once the response ends, including on client
        disconnect before the stream was ever iterated.
        """
        channel = self.open_channel()
        return EventSourceResponse(
            self.stream(channel),
            headers=STREAM_HEADERS,
            sep="\n",
            background=BackgroundTask(self.close_channel, channel),
        )

    def shutdown(self) -> None:
        count = self.registry.connection_count
        self.registry.close_all()
        if count:
            logger.info("Closed %d SSE channel(s) on shutdown", count)
