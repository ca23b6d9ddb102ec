"""In-memory broadcast registry: fans community events out to every open SSE channel."""

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any, Optional, Protocol

from community_api.schemas.event import EventEnvelope, EventType

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_MAXSIZE = 64

_CLOSED = object()


class ChannelSink(Protocol):
    """Transport capability a Channel writes to."""

    def write(self, frame: bytes) -> bool: ...

    def close(self) -> None: ...


class QueueSink:
    """asyncio.Queue-backed sink drained by the response generator.

    A full queue means the client stopped reading; the write fails and the
    channel gets dropped.
    """

    def __init__(self, maxsize: int = DEFAULT_QUEUE_MAXSIZE) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, frame: bytes) -> bool:
        if self._closed:
            return False
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._queue.put_nowait(_CLOSED)
        except asyncio.QueueFull:
            # Reader is stalled: pending frames are undeliverable anyway.
            while not self._queue.empty():
                self._queue.get_nowait()
            self._queue.put_nowait(_CLOSED)

    async def frames(self) -> AsyncIterator[bytes]:
        """Yield written frames in order until the sink is closed."""
        while True:
            frame = await self._queue.get()
            if frame is _CLOSED:
                return
            yield frame


class ChannelState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Channel:
    """One subscriber's live connection.

    Holds its keep-alive task so teardown can reach it from any path
    (disconnect, failed write, shutdown).
    """

    def __init__(self, sink: ChannelSink) -> None:
        self.id = uuid.uuid4().hex[:12]
        self.sink = sink
        self.state = ChannelState.OPEN
        self.keepalive_task: Optional[asyncio.Task] = None

    def __repr__(self) -> str:
        return f"<Channel {self.id} {self.state.value}>"

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN

    def send(self, frame: bytes) -> bool:
        """Write one frame. Returns False on any failure, never raises."""
        if not self.is_open:
            return False
        try:
            return bool(self.sink.write(frame))
        except Exception:
            logger.warning("SSE channel %s: write raised", self.id, exc_info=True)
            return False

    def close(self) -> None:
        """Cancel keep-alive and release the sink. Safe to call repeatedly."""
        if self.state is not ChannelState.OPEN:
            return
        self.state = ChannelState.CLOSING

        task = self.keepalive_task
        self.keepalive_task = None
        if task is not None and not task.done():
            try:
                current = asyncio.current_task()
            except RuntimeError:
                current = None
            if task is not current:
                task.cancel()

        try:
            self.sink.close()
        except Exception:
            logger.debug("SSE channel %s: error closing sink", self.id, exc_info=True)

        self.state = ChannelState.CLOSED


class BroadcastRegistry:
    """Set of live channels plus fire-and-forget fan-out.

    Everything runs on the event loop, so no lock. publish() iterates a
    snapshot, so channels may be unregistered mid-publish.
    """

    def __init__(self) -> None:
        self._channels: set[Channel] = set()

    def register(self, channel: Channel) -> None:
        self._channels.add(channel)
        logger.info(
            "SSE channel %s registered (total: %d)", channel.id, len(self._channels)
        )

    def unregister(self, channel: Channel) -> None:
        if channel not in self._channels:
            return
        self._channels.discard(channel)
        logger.info(
            "SSE channel %s unregistered (total: %d)", channel.id, len(self._channels)
        )

    def drop(self, channel: Channel) -> None:
        """Unregister and tear down a channel whose transport is gone."""
        self.unregister(channel)
        channel.close()

    def publish(self, event_type: EventType | str, data: Any = None) -> None:
        """Send one envelope to every registered channel.

        Serialization errors propagate (bad payload is the caller's bug);
        delivery failures only drop the affected channel.
        """
        frame = EventEnvelope(type=event_type, data=data).to_frame()

        dropped = 0
        for channel in list(self._channels):
            if not channel.send(frame):
                logger.warning(
                    "SSE channel %s: write failed, dropping", channel.id
                )
                self.drop(channel)
                dropped += 1

        logger.debug(
            "Published %s to %d channel(s), dropped %d",
            event_type,
            len(self._channels),
            dropped,
        )

    def close_all(self) -> None:
        for channel in list(self._channels):
            self.drop(channel)

    def size(self) -> int:
        return len(self._channels)

    @property
    def connection_count(self) -> int:
        return len(self._channels)

    def __contains__(self, channel: object) -> bool:
        return channel in self._channels
