"""Envelopes pushed over /community/events and their SSE wire framing."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import Field

from community_api.schemas import AppBaseModel

CONNECTED_MESSAGE = "Connected to community updates"


class EventType(str, Enum):
    CONNECTED = "connected"
    PING = "ping"
    NEW_COMMENT = "new_comment"
    COMMENT_LIKED = "comment_liked"
    THREAD_LIKED = "thread_liked"
    NEW_REPLY = "new_reply"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventEnvelope(AppBaseModel):
    """One message on the stream.

    ``type`` decides the shape of ``data``. Clients are expected to ignore
    types they do not recognise.
    """

    type: EventType
    data: Optional[Any] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)

    def to_frame(self) -> bytes:
        """Serialize to a single ``data: <json>\\n\\n`` SSE block.

        Raises pydantic_core.PydanticSerializationError when ``data`` holds
        something that is not JSON-serializable.
        """
        payload = self.model_dump_json(exclude_none=True)
        return f"data: {payload}\n\n".encode("utf-8")


def connected_frame() -> bytes:
    return EventEnvelope(type=EventType.CONNECTED, message=CONNECTED_MESSAGE).to_frame()


def ping_frame() -> bytes:
    return EventEnvelope(type=EventType.PING).to_frame()
