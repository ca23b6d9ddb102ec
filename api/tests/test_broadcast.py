"""Tests for the broadcast registry and channel teardown (no DB, no HTTP)."""

from datetime import datetime

import pytest
from pydantic_core import PydanticSerializationError

from community_api.schemas.event import EventEnvelope, EventType
from community_api.services.broadcast import (
    BroadcastRegistry,
    Channel,
    ChannelState,
    QueueSink,
)
from sse_helpers import RecordingSink, decode_frame


def _channel(**sink_kwargs) -> Channel:
    return Channel(RecordingSink(**sink_kwargs))


def test_publish_reaches_every_channel():
    registry = BroadcastRegistry()
    channels = [_channel() for _ in range(3)]
    for channel in channels:
        registry.register(channel)

    registry.publish("new_comment", {"thread_id": "t1", "comment": {"content": "hi"}})

    for channel in channels:
        assert len(channel.sink.frames) == 1
        envelope = channel.sink.envelopes[0]
        assert envelope["type"] == "new_comment"
        assert envelope["data"]["thread_id"] == "t1"
    assert len({channel.sink.frames[0] for channel in channels}) == 1


def test_envelope_shape():
    registry = BroadcastRegistry()
    channel = _channel()
    registry.register(channel)

    registry.publish(EventType.THREAD_LIKED, {"thread_id": "t1", "likes": 3})

    envelope = channel.sink.envelopes[0]
    assert set(envelope) == {"type", "data", "timestamp"}
    timestamp = datetime.fromisoformat(envelope["timestamp"].replace("Z", "+00:00"))
    assert timestamp.tzinfo is not None


def test_failed_channel_is_dropped_without_affecting_others():
    registry = BroadcastRegistry()
    a, b = _channel(), _channel()
    refusing = _channel(fail=True)
    raising = _channel(raise_on_write=True)
    for channel in (a, refusing, raising, b):
        registry.register(channel)

    registry.publish("thread_liked", {"thread_id": "t1"})

    assert len(a.sink.frames) == 1
    assert len(b.sink.frames) == 1
    assert registry.size() == 2
    assert refusing not in registry
    assert raising not in registry
    assert refusing.state is ChannelState.CLOSED
    assert raising.sink.close_calls == 1


def test_unregister_twice_is_noop():
    registry = BroadcastRegistry()
    channel = _channel()
    registry.register(channel)

    registry.unregister(channel)
    registry.unregister(channel)

    assert registry.size() == 0


def test_unregister_unknown_channel_is_noop():
    registry = BroadcastRegistry()
    registry.register(_channel())

    registry.unregister(_channel())

    assert registry.size() == 1


def test_register_same_channel_twice_keeps_one_entry():
    registry = BroadcastRegistry()
    channel = _channel()
    registry.register(channel)
    registry.register(channel)

    registry.publish("ping")

    assert registry.size() == 1
    assert len(channel.sink.frames) == 1


def test_late_subscriber_gets_no_replay():
    registry = BroadcastRegistry()
    early = _channel()
    registry.register(early)
    registry.publish("new_reply", {"thread_id": "t1"})

    late = _channel()
    registry.register(late)

    assert late.sink.frames == []
    assert len(early.sink.frames) == 1


def test_unserializable_payload_raises_before_any_write():
    registry = BroadcastRegistry()
    channel = _channel()
    registry.register(channel)

    with pytest.raises(PydanticSerializationError):
        registry.publish("new_comment", {"comment": object()})

    assert channel.sink.frames == []
    assert registry.size() == 1


def test_publish_with_no_channels():
    registry = BroadcastRegistry()
    registry.publish("thread_liked", {"thread_id": "t1"})
    assert registry.connection_count == 0


def test_channel_close_is_idempotent():
    channel = _channel()
    channel.close()
    channel.close()

    assert channel.state is ChannelState.CLOSED
    assert channel.sink.close_calls == 1
    assert channel.send(b"data: {}\n\n") is False


def test_close_all_tears_down_every_channel():
    registry = BroadcastRegistry()
    channels = [_channel() for _ in range(3)]
    for channel in channels:
        registry.register(channel)

    registry.close_all()

    assert registry.size() == 0
    assert all(channel.state is ChannelState.CLOSED for channel in channels)


def test_envelope_frame_format():
    frame = EventEnvelope(type=EventType.CONNECTED, message="hello").to_frame()
    assert frame.startswith(b'data: {"type":"connected"')
    assert frame.endswith(b"\n\n")
    assert decode_frame(frame)["message"] == "hello"


async def test_queue_sink_rejects_writes_when_full():
    sink = QueueSink(maxsize=2)
    assert sink.write(b"one")
    assert sink.write(b"two")
    assert sink.write(b"three") is False


async def test_queue_sink_close_ends_frames_after_pending():
    sink = QueueSink(maxsize=4)
    sink.write(b"one")
    sink.write(b"two")
    sink.close()

    assert [frame async for frame in sink.frames()] == [b"one", b"two"]
    assert sink.write(b"three") is False


async def test_queue_sink_close_when_full():
    sink = QueueSink(maxsize=1)
    sink.write(b"one")
    sink.close()

    assert [frame async for frame in sink.frames()] == []
