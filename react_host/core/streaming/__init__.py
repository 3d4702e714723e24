"""
Streaming helpers: chunk pacing and channel subscriptions.
"""

from .chunker import END_OF_UNIT, ChunkStreamer
from .events import (
    CHAT_STREAM_CHANNEL,
    DEFAULT_COMPLETION_TIMEOUT,
    EventBus,
    EventSubscriptionManager,
    StreamCallbacks,
    StreamChunk,
    SubscriptionState,
)

__all__ = [
    "END_OF_UNIT",
    "ChunkStreamer",
    "CHAT_STREAM_CHANNEL",
    "DEFAULT_COMPLETION_TIMEOUT",
    "EventBus",
    "EventSubscriptionManager",
    "StreamCallbacks",
    "StreamChunk",
    "SubscriptionState",
]
