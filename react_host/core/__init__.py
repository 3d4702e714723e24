"""
Core primitives that compose the host agent pipeline.
"""

from .primitives import (
    ActionCall,
    CapabilityRegistry,
    CapabilityRegistryEntry,
    ChatMessage,
    ConversationContext,
    MessageRole,
    Observation,
    ParsedResponse,
    ReActError,
)
from .streaming import ChunkStreamer, EventBus, EventSubscriptionManager, StreamChunk

__all__ = [
    "ActionCall",
    "CapabilityRegistry",
    "CapabilityRegistryEntry",
    "ChatMessage",
    "ConversationContext",
    "MessageRole",
    "Observation",
    "ParsedResponse",
    "ReActError",
    "ChunkStreamer",
    "EventBus",
    "EventSubscriptionManager",
    "StreamChunk",
]
