"""
Foundational data structures shared across the host agent.
"""

from .actions import ActionCall, Observation, ParsedResponse
from .errors import (
    CapabilityNotFound,
    ParseFailure,
    ReActError,
    RemoteCallFailed,
    SkillNotFound,
    SubscriptionError,
    SubscriptionTimeout,
)
from .memory import ConversationContext
from .messages import (
    ChatMessage,
    MessageRole,
    system_message,
    to_payload,
    user_message,
)
from .registry import CapabilityRegistry, CapabilityRegistryEntry, Skill

__all__ = [
    "ActionCall",
    "Observation",
    "ParsedResponse",
    "CapabilityNotFound",
    "ParseFailure",
    "ReActError",
    "RemoteCallFailed",
    "SkillNotFound",
    "SubscriptionError",
    "SubscriptionTimeout",
    "ConversationContext",
    "ChatMessage",
    "MessageRole",
    "to_payload",
    "system_message",
    "user_message",
    "CapabilityRegistry",
    "CapabilityRegistryEntry",
    "Skill",
]
