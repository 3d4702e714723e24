"""
High-level exports for the A2A ReAct host agent.

This package exposes the `HostAgent` entry point alongside the core loop
components that can be composed directly.
"""

from .agent import HostAgent, HostAgentConfig
from .core.agent import (
    CapabilityDispatcher,
    ExecutorConfig,
    ReActOrchestrator,
    RunOutcome,
    RunStatus,
    TagExtractor,
)
from .core.primitives import (
    ActionCall,
    CapabilityRegistry,
    CapabilityRegistryEntry,
    ConversationContext,
    ParsedResponse,
)
from .core.streaming import ChunkStreamer, EventBus, EventSubscriptionManager
from .settings import ModelSetting, SettingsProvider, StaticSettingsProvider

__all__ = [
    "HostAgent",
    "HostAgentConfig",
    "CapabilityDispatcher",
    "ExecutorConfig",
    "ReActOrchestrator",
    "RunOutcome",
    "RunStatus",
    "TagExtractor",
    "ActionCall",
    "CapabilityRegistry",
    "CapabilityRegistryEntry",
    "ConversationContext",
    "ParsedResponse",
    "ChunkStreamer",
    "EventBus",
    "EventSubscriptionManager",
    "ModelSetting",
    "SettingsProvider",
    "StaticSettingsProvider",
]
