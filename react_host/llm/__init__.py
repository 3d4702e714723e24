"""
Convenience exports for built-in LLM clients.
"""

from .base import ChunkEmitter, LLMClient, LLMError
from .providers import (
    OpenAICompatibleClient,
    ProviderSpec,
    create_chat_completion_client,
    get_provider,
    list_providers,
)

__all__ = [
    "ChunkEmitter",
    "LLMClient",
    "LLMError",
    "OpenAICompatibleClient",
    "ProviderSpec",
    "create_chat_completion_client",
    "get_provider",
    "list_providers",
]
