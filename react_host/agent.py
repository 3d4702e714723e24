"""
High-level host agent that routes a user request to plain chat or to the
A2A ReAct loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import re
from typing import Callable, Optional
from uuid import uuid4

from .a2a.client import A2AClient, A2ATransport
from .core.agent.dispatcher import CapabilityDispatcher
from .core.agent.executor import FINISHED, ExecutorConfig, OnChunk, OnComplete, ReActOrchestrator, RunOutcome
from .core.agent.formatting import to_extract_json_string, to_json_with_prefix
from .core.primitives.messages import user_message
from .core.primitives.registry import CapabilityRegistry
from .core.streaming.chunker import END_OF_UNIT, ChunkStreamer
from .core.streaming.events import EventSubscriptionManager
from .llm import LLMClient, create_chat_completion_client, get_provider
from .settings import ModelSetting, SettingsProvider


A2A_PROTOCOL_METHOD = re.compile(r"@/message/send|@/message/stream")

NO_MODEL_MESSAGE = (
    "No supported model is enabled, please configure your model configuration first."
)
USAGE_MESSAGE = (
    "Use the @A2A command to get started. "
    "If you'd prefer not to use A2A, you can disable A2A Servers anytime."
)


def default_llm_factory(setting: ModelSetting) -> LLMClient:
    return create_chat_completion_client(
        setting.model_key,
        api_key=setting.api_key,
        base_url=setting.api_url or None,
    )


def default_transport_factory(registry: CapabilityRegistry) -> A2ATransport:
    return A2AClient(registry=registry)


@dataclass
class HostAgentConfig:
    settings: SettingsProvider
    llm_factory: Callable[[ModelSetting], LLMClient] = default_llm_factory
    transport_factory: Callable[[CapabilityRegistry], A2ATransport] = default_transport_factory
    executor_config: ExecutorConfig = field(default_factory=ExecutorConfig)
    streamer: Optional[ChunkStreamer] = None
    end_of_chat_delay: float = 0.3


class HostAgent:
    """
    Entry point used by the chat UI.

    One instance is one application session: it owns the event subscription
    manager shared by every request it serves.
    """

    def __init__(self, config: HostAgentConfig) -> None:
        self.config = config
        self.settings = config.settings
        self.events = EventSubscriptionManager()
        self.streamer = config.streamer or ChunkStreamer()
        self._logger = logging.getLogger(__name__)

    async def execute(
        self,
        prompt: str,
        on_chunk: OnChunk,
        on_complete: Optional[OnComplete] = None,
    ) -> Optional[RunOutcome]:
        try:
            model = self._select_model()
            if model is None:
                await self.report_error(prompt, NO_MODEL_MESSAGE, on_chunk, on_complete)
                return None

            registry = self.settings.load_registry()
            if registry.is_empty():
                await self.simple_chat(prompt, model, on_chunk, on_complete)
                return None

            if not A2A_PROTOCOL_METHOD.search(prompt):
                await self.report_error(prompt, USAGE_MESSAGE, on_chunk, on_complete)
                return None

            orchestrator = ReActOrchestrator(
                self.config.llm_factory(model),
                CapabilityDispatcher(self.config.transport_factory(registry)),
                events=self.events,
                streamer=self.streamer,
                config=self.config.executor_config,
            )
        except Exception as exc:
            self._logger.exception("Failed to prepare the request")
            await self.streamer.stream("##### Error: \n" + to_extract_json_string(str(exc)), on_chunk)
            self._complete(on_complete, FINISHED)
            return None
        return await orchestrator.run(prompt, registry, on_chunk, on_complete)

    async def simple_chat(
        self,
        prompt: str,
        model: ModelSetting,
        on_chunk: OnChunk,
        on_complete: Optional[OnComplete] = None,
    ) -> str:
        """Stream the model's answer straight to the caller, no tools involved."""
        llm = self.config.llm_factory(model)
        channel = self.config.executor_config.channel
        request_id = f"chat-{uuid4().hex}"
        publish = self.events.bus.publisher(channel, request_id=request_id)
        messages = [user_message(prompt)]

        async def start() -> str:
            return await asyncio.to_thread(llm.stream_chat, messages, publish)

        content = await self.events.await_completion(
            channel,
            start,
            timeout=self.config.executor_config.completion_timeout,
            on_chunk=on_chunk,
            request_id=request_id,
        )
        await asyncio.sleep(self.config.end_of_chat_delay)
        on_chunk(END_OF_UNIT)
        self._complete(on_complete, FINISHED)
        return content

    async def report_error(
        self,
        prompt: str,
        message: str,
        on_chunk: OnChunk,
        on_complete: Optional[OnComplete] = None,
    ) -> None:
        text = to_json_with_prefix("#### Error: \n", {"userprompt": prompt, "message": message})
        await self.streamer.stream(text, on_chunk)
        self._complete(on_complete, FINISHED)

    def _select_model(self) -> Optional[ModelSetting]:
        for model in self.settings.enabled_models():
            if get_provider(model.model_key) is not None:
                return model
        return None

    def _complete(self, on_complete: Optional[OnComplete], value: str) -> None:
        if on_complete is None:
            return
        try:
            on_complete(value)
        except Exception:
            self._logger.exception("on_complete callback raised")
