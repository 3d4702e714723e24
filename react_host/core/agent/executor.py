"""
Execution loop that drives the host agent through Reason → Act → Observe.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
import json
import logging
import os
from typing import Callable, List, Optional, Sequence
from uuid import uuid4

from ..primitives.actions import ActionCall, Observation, ParsedResponse
from ..primitives.errors import ParseFailure, ReActError
from ..primitives.memory import ConversationContext
from ..primitives.messages import ChatMessage
from ..primitives.registry import CapabilityRegistry
from ..streaming.chunker import ChunkStreamer
from ..streaming.events import (
    CHAT_STREAM_CHANNEL,
    DEFAULT_COMPLETION_TIMEOUT,
    EventSubscriptionManager,
)
from ...llm import LLMClient, LLMError
from .dispatcher import CapabilityDispatcher
from .formatting import (
    extract_result_state,
    extract_result_text,
    format_observation_display,
    to_extract_json_string,
)
from .parsers import TagExtractor
from .prompts import build_system_prompt


OnChunk = Callable[[str], None]
OnComplete = Callable[[str], None]

FINISHED = "finished"


@dataclass
class ExecutorConfig:
    max_iterations: int = 8
    channel: str = CHAT_STREAM_CHANNEL
    completion_timeout: float = DEFAULT_COMPLETION_TIMEOUT
    thought_prefix: str = "#### Thought: \n"
    error_prefix: str = "#### Error: \n"
    fatal_error_prefix: str = "##### Error: \n"

    @classmethod
    def from_env(cls) -> "ExecutorConfig":
        config = cls()
        max_iterations = os.getenv("REACT_HOST_MAX_ITERATIONS")
        if max_iterations:
            config.max_iterations = int(max_iterations)
        timeout = os.getenv("REACT_HOST_COMPLETION_TIMEOUT")
        if timeout:
            config.completion_timeout = float(timeout)
        channel = os.getenv("REACT_HOST_CHANNEL")
        if channel:
            config.channel = channel
        return config


class RunStatus(str, Enum):
    ANSWERED = "answered"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


@dataclass
class RunOutcome:
    status: RunStatus
    turns: int
    final_answer: Optional[str] = None
    error: Optional[str] = None
    observations: List[Observation] = field(default_factory=list)
    context: Sequence[ChatMessage] = field(default_factory=list)


class ReActOrchestrator:
    def __init__(
        self,
        llm: LLMClient,
        dispatcher: CapabilityDispatcher,
        *,
        events: Optional[EventSubscriptionManager] = None,
        streamer: Optional[ChunkStreamer] = None,
        parser: Optional[TagExtractor] = None,
        config: Optional[ExecutorConfig] = None,
    ) -> None:
        self.llm = llm
        self.dispatcher = dispatcher
        self.events = events or EventSubscriptionManager()
        self.streamer = streamer or ChunkStreamer()
        self.parser = parser or TagExtractor()
        self.config = config or ExecutorConfig()
        self._logger = logging.getLogger(__name__)

    async def run(
        self,
        question: str,
        registry: CapabilityRegistry,
        on_chunk: OnChunk,
        on_complete: Optional[OnComplete] = None,
    ) -> RunOutcome:
        """
        Run the loop for one user request.

        `on_complete` receives the final answer, or "finished" after an error
        block was streamed. It is not called when the iteration budget runs
        out without a final answer.
        """

        observations: List[Observation] = []
        try:
            context = ConversationContext.start(build_system_prompt(registry), question)
        except Exception as exc:
            self._logger.exception("Failed to build the initial context")
            await self._render_error(self.config.fatal_error_prefix, exc, on_chunk)
            self._complete(on_complete, FINISHED)
            return RunOutcome(status=RunStatus.FAILED, turns=0, error=str(exc))

        self._logger.info(
            "\n%s\n[EXECUTION START]\nQuestion: %s\nAgents: %s\nMax iterations: %d\n%s",
            "=" * 80,
            question,
            ", ".join(registry.names()) or "(none)",
            self.config.max_iterations,
            "=" * 80,
        )

        # 观察结果编号从 1 开始，只有成功执行 action 后才递增
        iteration = 1
        for turn in range(1, self.config.max_iterations + 1):
            try:
                parsed = await self._reason(context, turn, on_chunk)
                if parsed.has_final_answer:
                    await self.streamer.stream(parsed.final_answer, on_chunk)
                else:
                    observation = await self._act(parsed.action, registry, iteration, on_chunk)
                    context.append_observation(observation)
                    observations.append(observation)
                    iteration += 1
                    continue
            except (ReActError, LLMError) as exc:
                self._logger.error("[TURN %d] ReAct step failed: %s", turn, exc)
                await self._render_error(self.config.error_prefix, exc, on_chunk)
                self._complete(on_complete, FINISHED)
                return self._outcome(RunStatus.FAILED, turn, context, observations, error=str(exc))
            except Exception as exc:
                self._logger.exception("[TURN %d] Unexpected failure", turn)
                await self._render_error(self.config.fatal_error_prefix, exc, on_chunk)
                self._complete(on_complete, FINISHED)
                return self._outcome(RunStatus.FAILED, turn, context, observations, error=str(exc))

            self._logger.info(
                "\n%s\n[TURN %d] FINAL ANSWER\n%s\n%s",
                "=" * 80,
                turn,
                parsed.final_answer,
                "=" * 80,
            )
            self._complete(on_complete, parsed.final_answer)
            return self._outcome(
                RunStatus.ANSWERED,
                turn,
                context,
                observations,
                final_answer=parsed.final_answer,
            )

        # 超出最大轮次仍未得到最终答案：静默结束，不回调 on_complete
        self._logger.warning(
            "Iteration budget of %d exhausted without a final answer",
            self.config.max_iterations,
        )
        return self._outcome(RunStatus.EXHAUSTED, self.config.max_iterations, context, observations)

    async def _reason(self, context: ConversationContext, turn: int, on_chunk: OnChunk) -> ParsedResponse:
        response = await self._request_completion(context, turn)
        self._logger.info(
            "\n%s\n[TURN %d] RAW LLM RESPONSE\n%s\n%s",
            "-" * 80,
            turn,
            response.strip(),
            "-" * 80,
        )
        parsed = self.parser.parse(response)
        if parsed.thought:
            await self.streamer.stream(f"{self.config.thought_prefix}{parsed.thought}\n", on_chunk)
        if not parsed.has_final_answer and parsed.action is None:
            raise ParseFailure("Model response contains neither a <final_answer> nor an <action>.")
        return parsed

    async def _request_completion(self, context: ConversationContext, turn: int) -> str:
        messages = context.snapshot()
        channel = self.config.channel
        request_id = f"react-{turn}-{uuid4().hex}"
        publish = self.events.bus.publisher(channel, request_id=request_id)

        async def start() -> str:
            return await asyncio.to_thread(self.llm.stream_chat, messages, publish)

        return await self.events.await_completion(
            channel,
            start,
            timeout=self.config.completion_timeout,
            request_id=request_id,
        )

    async def _act(
        self,
        action: ActionCall,
        registry: CapabilityRegistry,
        iteration: int,
        on_chunk: OnChunk,
    ) -> Observation:
        response = await self.dispatcher.dispatch(
            action.agent_name,
            action.skill_name,
            action.message,
            registry,
        )
        text = extract_result_text(response)
        if not text:
            text = json.dumps(response.get("result", response), ensure_ascii=False)
        observation = Observation(
            iteration=iteration,
            text=text,
            display=format_observation_display(
                action.agent_name,
                action.skill_name,
                extract_result_state(response),
                extract_result_text(response),
            ),
        )
        self._logger.info(
            "\n%s\n[OBSERVATION %d] %s / %s\n%s\n%s",
            "-" * 80,
            iteration,
            action.agent_name,
            action.skill_name,
            text.strip(),
            "-" * 80,
        )
        await self.streamer.stream(observation.display, on_chunk)
        return observation

    async def _render_error(self, prefix: str, exc: BaseException, on_chunk: OnChunk) -> None:
        try:
            await self.streamer.stream(prefix + to_extract_json_string(str(exc)), on_chunk)
        except Exception:
            self._logger.exception("Failed to stream the error block")

    def _complete(self, on_complete: Optional[OnComplete], value: str) -> None:
        if on_complete is None:
            return
        try:
            on_complete(value)
        except Exception:
            self._logger.exception("on_complete callback raised")

    @staticmethod
    def _outcome(
        status: RunStatus,
        turns: int,
        context: ConversationContext,
        observations: List[Observation],
        *,
        final_answer: Optional[str] = None,
        error: Optional[str] = None,
    ) -> RunOutcome:
        return RunOutcome(
            status=status,
            turns=turns,
            final_answer=final_answer,
            error=error,
            observations=list(observations),
            context=context.snapshot(),
        )
