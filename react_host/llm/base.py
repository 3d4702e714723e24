"""
Streaming contract shared by every completion client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, NoReturn, Optional

from ..core.primitives.messages import ChatMessage, to_payload
from ..core.streaming.events import StreamChunk


ChunkEmitter = Callable[[StreamChunk], None]

STREAMING_STARTED = "streaming_started"
STREAMING_COMPLETED = "completed"


class LLMError(RuntimeError):
    """Raised when a completion request or its stream fails."""


class LLMClient(ABC):
    """
    Produces one completion per call, pushed fragment by fragment.

    `stream_chat` runs in a worker thread. It pushes every fragment through
    `emit` and ends with exactly one terminal fragment (`is_complete=True`),
    which carries an `error` when the request failed. The helpers below keep
    that contract in one place.
    """

    def __init__(
        self,
        model: str,
        *,
        temperature: float = 0.3,
        max_output_tokens: Optional[int] = 4000,
    ) -> None:
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    @abstractmethod
    def stream_chat(
        self,
        messages: List[ChatMessage],
        emit: ChunkEmitter,
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> str:
        raise NotImplementedError

    def build_payload(
        self,
        messages: List[ChatMessage],
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        **extra: Any,
    ) -> Dict[str, Any]:
        """JSON body of a streaming chat-completion request."""
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": to_payload(messages),
            "temperature": self.temperature if temperature is None else temperature,
            "stream": True,
        }
        max_tokens = self.max_output_tokens if max_output_tokens is None else max_output_tokens
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        payload.update(extra)
        return payload

    @staticmethod
    def emit_started(emit: ChunkEmitter) -> None:
        emit(StreamChunk(status=STREAMING_STARTED, message="Waiting for response..."))

    @staticmethod
    def emit_completed(emit: ChunkEmitter) -> None:
        emit(
            StreamChunk(
                is_complete=True,
                status=STREAMING_COMPLETED,
                message="Streaming completed successfully",
            )
        )

    @staticmethod
    def emit_failure(emit: ChunkEmitter, message: str, cause: Optional[BaseException] = None) -> NoReturn:
        emit(StreamChunk(is_complete=True, error=message))
        raise LLMError(message) from cause
