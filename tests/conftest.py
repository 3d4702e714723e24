"""Shared fixtures for the host agent test-suite."""

import json
import random
import threading
from typing import Any, Dict, List, Optional

import pytest

from react_host.a2a.client import A2ATransport
from react_host.core.primitives.registry import CapabilityRegistry, CapabilityRegistryEntry
from react_host.core.streaming.chunker import ChunkStreamer
from react_host.core.streaming.events import StreamChunk
from react_host.llm.base import LLMClient


class ScriptedLLM(LLMClient):
    """Streams pre-baked responses, one per call."""

    def __init__(self, responses: List[str], *, piece_size: int = 7) -> None:
        super().__init__("scripted")
        self.responses = list(responses)
        self.piece_size = piece_size
        self.calls: List[List[Any]] = []
        self._lock = threading.Lock()

    def stream_chat(self, messages, emit, **kwargs) -> str:
        with self._lock:
            self.calls.append(list(messages))
            text = self.responses.pop(0) if self.responses else ""
        self.emit_started(emit)
        for index in range(0, len(text), self.piece_size):
            emit(StreamChunk(content=text[index:index + self.piece_size]))
        self.emit_completed(emit)
        return text


class FailingLLM(LLMClient):
    def __init__(self, error: str = "boom") -> None:
        super().__init__("failing")
        self.error = error

    def stream_chat(self, messages, emit, **kwargs) -> str:
        self.emit_failure(emit, self.error)


class RecordingTransport(A2ATransport):
    def __init__(self, response: Optional[Dict[str, Any]] = None) -> None:
        self.response = response or {
            "result": {"status": {"state": "completed"}, "parts": [{"kind": "text", "text": "pong"}]}
        }
        self.calls: List[Dict[str, Any]] = []

    def send_message(self, agent_url, task_id, message_id, skill_id, text, agent_id=None):
        self.calls.append(
            {
                "agent_url": agent_url,
                "task_id": task_id,
                "message_id": message_id,
                "skill_id": skill_id,
                "text": text,
                "agent_id": agent_id,
            }
        )
        return self.response


async def _no_sleep(_seconds: float) -> None:
    return None


def make_entry(
    name: str = "X",
    skills: Optional[List[Dict[str, str]]] = None,
    *,
    id: int = 1,
    url: str = "http://agent.local",
    **kwargs: Any,
) -> CapabilityRegistryEntry:
    card = {
        "name": name,
        "url": f"{url}/a2a",
        "skills": skills if skills is not None else [{"id": "skill-y", "name": "Y", "description": "does Y"}],
    }
    return CapabilityRegistryEntry(
        id=id,
        name=name,
        url=f"{url}/.well-known/agent.json",
        agent_card_json=json.dumps(card),
        **kwargs,
    )


@pytest.fixture
def streamer() -> ChunkStreamer:
    return ChunkStreamer(rng=random.Random(7), sleep=_no_sleep)


@pytest.fixture
def entry_factory():
    return make_entry


@pytest.fixture
def registry() -> CapabilityRegistry:
    return CapabilityRegistry([make_entry()])


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def scripted_llm():
    return ScriptedLLM


@pytest.fixture
def failing_llm():
    return FailingLLM


@pytest.fixture
def transport_cls():
    return RecordingTransport


class ChunkSink:
    def __init__(self) -> None:
        self.chunks: List[str] = []
        self.completions: List[str] = []

    def on_chunk(self, chunk: str) -> None:
        self.chunks.append(chunk)

    def on_complete(self, value: str) -> None:
        self.completions.append(value)

    @property
    def text(self) -> str:
        return "".join(chunk for chunk in self.chunks if chunk != "\r")


@pytest.fixture
def sink() -> ChunkSink:
    return ChunkSink()
