"""
OpenAI-compatible streaming client and the registry of known providers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import os
import time
from typing import Any, Dict, Iterable, List, Mapping, NoReturn, Optional

import requests

from .base import ChunkEmitter, LLMClient, LLMError
from ..core.primitives.messages import ChatMessage
from ..core.streaming.events import StreamChunk


LOGGER = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_STREAM_TIMEOUT = 5 * 60.0

_DONE = object()


@dataclass(frozen=True)
class ProviderSpec:
    """
    How to reach one OpenAI-compatible vendor.

    Every value can be overridden explicitly; otherwise the environment is
    consulted before falling back to the built-in default.
    """

    name: str
    api_key_env: str
    base_url: str
    model: str
    base_url_env: Optional[str] = None
    header_envs: Mapping[str, str] = field(default_factory=dict)  # header -> env var

    def api_key_for(self, explicit: Optional[str] = None) -> Optional[str]:
        return explicit or os.getenv(self.api_key_env)

    def base_url_for(self, explicit: Optional[str] = None) -> str:
        from_env = os.getenv(self.base_url_env) if self.base_url_env else None
        return (explicit or from_env or self.base_url).rstrip("/")

    def headers_for(self, explicit: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
        headers = {header: os.environ[env] for header, env in self.header_envs.items() if os.getenv(env)}
        headers.update(explicit or {})
        return headers


class OpenAICompatibleClient(LLMClient):
    """
    Streams `/chat/completions` as server-sent events.

    Each `data:` line with a content delta becomes one fragment; `[DONE]`
    ends the stream. The whole stream is bounded by `stream_timeout`.
    """

    def __init__(
        self,
        model: str,
        *,
        base_url: str,
        api_key: Optional[str],
        headers: Optional[Mapping[str, str]] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        stream_timeout: float = DEFAULT_STREAM_TIMEOUT,
        temperature: float = 0.3,
        max_output_tokens: Optional[int] = 4000,
    ) -> None:
        super().__init__(model, temperature=temperature, max_output_tokens=max_output_tokens)
        if not api_key or not api_key.strip():
            raise ValueError(f"API key is required for model '{model}'.")
        self.endpoint = f"{base_url.rstrip('/')}/chat/completions"
        self.connect_timeout = connect_timeout
        self.stream_timeout = stream_timeout
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            **(headers or {}),
        }

    def stream_chat(
        self,
        messages: List[ChatMessage],
        emit: ChunkEmitter,
        *,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        **kwargs: Any,
    ) -> str:
        if not messages:
            self._fail(emit, "Messages array cannot be empty")
        payload = self.build_payload(
            messages,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            **kwargs,
        )
        LOGGER.info("Starting streaming chat completion with model: %s", self.model)
        try:
            response = requests.post(
                self.endpoint,
                json=payload,
                headers=self.headers,
                timeout=self.connect_timeout,
                stream=True,
            )
        except requests.RequestException as exc:
            self._fail(emit, f"Request failed: {exc}", exc)

        with response:
            if response.status_code >= 400:
                self._fail(emit, f"LLM request failed ({response.status_code}): {response.text}")
            self.emit_started(emit)
            pieces = self._read_events(response, emit)

        LOGGER.info("Stream completed after %d chunks", len(pieces))
        self.emit_completed(emit)
        return "".join(pieces)

    def _read_events(self, response: requests.Response, emit: ChunkEmitter) -> List[str]:
        pieces: List[str] = []
        deadline = time.monotonic() + self.stream_timeout
        try:
            for line in response.iter_lines(decode_unicode=True):
                if time.monotonic() > deadline:
                    raise LLMError(f"Streaming timeout after {self.stream_timeout:g} seconds")
                content = self._parse_event(line)
                if content is _DONE:
                    break
                if content:
                    emit(StreamChunk(content=content))
                    pieces.append(content)
        except requests.RequestException as exc:
            self._fail(emit, f"Stream error: {exc}", exc)
        except LLMError as exc:
            self._fail(emit, str(exc), exc)
        return pieces

    @staticmethod
    def _parse_event(line: Optional[str]) -> Any:
        if not line or not line.startswith("data:"):
            return None
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return _DONE
        try:
            event: Dict[str, Any] = json.loads(data)
        except json.JSONDecodeError as exc:
            raise LLMError(f"Malformed stream chunk: {data}") from exc
        if event.get("usage"):
            LOGGER.info("Usage: %s", event["usage"])
        choices = event.get("choices") or []
        delta = (choices[0].get("delta") or {}) if choices else {}
        return delta.get("content") or ""

    def _fail(self, emit: ChunkEmitter, message: str, cause: Optional[BaseException] = None) -> NoReturn:
        LOGGER.error(message)
        self.emit_failure(emit, message, cause)


_PROVIDERS: Dict[str, ProviderSpec] = {
    spec.name: spec
    for spec in (
        ProviderSpec(
            name="deepseek",
            api_key_env="DEEPSEEK_API_KEY",
            base_url="https://api.deepseek.com/v1",
            model="deepseek-chat",
            base_url_env="DEEPSEEK_BASE_URL",
        ),
        ProviderSpec(
            name="openai",
            api_key_env="OPENAI_API_KEY",
            base_url="https://api.openai.com/v1",
            model="gpt-4o-mini",
            base_url_env="OPENAI_BASE_URL",
            header_envs={"OpenAI-Organization": "OPENAI_ORG_ID"},
        ),
        ProviderSpec(
            name="qwen",
            api_key_env="QWEN_API_KEY",
            base_url="https://dashscope.aliyuncs.com/compatible-mode/v1",
            model="qwen-plus",
            base_url_env="QWEN_BASE_URL",
            header_envs={"X-DashScope-Workspace": "QWEN_WORKSPACE"},
        ),
    )
}


def list_providers() -> Iterable[str]:
    return tuple(_PROVIDERS)


def get_provider(name: str) -> Optional[ProviderSpec]:
    """Case-insensitive, so model settings keys such as "DeepSeek" resolve."""
    return _PROVIDERS.get(name.lower())


def create_chat_completion_client(
    provider: str,
    model: Optional[str] = None,
    *,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    headers: Optional[Mapping[str, str]] = None,
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    stream_timeout: float = DEFAULT_STREAM_TIMEOUT,
    temperature: float = 0.3,
    max_output_tokens: Optional[int] = 4000,
) -> OpenAICompatibleClient:
    spec = get_provider(provider)
    if spec is None:
        raise ValueError(f"Unknown provider '{provider}'. Available: {list_providers()}")
    resolved_key = spec.api_key_for(api_key)
    if not resolved_key:
        raise ValueError(f"API key is required. Pass api_key or set {spec.api_key_env}.")
    return OpenAICompatibleClient(
        model or spec.model,
        base_url=spec.base_url_for(base_url),
        api_key=resolved_key,
        headers=spec.headers_for(headers),
        connect_timeout=connect_timeout,
        stream_timeout=stream_timeout,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
    )
