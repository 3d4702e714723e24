"""
HTTP transport for the A2A (agent-to-agent) JSON-RPC protocol.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import json
import logging
from typing import Any, Dict, List, Optional

import requests

from ..core.primitives.errors import RemoteCallFailed
from ..core.primitives.registry import CapabilityRegistry, CapabilityRegistryEntry


LOGGER = logging.getLogger(__name__)

USER_PROMPT_PLACEHOLDER = "{{USER_PROMPT}}"


def normalize_url(url: str) -> str:
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return f"http://{url}"


class A2ATransport(ABC):
    """
    Single request/response exchange with a remote agent.
    """

    @abstractmethod
    def send_message(
        self,
        agent_url: str,
        task_id: str,
        message_id: str,
        skill_id: str,
        text: str,
        agent_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        raise NotImplementedError


class A2AClient(A2ATransport):
    """
    Talks to A2A servers with `requests`.

    When a registry is given, the `agent_id` of a call selects the entry whose
    custom headers and protocol settings shape the request.
    """

    def __init__(
        self,
        *,
        registry: Optional[CapabilityRegistry] = None,
        timeout: Optional[float] = None,
        default_headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self.registry = registry or CapabilityRegistry()
        self.timeout = timeout
        self.default_headers = dict(default_headers or {})

    def get_agent_card(self, url: str) -> Dict[str, Any]:
        full_url = normalize_url(url)
        try:
            response = requests.get(full_url, headers={"Accept": "application/json"}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise RemoteCallFailed(f"Request failed: {exc}") from exc
        if response.status_code >= 400:
            LOGGER.error("Agent card request failed with status %s. Body: %s", response.status_code, response.text)
            raise RemoteCallFailed(f"Request failed with status {response.status_code}: {response.text}")
        try:
            card = response.json()
        except ValueError as exc:
            raise RemoteCallFailed(f"Failed to parse response: {exc}") from exc
        if not isinstance(card, dict):
            raise RemoteCallFailed("Failed to parse response: agent card is not an object")
        return card

    def build_parts(self, text: str, entry: Optional[CapabilityRegistryEntry]) -> List[Dict[str, Any]]:
        settings = entry.protocol_settings() if entry else {}
        if settings.get("kind") == "data":
            data = str(settings.get("data") or "").replace(USER_PROMPT_PLACEHOLDER, text)
            return [{"kind": "data", "data": data}]
        return [{"kind": "text", "text": text}]

    def build_request(
        self,
        task_id: str,
        message_id: str,
        text: str,
        entry: Optional[CapabilityRegistryEntry] = None,
    ) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": message_id,
            "method": "message/send",
            "params": {
                "id": task_id,
                "message": {
                    "messageId": message_id,
                    "kind": "message",
                    "role": "user",
                    "parts": self.build_parts(text, entry),
                },
                "metadata": {},
            },
        }

    def send_message(
        self,
        agent_url: str,
        task_id: str,
        message_id: str,
        skill_id: str,
        text: str,
        agent_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        entry = self.registry.get_by_id(agent_id)
        headers = {"Content-Type": "application/json", "X-A2A-Skill-Id": skill_id}
        headers.update(self.default_headers)
        if entry is not None:
            headers.update(entry.custom_headers())
        payload = self.build_request(task_id, message_id, text, entry)

        full_url = normalize_url(agent_url)
        LOGGER.info("Sending A2A message %s to %s (skill=%s)", message_id, full_url, skill_id)
        try:
            response = requests.post(full_url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            LOGGER.error("Failed to send A2A request: %s", exc)
            raise RemoteCallFailed(f"Request failed: {exc}") from exc
        if response.status_code >= 400:
            raise RemoteCallFailed(f"A2A request failed with status {response.status_code}: {response.text}")
        try:
            body = response.json()
        except ValueError:
            LOGGER.warning("A2A response is not JSON, returning raw text")
            return {"result": {"parts": [{"kind": "text", "text": response.text}]}}
        if not isinstance(body, dict):
            return {"result": {"parts": [{"kind": "text", "text": json.dumps(body, ensure_ascii=False)}]}}
        return body
