"""
Resolves `(agent, skill)` pairs against the registry and calls the agent.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional, Tuple
from uuid import uuid4

from ...a2a.client import A2ATransport
from ..primitives.errors import CapabilityNotFound, RemoteCallFailed, SkillNotFound
from ..primitives.registry import CapabilityRegistry


@dataclass(frozen=True)
class RemoteCall:
    """Everything sent to the transport for one capability call."""

    agent_url: str
    task_id: str
    message_id: str
    skill_id: str
    message: str
    agent_id: Optional[int] = None


def new_correlation_ids() -> Tuple[str, str]:
    return f"task_id:{uuid4()}", f"msg_id:{uuid4()}"


class CapabilityDispatcher:
    def __init__(self, transport: A2ATransport) -> None:
        self.transport = transport
        self._logger = logging.getLogger(__name__)

    def resolve(
        self,
        agent_name: str,
        skill_name: str,
        message: str,
        registry: CapabilityRegistry,
    ) -> RemoteCall:
        entry = registry.find(agent_name)
        if entry is None:
            raise CapabilityNotFound(
                f"Agent '{agent_name}' is not enabled. Available agents: {registry.names()}"
            )
        skill = entry.find_skill(skill_name)
        if skill is None:
            raise SkillNotFound(f"Agent '{agent_name}' has no skill named '{skill_name}'.")
        task_id, message_id = new_correlation_ids()
        return RemoteCall(
            agent_url=entry.agent_url,
            task_id=task_id,
            message_id=message_id,
            skill_id=skill.id,
            message=message,
            agent_id=entry.id,
        )

    async def dispatch(
        self,
        agent_name: str,
        skill_name: str,
        message: str,
        registry: CapabilityRegistry,
    ) -> Dict[str, Any]:
        call = self.resolve(agent_name, skill_name, message, registry)
        self._logger.info(
            "\n%s\n[DISPATCH] %s / %s\nURL: %s\nTask: %s\nMessage: %s\n%s",
            "-" * 80,
            agent_name,
            skill_name,
            call.agent_url,
            call.task_id,
            call.message,
            "-" * 80,
        )
        response = await asyncio.to_thread(
            self.transport.send_message,
            call.agent_url,
            call.task_id,
            call.message_id,
            call.skill_id,
            call.message,
            call.agent_id,
        )
        error = response.get("error") if isinstance(response, dict) else None
        if error:
            detail = error.get("message") if isinstance(error, dict) else str(error)
            raise RemoteCallFailed(f"Failed to send task: {detail}")
        return response
