"""
In-memory registry of the remote agents (and their skills) a run may call.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional


@dataclass(frozen=True)
class Skill:
    """A named capability advertised in an agent card."""

    id: str
    name: str
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Skill":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            description=str(data.get("description") or ""),
        )


@dataclass(frozen=True)
class CapabilityRegistryEntry:
    """
    One enabled remote agent.

    The agent card is kept as the JSON blob fetched when the agent was
    configured and is only decoded on demand.
    """

    id: Optional[int]
    name: str
    url: str  # 获取 agent card 的地址
    agent_card_json: str = "{}"
    custom_header_json: Optional[str] = None
    protocol_data_object_settings: Optional[str] = None
    enabled: bool = True

    @classmethod
    def from_agent_card(
        cls,
        card: Mapping[str, Any],
        *,
        url: str,
        id: Optional[int] = None,
        name: Optional[str] = None,
        custom_headers: Optional[Mapping[str, str]] = None,
        protocol_data_object_settings: Optional[Mapping[str, Any]] = None,
    ) -> "CapabilityRegistryEntry":
        return cls(
            id=id,
            name=name or str(card.get("name", "")),
            url=url,
            agent_card_json=json.dumps(dict(card), ensure_ascii=False),
            custom_header_json=json.dumps(dict(custom_headers)) if custom_headers else None,
            protocol_data_object_settings=(
                json.dumps(dict(protocol_data_object_settings), ensure_ascii=False)
                if protocol_data_object_settings
                else None
            ),
        )

    def card(self) -> Dict[str, Any]:
        data = json.loads(self.agent_card_json or "{}")
        if not isinstance(data, dict):
            raise ValueError(f"Agent card for '{self.name}' must be a JSON object.")
        return data

    @property
    def card_name(self) -> str:
        return str(self.card().get("name") or self.name)

    @property
    def agent_url(self) -> str:
        """Endpoint that receives `message/send` calls."""
        return str(self.card().get("url") or self.url)

    def skills(self) -> List[Skill]:
        return [Skill.from_dict(item) for item in self.card().get("skills") or []]

    def find_skill(self, skill_name: str) -> Optional[Skill]:
        for skill in self.skills():
            if skill.name == skill_name:
                return skill
        return None

    def custom_headers(self) -> Dict[str, str]:
        if not self.custom_header_json:
            return {}
        try:
            headers = json.loads(self.custom_header_json)
        except json.JSONDecodeError:
            return {}
        if not isinstance(headers, dict):
            return {}
        # 只保留字符串类型的 header 值
        return {str(key): value for key, value in headers.items() if isinstance(value, str)}

    def protocol_settings(self) -> Dict[str, Any]:
        if not self.protocol_data_object_settings:
            return {}
        try:
            settings = json.loads(self.protocol_data_object_settings)
        except json.JSONDecodeError:
            return {}
        return settings if isinstance(settings, dict) else {}


class CapabilityRegistry:
    """Read-only view over the enabled remote agents of one run."""

    def __init__(self, entries: Iterable[CapabilityRegistryEntry] = ()) -> None:
        self._entries: List[CapabilityRegistryEntry] = [entry for entry in entries if entry.enabled]

    def find(self, agent_name: str) -> Optional[CapabilityRegistryEntry]:
        for entry in self._entries:
            if entry.name == agent_name:
                return entry
        for entry in self._entries:
            if entry.card_name == agent_name:
                return entry
        return None

    def get_by_id(self, agent_id: Optional[int]) -> Optional[CapabilityRegistryEntry]:
        if agent_id is None:
            return None
        for entry in self._entries:
            if entry.id == agent_id:
                return entry
        return None

    def names(self) -> List[str]:
        return [entry.name for entry in self._entries]

    def is_empty(self) -> bool:
        return not self._entries

    def __iter__(self) -> Iterator[CapabilityRegistryEntry]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
