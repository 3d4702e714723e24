"""
Settings collaborators: which models and remote agents are enabled.

Persisting these settings is the application's job; the host agent only
reads them through `SettingsProvider`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .core.primitives.registry import CapabilityRegistry, CapabilityRegistryEntry
from .llm.providers import get_provider, list_providers


@dataclass(frozen=True)
class ModelSetting:
    model_key: str  # 对应 provider 名称，例如 "DeepSeek"
    api_key: str
    api_url: str = ""
    enabled: bool = True
    id: Optional[int] = None


class SettingsProvider(ABC):
    @abstractmethod
    def enabled_models(self) -> List[ModelSetting]:
        raise NotImplementedError

    @abstractmethod
    def enabled_agents(self) -> List[CapabilityRegistryEntry]:
        raise NotImplementedError

    def load_registry(self) -> CapabilityRegistry:
        return CapabilityRegistry(self.enabled_agents())


class StaticSettingsProvider(SettingsProvider):
    """Settings held in memory, e.g. loaded by the application at startup."""

    def __init__(
        self,
        models: Iterable[ModelSetting] = (),
        agents: Iterable[CapabilityRegistryEntry] = (),
    ) -> None:
        self._models = list(models)
        self._agents = list(agents)

    @classmethod
    def from_env(cls, agents: Iterable[CapabilityRegistryEntry] = ()) -> "StaticSettingsProvider":
        """Enable one model per registered provider whose API key env var is set."""
        models = []
        for name in list_providers():
            spec = get_provider(name)
            api_key = spec.api_key_for() if spec else None
            if spec and api_key:
                models.append(ModelSetting(model_key=spec.name, api_key=api_key, api_url=spec.base_url_for()))
        return cls(models=models, agents=agents)

    def enabled_models(self) -> List[ModelSetting]:
        return [model for model in self._models if model.enabled]

    def enabled_agents(self) -> List[CapabilityRegistryEntry]:
        return [agent for agent in self._agents if agent.enabled]
