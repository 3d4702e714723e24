"""
Core agent orchestration components (parsing, dispatch, execution).
"""

from .dispatcher import CapabilityDispatcher, RemoteCall
from .executor import ExecutorConfig, ReActOrchestrator, RunOutcome, RunStatus
from .parsers import TagExtractor
from .prompts import HOST_AGENT_SYSTEM_PROMPT, build_skills_xml, build_system_prompt

__all__ = [
    "CapabilityDispatcher",
    "RemoteCall",
    "ExecutorConfig",
    "ReActOrchestrator",
    "RunOutcome",
    "RunStatus",
    "TagExtractor",
    "HOST_AGENT_SYSTEM_PROMPT",
    "build_skills_xml",
    "build_system_prompt",
]
