"""
Definitions of the intents and results exchanged inside the ReAct loop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ActionCall:
    """
    A `send_to_agent(...)` request extracted from the model output.
    """

    agent_name: str
    skill_name: str
    message: str


@dataclass
class ParsedResponse:
    """
    Outcome of parsing one raw model completion.
    """

    thought: Optional[str] = None
    final_answer: Optional[str] = None
    action: Optional[ActionCall] = None

    @property
    def has_final_answer(self) -> bool:
        return bool(self.final_answer)


@dataclass(frozen=True)
class Observation:
    """
    Result of one capability call, in both of its renderings.

    `text` is fed back to the model, `display` is streamed to the user.
    """

    iteration: int
    text: str
    display: str

    def as_prompt(self) -> str:
        return f"<observation>{self.iteration}. {self.text}</observation>"
