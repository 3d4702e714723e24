"""
Parser for interpreting LLM responses within the ReAct loop.
"""

from __future__ import annotations

import logging
import re
from typing import Optional, Pattern

from ..primitives.actions import ActionCall, ParsedResponse
from ..primitives.errors import ParseFailure


LOGGER = logging.getLogger(__name__)


def _tag_pattern(tag: str) -> Pattern[str]:
    return re.compile(rf"<{tag}>(.*?)</{tag}>", re.DOTALL)


class TagExtractor:
    """
    Pulls the structured markers out of free-form model output.

    Expects `<thought>`, `<action>`, `<observation>` and `<final_answer>`
    blocks. Matching is regex based: the first non-greedy match of each tag
    wins and nesting is not validated.
    """

    THOUGHT = _tag_pattern("thought")
    ACTION = _tag_pattern("action")
    OBSERVATION = _tag_pattern("observation")
    FINAL_ANSWER = _tag_pattern("final_answer")

    SEND_TO_AGENT = re.compile(r"send_to_agent\s*\(\s*(.*?)\s*\)", re.DOTALL)
    AGENT_NAME = re.compile(r'\bagent_name\s*=\s*"([^"]+)"')
    SKILL_NAME = re.compile(r'\bskill_name\s*=\s*"([^"]+)"')
    MESSAGE = re.compile(r'\bmessage\s*=\s*"([^"]+)"')

    def extract_thought(self, text: str) -> Optional[str]:
        return self._first(self.THOUGHT, text)

    def extract_final_answer(self, text: str) -> Optional[str]:
        return self._first(self.FINAL_ANSWER, text)

    def extract_observation(self, text: str) -> Optional[str]:
        return self._first(self.OBSERVATION, text)

    def extract_action_block(self, text: str) -> Optional[str]:
        return self._first(self.ACTION, text)

    def parse_action(self, text: str) -> Optional[ActionCall]:
        """
        Parse the `send_to_agent(...)` call inside the first `<action>` tag.

        Returns None when there is no `<action>` tag at all. A tag without the
        call wrapper, or a call missing one of its three arguments, raises
        `ParseFailure`.
        """

        content = self.extract_action_block(text)
        if content is None:
            return None

        call = self.SEND_TO_AGENT.search(content)
        if call is None:
            raise ParseFailure(f"Action is not a send_to_agent call: {content}")
        params = call.group(1)

        agent_name = self.AGENT_NAME.search(params)
        skill_name = self.SKILL_NAME.search(params)
        message = self.MESSAGE.search(params)
        if not agent_name or not skill_name or not message:
            missing = [
                name
                for name, match in (
                    ("agent_name", agent_name),
                    ("skill_name", skill_name),
                    ("message", message),
                )
                if not match
            ]
            raise ParseFailure(
                f"Missing required parameters in send_to_agent action: {', '.join(missing)}"
            )

        action = ActionCall(
            agent_name=agent_name.group(1),
            skill_name=skill_name.group(1),
            message=message.group(1).replace("\\n", "\n"),
        )
        LOGGER.info(
            "Parser constructed ActionCall: agent=%s skill=%s message length %d",
            action.agent_name,
            action.skill_name,
            len(action.message),
        )
        return action

    def parse(self, text: str) -> ParsedResponse:
        """
        Parse a full completion.

        The action is only parsed when there is no non-empty final answer, so
        a malformed action next to a final answer does not fail the turn.
        """

        parsed = ParsedResponse(
            thought=self.extract_thought(text),
            final_answer=self.extract_final_answer(text),
        )
        if not parsed.has_final_answer:
            parsed.action = self.parse_action(text)
        LOGGER.info(
            "Parser resolved response: thought=%s final_answer=%s action=%s",
            parsed.thought is not None,
            parsed.has_final_answer,
            parsed.action is not None,
        )
        return parsed

    @staticmethod
    def _first(pattern: Pattern[str], text: str) -> Optional[str]:
        match = pattern.search(text or "")
        return match.group(1).strip() if match else None
