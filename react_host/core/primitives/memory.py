"""
Prompt context owned by a single orchestrator run.
"""

from __future__ import annotations

from typing import Iterator, List

from .actions import Observation
from .messages import ChatMessage, MessageRole, system_message, user_message


class ConversationContext:
    """
    Append-only list of messages sent to the model on every iteration.

    The first message is always the system prompt. It is fixed when the
    context is created and later messages can only be appended.
    """

    def __init__(self, system_prompt: str) -> None:
        self._messages: List[ChatMessage] = [system_message(system_prompt)]

    @classmethod
    def start(cls, system_prompt: str, question: str) -> "ConversationContext":
        """Create the initial context: system prompt plus the wrapped question."""
        context = cls(system_prompt)
        context.append(user_message(f"<question>{question}</question>"))
        return context

    @property
    def system_prompt(self) -> str:
        return self._messages[0].content

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._messages)

    def append(self, message: ChatMessage) -> None:
        """追加一条消息到上下文末尾。"""
        if message.role is MessageRole.SYSTEM:
            raise ValueError("The system prompt is set once when the context is created.")
        self._messages.append(message)

    def append_observation(self, observation: Observation) -> None:
        self.append(user_message(observation.as_prompt()))

    def last(self) -> ChatMessage:
        return self._messages[-1]

    def snapshot(self) -> List[ChatMessage]:
        """返回当前消息列表的浅拷贝，避免外部直接修改内部状态。"""
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))
