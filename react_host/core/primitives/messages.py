"""
Role-tagged messages that make up a conversation context.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """
    One entry of the context sent to the completion provider.

    Instances are immutable so a snapshot handed to a worker thread cannot
    change underneath it.
    """

    role: MessageRole
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


def system_message(content: str) -> ChatMessage:
    return ChatMessage(MessageRole.SYSTEM, content)


def user_message(content: str) -> ChatMessage:
    return ChatMessage(MessageRole.USER, content)


def to_payload(messages: Iterable[ChatMessage]) -> List[Dict[str, str]]:
    """OpenAI-style `messages` array."""
    return [message.to_payload() for message in messages]
