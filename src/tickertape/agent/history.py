"""In-memory chat history for interactive sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


class ChatHistory:
    """Ordered user/assistant turns of one interactive session.

    The agent only reads the user queries, to give follow-up questions
    context ("what about MSFT?").
    """

    def __init__(self) -> None:
        self._messages: list[ChatMessage] = []

    def add_user(self, content: str) -> None:
        self._messages.append(ChatMessage("user", content))

    def add_assistant(self, content: str) -> None:
        self._messages.append(ChatMessage("assistant", content))

    def add_turn(self, query: str, answer: str) -> None:
        self.add_user(query)
        self.add_assistant(answer)

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    def user_messages(self) -> list[str]:
        return [m.content for m in self._messages if m.role == "user"]

    def has_messages(self) -> bool:
        return bool(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def __len__(self) -> int:
        return len(self._messages)
