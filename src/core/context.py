"""Conversation history management."""

from __future__ import annotations

from collections import deque
from collections.abc import Iterator

from src.services.llm.protocol import Message, Role

DEFAULT_MAX_TURNS = 20


class ConversationHistory:
    """Bounded list of conversation turns, oldest evicted first."""

    def __init__(self, max_turns: int = DEFAULT_MAX_TURNS) -> None:
        if max_turns < 1:
            raise ValueError("max_turns must be positive")
        self._turns: deque[Message] = deque(maxlen=max_turns)

    @property
    def max_turns(self) -> int:
        return self._turns.maxlen or DEFAULT_MAX_TURNS

    def add(self, role: Role, content: str) -> Message:
        msg = Message(role=role, content=content)
        self._turns.append(msg)
        return msg

    def add_user(self, content: str) -> Message:
        """Add a user turn to history."""
        return self.add(Role.USER, content)

    def add_assistant(self, content: str) -> Message:
        """Add an assistant turn to history."""
        return self.add(Role.ASSISTANT, content)

    @property
    def turns(self) -> list[Message]:
        """Snapshot of the history, oldest first."""
        return list(self._turns)

    @property
    def last(self) -> Message | None:
        return self._turns[-1] if self._turns else None

    def transcript(self) -> str:
        """Full conversation as `role: content` lines."""
        return "\n".join(f"{msg.role.value}: {msg.content}" for msg in self._turns)

    def clear(self) -> None:
        self._turns.clear()

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Message]:
        return iter(list(self._turns))
