"""LLM service protocol and data types."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class Role(str, Enum):
    """Message role in conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class Message:
    """A single turn in conversation history."""

    role: Role
    content: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class GenerationResult:
    """Text returned by a model plus the usage it reported."""

    text: str
    model: str = ""
    input_tokens: int | None = None
    output_tokens: int | None = None
    latency_ms: float | None = None
    finish_reason: str | None = None


class LLMService(Protocol):
    """Protocol for LLM service implementations."""

    async def generate_content(
        self,
        model: str,
        turns: Sequence[Message],
        system_instruction: str,
    ) -> GenerationResult:
        """Generate the next assistant turn for a conversation.

        Raises:
            LLMServiceError: On any provider failure.
        """
        ...

    async def chat(
        self,
        model: str,
        prompt: str,
        history: Sequence[Message] = (),
    ) -> str:
        """Single prompt completion, used for structured extraction."""
        ...

    async def close(self) -> None:
        """Close any open connections."""
        ...
