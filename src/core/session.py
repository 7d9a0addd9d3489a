"""Voice session state."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.core.agent_config import AgentConfig
from src.core.context import DEFAULT_MAX_TURNS, ConversationHistory
from src.services.tools.models import Tool


def new_connection_id() -> str:
    """Connection id for a browser call: `browser-<epoch ms>-<random>`."""
    return f"browser-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


@dataclass
class VoiceSession:
    """State for one live browser voice connection.

    Created when the socket is accepted, removed by the registry when the call
    ends. Audio buffering is owned by the pipeline's segmenter.
    """

    connection_id: str
    config: AgentConfig
    max_history_turns: int = DEFAULT_MAX_TURNS
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))

    history: ConversationHistory = field(init=False)

    # Control flags
    is_processing: bool = field(default=False, init=False)
    is_interrupted: bool = field(default=False, init=False)
    interruption_epoch: int = field(default=0, init=False)
    active_turn_id: int | None = field(default=None, init=False)

    # Accounting
    input_tokens: int = field(default=0, init=False)
    output_tokens: int = field(default=0, init=False)
    characters_synthesized: int = field(default=0, init=False)
    audio_seconds_transcribed: float = field(default=0.0, init=False)
    barge_in_count: int = field(default=0, init=False)
    total_turns: int = field(default=0, init=False)
    call_log_id: str | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.history = ConversationHistory(max_turns=self.max_history_turns)

    @property
    def user_id(self) -> str | None:
        return self.config.user_id

    @property
    def agent_id(self) -> str | None:
        return self.config.agent_id

    @property
    def tools(self) -> tuple[Tool, ...]:
        return self.config.tools

    def find_tool(self, name: str) -> Tool | None:
        """Look up one of the agent's tools by exact name."""
        for tool in self.config.tools:
            if tool.name == name:
                return tool
        return None

    def add_token_usage(self, input_tokens: int | None, output_tokens: int | None) -> None:
        self.input_tokens += input_tokens or 0
        self.output_tokens += output_tokens or 0

    def duration_seconds(self, now: datetime | None = None) -> int:
        """Whole seconds since the session started."""
        end = now or datetime.now(UTC)
        return max(0, int((end - self.start_time).total_seconds()))

    def usage(self) -> dict[str, float]:
        """Usage vector billed at call end."""
        return {
            "stt_seconds": round(self.audio_seconds_transcribed, 3),
            "tts_characters": self.characters_synthesized,
            "llm_input_tokens": self.input_tokens,
            "llm_output_tokens": self.output_tokens,
        }

    def get_metrics(self) -> dict[str, Any]:
        return {
            "connection_id": self.connection_id,
            "duration_seconds": self.duration_seconds(),
            "total_turns": self.total_turns,
            "barge_in_count": self.barge_in_count,
            **self.usage(),
        }
