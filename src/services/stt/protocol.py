"""STT (Speech-to-Text) service protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol


@dataclass(frozen=True, slots=True)
class TranscriptResult:
    """Transcript of one complete utterance."""

    text: str
    language_code: str | None = None
    audio_bytes: int = 0
    latency_ms: float | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_empty(self) -> bool:
        """True when nothing was said."""
        return not self.text.strip()


class STTService(Protocol):
    """Protocol for batch STT implementations.

    Input is a complete WAV container for a single utterance.
    """

    async def transcribe(self, wav_bytes: bytes) -> TranscriptResult:
        """Transcribe a WAV container.

        Raises:
            TranscriptionError: On provider failure.
        """
        ...

    async def close(self) -> None:
        """Close any open connections and clean up resources."""
        ...
