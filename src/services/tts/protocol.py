"""TTS (Text-to-Speech) service protocol and data types."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Literal, Protocol

AudioFormat = Literal["mp3", "wav"]


@dataclass(frozen=True, slots=True)
class SynthesizedAudio:
    """Complete audio for one reply, ready for a single outbound event."""

    audio_b64: str
    format: AudioFormat
    provider: str = ""
    voice: str = ""
    input_chars: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_bytes(cls, audio_bytes: bytes, fmt: AudioFormat, **kwargs) -> SynthesizedAudio:
        return cls(audio_b64=base64.b64encode(audio_bytes).decode("ascii"), format=fmt, **kwargs)

    def to_event(self) -> dict[str, str]:
        """Outbound transport event."""
        return {"event": "audio", "audio": self.audio_b64, "format": self.format}


@dataclass
class SynthesisMetadata:
    """Metadata collected after synthesis."""

    provider: str = ""
    voice: str = ""
    input_chars: int = 0
    total_synthesis_ms: float | None = None


class TTSService(Protocol):
    """Protocol for TTS (Text-to-Speech) service implementations."""

    async def synthesize(self, text: str, *, voice_id: str) -> SynthesizedAudio:
        """Synthesize a full reply.

        Raises:
            TTSServiceError: On provider failure or missing audio.
        """
        ...

    async def close(self) -> None:
        """Close any open connections and clean up resources."""
        ...

    async def health_check(self) -> bool:
        """Check if the service is operational."""
        ...
