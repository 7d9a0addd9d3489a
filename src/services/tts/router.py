"""Voice-based routing between TTS providers."""

from __future__ import annotations

from typing import Any, Literal

from src.config import Settings, get_settings
from src.logging_config import get_logger, truncate_for_log
from src.services.tts.elevenlabs import ElevenLabsTTSService
from src.services.tts.protocol import SynthesizedAudio, TTSService
from src.services.tts.sarvam import SarvamTTSService

logger: Any = get_logger(__name__)

VoiceProvider = Literal["elevenlabs", "sarvam"]

SARVAM_VOICES = frozenset({
    # Female
    "meera", "ananya", "aditi", "vidya",
    # Male
    "arvind", "abhilash", "aarav",
    # Additional
    "arya", "hitesh", "chitra",
})
SARVAM_MARKER = "sarvam"


def select_voice_provider(voice_id: str | None) -> VoiceProvider:
    """Pick the provider that owns a voice selector.

    Known Sarvam speaker names (case-insensitive) or any selector containing
    "sarvam" go to Sarvam; everything else is an ElevenLabs voice id.
    """
    if not voice_id:
        return "elevenlabs"
    lowered = voice_id.lower()
    if SARVAM_MARKER in lowered or lowered in SARVAM_VOICES:
        return "sarvam"
    return "elevenlabs"


class TTSRouter:
    """Routes each synthesis call to the provider selected by the voice."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        elevenlabs: TTSService | None = None,
        sarvam: TTSService | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._providers: dict[VoiceProvider, TTSService] = {
            "elevenlabs": elevenlabs or ElevenLabsTTSService(settings=self._settings),
            "sarvam": sarvam or SarvamTTSService(settings=self._settings),
        }

    def provider_for(self, voice_id: str | None) -> TTSService:
        return self._providers[select_voice_provider(voice_id)]

    async def synthesize(self, voice_id: str | None, text: str) -> SynthesizedAudio:
        """Synthesize a reply with whichever provider owns the voice.

        Raises:
            TTSServiceError: Propagated from the selected provider.
        """
        voice = voice_id or self._settings.default_voice_id
        provider = select_voice_provider(voice)
        logger.debug(f"Synthesizing via {provider} ({voice}): {truncate_for_log(text, 50)}")
        return await self._providers[provider].synthesize(text, voice_id=voice)

    async def close(self) -> None:
        """Close every provider client."""
        for provider in self._providers.values():
            await provider.close()

    async def health_check(self) -> dict[str, bool]:
        return {name: await svc.health_check() for name, svc in self._providers.items()}
