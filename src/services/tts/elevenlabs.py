"""ElevenLabs TTS service implementation (default provider, MP3 output)."""

from __future__ import annotations

import asyncio
import io
import time
from typing import Any

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.tts.exceptions import TTSConnectionError, TTSSynthesisError
from src.services.tts.protocol import SynthesisMetadata, SynthesizedAudio

logger: Any = get_logger(__name__)

ELEVENLABS_OUTPUT_FORMAT = "mp3_44100_128"
ELEVENLABS_VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}


class ElevenLabsTTSService:
    """ElevenLabs TTS returning one MP3 payload per reply."""

    def __init__(
        self,
        settings: Settings | None = None,
        model_id: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_id = model_id or self._settings.elevenlabs_model_id
        self._client = None
        self.last_metadata: SynthesisMetadata | None = None

    def _get_client(self):
        if self._client is None:
            if not self._settings.elevenlabs_api_key:
                raise TTSConnectionError("ElevenLabs API key is not configured")
            from elevenlabs import ElevenLabs

            self._client = ElevenLabs(
                api_key=self._settings.elevenlabs_api_key.get_secret_value()
            )
        return self._client

    async def synthesize(self, text: str, *, voice_id: str) -> SynthesizedAudio:
        """Synthesize text with the given ElevenLabs voice."""
        start_time = time.perf_counter()

        try:
            mp3_bytes = await asyncio.to_thread(self._synthesize_to_mp3, text, voice_id)
        except (TTSConnectionError, TTSSynthesisError):
            raise
        except Exception as e:
            logger.error(f"ElevenLabs synthesis error: {e}")
            raise TTSConnectionError(f"ElevenLabs request failed: {e}") from e

        if not mp3_bytes:
            raise TTSSynthesisError("No audio received from ElevenLabs")

        self.last_metadata = SynthesisMetadata(
            provider="elevenlabs",
            voice=voice_id,
            input_chars=len(text),
            total_synthesis_ms=(time.perf_counter() - start_time) * 1000,
        )
        return SynthesizedAudio.from_bytes(
            mp3_bytes,
            "mp3",
            provider="elevenlabs",
            voice=voice_id,
            input_chars=len(text),
        )

    def _synthesize_to_mp3(self, text: str, voice_id: str) -> bytes:
        from elevenlabs import VoiceSettings

        client = self._get_client()

        audio_chunks = client.text_to_speech.convert(
            text=text,
            voice_id=voice_id,
            model_id=self._model_id,
            output_format=ELEVENLABS_OUTPUT_FORMAT,
            voice_settings=VoiceSettings(**ELEVENLABS_VOICE_SETTINGS),
        )

        buffer = io.BytesIO()
        for chunk in audio_chunks:
            buffer.write(chunk)
        return buffer.getvalue()

    async def close(self) -> None:
        self._client = None

    async def health_check(self) -> bool:
        return bool(self._settings.elevenlabs_api_key)
