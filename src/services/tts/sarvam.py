"""Sarvam TTS service implementation (Indic voices, WAV output)."""

from __future__ import annotations

import time
from typing import Any

import httpx

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.tts.exceptions import TTSConnectionError, TTSSynthesisError
from src.services.tts.protocol import SynthesisMetadata, SynthesizedAudio

logger: Any = get_logger(__name__)

SARVAM_TTS_URL = "https://api.sarvam.ai/text-to-speech"


class SarvamTTSService:
    """Sarvam Bulbul TTS. The API answers with base64 WAV payloads."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        url: str = SARVAM_TTS_URL,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._url = url
        self.last_metadata: SynthesisMetadata | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.tts_timeout_seconds)
        return self._client

    async def synthesize(self, text: str, *, voice_id: str) -> SynthesizedAudio:
        """Synthesize text with a Sarvam speaker."""
        if not self._settings.sarvam_api_key:
            raise TTSConnectionError("Sarvam API key is not configured")

        start_time = time.perf_counter()
        try:
            response = await self.client.post(
                self._url,
                headers={
                    "Content-Type": "application/json",
                    "api-subscription-key": self._settings.sarvam_api_key.get_secret_value(),
                },
                json={
                    "inputs": [text],
                    "target_language_code": self._settings.sarvam_language_code,
                    "speaker": voice_id.lower(),
                    "model": self._settings.sarvam_tts_model,
                    "enable_preprocessing": True,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Sarvam TTS transport error: {e}")
            raise TTSConnectionError(f"Sarvam TTS request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Sarvam TTS error: {response.status_code} - {response.text[:200]}")
            raise TTSSynthesisError(f"Sarvam API error: {response.status_code}")

        try:
            audios = response.json().get("audios") or []
        except ValueError as e:
            raise TTSSynthesisError("Sarvam TTS returned invalid JSON") from e

        if not audios:
            raise TTSSynthesisError("No audio data in Sarvam response")

        self.last_metadata = SynthesisMetadata(
            provider="sarvam",
            voice=voice_id,
            input_chars=len(text),
            total_synthesis_ms=(time.perf_counter() - start_time) * 1000,
        )
        # The browser plays a single clip, so only the first segment is used.
        return SynthesizedAudio(
            audio_b64=audios[0],
            format="wav",
            provider="sarvam",
            voice=voice_id,
            input_chars=len(text),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        return bool(self._settings.sarvam_api_key)
