"""Sarvam STT service implementation (batch REST)."""

from __future__ import annotations

import time
from typing import Any

import httpx

from src.config import Settings, get_settings
from src.logging_config import get_logger
from src.services.stt.exceptions import TranscriptionError
from src.services.stt.protocol import TranscriptResult

logger: Any = get_logger(__name__)

SARVAM_STT_URL = "https://api.sarvam.ai/speech-to-text"


class SarvamSTTService:
    """Transcribes one utterance per request via Sarvam's Saarika model."""

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        *,
        url: str = SARVAM_STT_URL,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._url = url

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._settings.stt_timeout_seconds)
        return self._client

    async def transcribe(self, wav_bytes: bytes) -> TranscriptResult:
        """Send a WAV container and return the transcript.

        Raises:
            TranscriptionError: On missing credentials, HTTP errors or a
                malformed response.
        """
        if not self._settings.sarvam_api_key:
            raise TranscriptionError("Sarvam API key is not configured")

        start_time = time.perf_counter()
        try:
            response = await self.client.post(
                self._url,
                headers={
                    "api-subscription-key": self._settings.sarvam_api_key.get_secret_value(),
                },
                files={"file": ("utterance.wav", wav_bytes, "audio/wav")},
                data={
                    "model": self._settings.sarvam_stt_model,
                    "language_code": "unknown",
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Sarvam STT transport error: {e}")
            raise TranscriptionError(f"Sarvam STT request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"Sarvam STT error: {response.status_code} - {response.text[:200]}")
            raise TranscriptionError(
                f"Sarvam STT error: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise TranscriptionError("Sarvam STT returned invalid JSON") from e

        return TranscriptResult(
            text=str(payload.get("transcript") or ""),
            language_code=payload.get("language_code"),
            audio_bytes=len(wav_bytes),
            latency_ms=(time.perf_counter() - start_time) * 1000,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def health_check(self) -> bool:
        return bool(self._settings.sarvam_api_key)
