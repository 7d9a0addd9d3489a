"""Tests for WAV framing and the Sarvam STT client."""

import struct

import httpx
import pytest

from src.services.stt.exceptions import TranscriptionError
from src.services.stt.sarvam import SarvamSTTService
from src.services.stt.wav import WAV_HEADER_SIZE, pcm16_to_wav, pcm_duration_seconds


class TestWav:
    def test_header_layout(self):
        pcm = bytes(range(200)) * 16  # 3200 bytes
        wav = pcm16_to_wav(pcm)

        assert len(wav) == WAV_HEADER_SIZE + len(pcm)
        assert wav[0:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert wav[12:16] == b"fmt "
        assert wav[36:40] == b"data"
        assert struct.unpack_from("<I", wav, 4)[0] == 36 + len(pcm)
        assert struct.unpack_from("<I", wav, 40)[0] == len(pcm)
        assert wav[WAV_HEADER_SIZE:] == pcm

    def test_format_fields(self):
        wav = pcm16_to_wav(b"\x00\x00" * 10, sample_rate=16000)

        fmt_size, fmt_code, channels, rate, byte_rate, block_align, bits = struct.unpack_from(
            "<IHHIIHH", wav, 16
        )
        assert (fmt_size, fmt_code, channels) == (16, 1, 1)
        assert rate == 16000
        assert byte_rate == 32000
        assert block_align == 2
        assert bits == 16

    def test_empty_pcm(self):
        assert len(pcm16_to_wav(b"")) == WAV_HEADER_SIZE

    def test_duration(self):
        assert pcm_duration_seconds(b"\x00" * 32000) == 1.0
        assert pcm_duration_seconds(16000) == 0.5


def sarvam_service(settings, handler) -> SarvamSTTService:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SarvamSTTService(settings=settings, client=client)


class TestSarvamSTT:
    @pytest.mark.asyncio
    async def test_transcribe_posts_wav(self, settings):
        seen: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["key"] = request.headers["api-subscription-key"]
            seen["body"] = request.content
            return httpx.Response(200, json={"transcript": "hello there", "language_code": "en-IN"})

        service = sarvam_service(settings, handler)
        wav = pcm16_to_wav(b"\x01\x00" * 1600)

        result = await service.transcribe(wav)

        assert result.text == "hello there"
        assert result.language_code == "en-IN"
        assert result.audio_bytes == len(wav)
        assert seen["key"] == "test-sarvam-key"
        assert b"saarika" in seen["body"]
        assert b"RIFF" in seen["body"]
        await service.close()

    @pytest.mark.asyncio
    async def test_missing_transcript_is_empty(self, settings):
        service = sarvam_service(settings, lambda request: httpx.Response(200, json={}))

        result = await service.transcribe(pcm16_to_wav(b""))

        assert result.text == ""
        await service.close()

    @pytest.mark.asyncio
    async def test_http_error_raises(self, settings):
        service = sarvam_service(settings, lambda request: httpx.Response(500, text="boom"))

        with pytest.raises(TranscriptionError) as exc_info:
            await service.transcribe(pcm16_to_wav(b""))

        assert exc_info.value.status_code == 500
        await service.close()

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        service = sarvam_service(settings, handler)

        with pytest.raises(TranscriptionError):
            await service.transcribe(pcm16_to_wav(b""))
        await service.close()

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, settings_factory):
        service = SarvamSTTService(settings=settings_factory(sarvam_api_key=None))

        with pytest.raises(TranscriptionError):
            await service.transcribe(pcm16_to_wav(b""))
        assert await service.health_check() is False
