"""Speech-to-Text services (Sarvam) and WAV framing."""

from src.services.stt.exceptions import TranscriptionError
from src.services.stt.protocol import STTService, TranscriptResult
from src.services.stt.sarvam import SarvamSTTService
from src.services.stt.wav import pcm16_to_wav, pcm_duration_seconds

__all__ = [
    "SarvamSTTService",
    "STTService",
    "TranscriptResult",
    "TranscriptionError",
    "pcm16_to_wav",
    "pcm_duration_seconds",
]
