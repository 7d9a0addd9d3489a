"""Text-to-Speech services (ElevenLabs, Sarvam).

Provides TTS capabilities for the browser voice agent:
- ElevenLabsTTSService: Default provider, MP3 output
- SarvamTTSService: Indic speakers, WAV output
- TTSRouter: Picks the provider from the session's voice selector
"""

from src.services.tts.elevenlabs import ElevenLabsTTSService
from src.services.tts.exceptions import (
    TTSConnectionError,
    TTSServiceError,
    TTSSynthesisError,
)
from src.services.tts.protocol import SynthesisMetadata, SynthesizedAudio, TTSService
from src.services.tts.router import SARVAM_VOICES, TTSRouter, select_voice_provider
from src.services.tts.sarvam import SarvamTTSService

__all__ = [
    # Services
    "ElevenLabsTTSService",
    "SarvamTTSService",
    "TTSRouter",
    # Protocol
    "TTSService",
    # Data types
    "SynthesizedAudio",
    "SynthesisMetadata",
    # Routing
    "SARVAM_VOICES",
    "select_voice_provider",
    # Exceptions
    "TTSServiceError",
    "TTSSynthesisError",
    "TTSConnectionError",
]
