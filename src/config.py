"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables.
Only GROQ_API_KEY is required; every other provider key is optional.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ==========================================================================
    # API Keys
    # ==========================================================================
    groq_api_key: SecretStr = Field(description="Groq API key for LLM")
    sarvam_api_key: SecretStr | None = Field(
        default=None, description="Sarvam API key for STT and Indic TTS voices"
    )
    elevenlabs_api_key: SecretStr | None = Field(
        default=None, description="ElevenLabs API key for default TTS"
    )
    google_sheets_access_token: SecretStr | None = Field(
        default=None, description="OAuth bearer token for the Google Sheets API"
    )

    # ==========================================================================
    # Database
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/voicedesk.db",
        description="SQLAlchemy async database URL",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # ==========================================================================
    # Voice Activity Detection
    # ==========================================================================
    vad_silence_threshold: float = Field(
        default=500.0,
        description="RMS amplitude (0-32767) above which a chunk counts as speech",
    )
    vad_silence_window_ms: int = Field(
        default=1500,
        description="Silence duration that closes an utterance",
    )
    vad_min_utterance_bytes: int = Field(
        default=3200,
        description="Utterances shorter than this are discarded as noise (~100ms at 16kHz)",
    )
    input_sample_rate: int = Field(default=16000, description="Browser PCM sample rate")

    # ==========================================================================
    # Dialog
    # ==========================================================================
    default_llm_model: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model used when the agent does not configure one",
    )
    extraction_model: str = Field(
        default="llama-3.1-8b-instant",
        description="Model used for tool parameter extraction",
    )
    max_history_turns: int = Field(default=20, description="Conversation sliding window")
    max_tool_iterations: int = Field(
        default=5,
        description="Maximum tool executions inside a single dialog turn",
    )
    default_agent_prompt: str = Field(
        default="You are a helpful AI assistant.",
        description="System prompt when no agent or identity is supplied",
    )
    greeting_text: str = Field(
        default="Hello! How can I help you today?",
        description="Greeting when the agent does not configure one",
    )
    greeting_delay_ms: int = Field(default=500, description="Delay before the greeting")
    busy_policy: Literal["drop", "queue"] = Field(
        default="drop",
        description="What to do with an utterance that arrives while a turn is in flight",
    )

    # ==========================================================================
    # TTS Configuration
    # ==========================================================================
    default_voice_id: str = Field(
        default="21m00Tcm4TlvDq8ikWAM",
        description="Default ElevenLabs voice ID",
    )
    elevenlabs_model_id: str = Field(
        default="eleven_multilingual_v2",
        description="Default ElevenLabs model ID",
    )
    sarvam_tts_model: str = Field(default="bulbul:v2", description="Sarvam TTS model")
    sarvam_language_code: str = Field(default="en-IN", description="Sarvam target language")
    sarvam_stt_model: str = Field(default="saarika:v2.5", description="Sarvam STT model")

    # ==========================================================================
    # Timeouts (seconds)
    # ==========================================================================
    stt_timeout_seconds: float = Field(default=10.0)
    llm_timeout_seconds: float = Field(default=15.0)
    tts_timeout_seconds: float = Field(default=15.0)
    tool_timeout_seconds: float = Field(default=10.0)

    # ==========================================================================
    # Call Limits & Billing
    # ==========================================================================
    max_concurrent_sessions: int = Field(
        default=100, description="Registry capacity across all connections"
    )
    call_start_min_balance: float = Field(
        default=0.10, description="Minimum wallet balance required to start a call"
    )
    stt_cost_per_minute: float = Field(default=0.006)
    tts_cost_per_1k_chars: float = Field(default=0.03)
    llm_cost_per_1k_input_tokens: float = Field(default=0.0006)
    llm_cost_per_1k_output_tokens: float = Field(default=0.0008)

    # ==========================================================================
    # Derived Properties
    # ==========================================================================
    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Use dependency injection in FastAPI:
        settings: Settings = Depends(get_settings)
    """
    return Settings()  # type: ignore[call-arg]  # loads from env
