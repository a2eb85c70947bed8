"""Application configuration using Pydantic Settings.

All configuration is loaded from environment variables (or a local .env file).
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
    groq_api_key: SecretStr = Field(description="Groq API key for the completion engine")
    deepgram_api_key: SecretStr = Field(description="Deepgram API key for transcription")
    plivo_auth_id: str = Field(description="Plivo Auth ID")
    plivo_auth_token: SecretStr = Field(description="Plivo Auth Token")
    elevenlabs_api_key: SecretStr | None = Field(
        default=None, description="ElevenLabs API key for realistic TTS"
    )

    # ==========================================================================
    # Database
    # ==========================================================================
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/voxdesk.db",
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
    public_base_url: str = Field(
        default="http://localhost:8000",
        description="Externally reachable base URL used in telephony callbacks",
    )

    # ==========================================================================
    # Transcription
    # ==========================================================================
    stt_model: str = Field(default="nova-2", description="Deepgram model name")
    stt_language: str = Field(default="en", description="Caller language code")

    # ==========================================================================
    # Speech Synthesis
    # ==========================================================================
    elevenlabs_voice_id: str = Field(
        default="21m00Tcm4TlvDq8ikWAM",
        description="Default ElevenLabs voice ID",
    )
    elevenlabs_model_id: str = Field(
        default="eleven_multilingual_v2",
        description="Default ElevenLabs model ID",
    )
    elevenlabs_output_format: str = Field(
        default="ulaw_8000",
        description="ElevenLabs output format (telephony-ready by default)",
    )
    edge_tts_voice: str = Field(
        default="en-US-AriaNeural",
        description="Edge TTS voice name",
    )
    edge_tts_enabled: bool = Field(
        default=False,
        description="Enable Edge TTS as fallback (unofficial API, may be unreliable)",
    )
    fallback_audio_path: str | None = Field(
        default=None,
        description="Pre-recorded audio played when synthesis fails",
    )

    # ==========================================================================
    # Conversation Defaults (used when a caller account has no override)
    # ==========================================================================
    default_completion_engine: str = Field(
        default="standard",
        description="Completion engine tier (standard, advanced) or raw model name",
    )
    default_temperature: float = Field(
        default=0.7, ge=0.0, le=1.0, description="Completion sampling temperature"
    )
    default_synthesis_engine: Literal["elevenlabs", "edge"] = Field(
        default="elevenlabs",
        description="Preferred synthesis engine",
    )
    default_voice: str | None = Field(
        default=None,
        description="Voice selector passed to the synthesis engine",
    )
    default_persona: str = Field(
        default=(
            "You are the virtual receptionist of a law firm. "
            "You answer calls politely and professionally."
        ),
        description="Persona instructions framing the assistant",
    )
    default_welcome_message: str = Field(
        default="Hello, thank you for calling. How can I help you today?",
        description="Greeting spoken when a call connects",
    )
    default_transfer_destination: str | None = Field(
        default=None,
        description="Phone number calls are transferred to",
    )

    # ==========================================================================
    # Timeouts (seconds)
    # ==========================================================================
    transcription_timeout: float = Field(default=5.0, description="Transcription call timeout")
    completion_timeout: float = Field(default=8.0, description="Completion call timeout")
    synthesis_timeout: float = Field(default=6.0, description="Synthesis call timeout")
    telephony_timeout: float = Field(default=5.0, description="Telephony API call timeout")
    persistence_timeout: float = Field(default=3.0, description="Store write timeout")

    # ==========================================================================
    # Call Limits
    # ==========================================================================
    max_consecutive_failures: int = Field(
        default=3,
        ge=1,
        description="Failed turns in a row before the call is escalated",
    )
    max_history_tokens: int = Field(
        default=1500,
        description="Token budget for conversation history sent to the engine",
    )
    completion_max_tokens: int = Field(
        default=500,
        description="Maximum tokens generated per reply",
    )
    max_concurrent_calls: int = Field(
        default=10,
        description="Maximum simultaneous calls handled by one process",
    )

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
