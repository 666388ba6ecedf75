"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # OpenAI (speech-to-text, text-to-speech and default LLM provider)
    openai_api_key: str | None = Field(default=None)
    openai_base_url: str | None = Field(
        default=None, description="Override for OpenAI-compatible gateways."
    )

    # LLM connectivity
    llm_provider: Literal["openai", "self_hosted_vllm"] = Field(default="openai")
    llm_endpoint: str | None = Field(
        default=None, description="HTTP endpoint for the self-hosted inference server."
    )
    llm_api_key: str | None = Field(default=None)
    llm_model: str = Field(default="gpt-3.5-turbo")
    advice_max_tokens_stream: int = Field(
        default=150,
        ge=1,
        description="Reply token cap for the live streaming path.",
    )
    advice_max_tokens_recording: int = Field(
        default=300,
        ge=1,
        description="Reply token cap for the record-and-respond path.",
    )

    # Speech recognition
    transcription_model: str = Field(default="whisper-1")
    transcription_language: str = Field(default="en")
    transcription_realtime_url: str = Field(
        default="wss://api.openai.com/v1/realtime?intent=transcription"
    )
    transcription_input_format: Literal["g711_ulaw", "g711_alaw", "pcm16"] = Field(
        default="g711_ulaw",
        description="Codec of inbound call audio. Twilio Media Streams deliver 8kHz mu-law.",
    )
    transcription_setup_timeout_seconds: float = Field(default=10.0, gt=0)
    transcription_silence_duration_ms: int = Field(default=500, ge=0)

    # Text to speech
    tts_model: str = Field(default="tts-1")
    tts_voice: str = Field(default="alloy")
    tts_response_format: Literal["mp3", "wav", "opus", "aac", "flac", "pcm"] = Field(
        default="mp3"
    )

    # Utterance aggregation
    utterance_word_threshold: int = Field(default=5, ge=0)
    utterance_max_chars: int = Field(
        default=2000,
        ge=1,
        description="Forces a flush when the buffer grows past this many characters.",
    )

    # Backoff profiles. "slow" guards audio and LLM calls, "fast" guards
    # telephony provider requests.
    slow_backoff_base_ms: float = Field(default=100.0, ge=0)
    slow_backoff_cap_ms: float = Field(default=2000.0, ge=0)
    slow_backoff_max_attempts: int = Field(default=5, ge=1)
    fast_backoff_base_ms: float = Field(default=50.0, ge=0)
    fast_backoff_cap_ms: float = Field(default=1000.0, ge=0)
    fast_backoff_max_attempts: int = Field(default=3, ge=1)

    # Twilio (recording download)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    recording_fetch_timeout_seconds: float = Field(default=30.0, gt=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
