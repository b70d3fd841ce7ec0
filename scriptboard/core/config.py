"""Application configuration using pydantic-settings."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via environment variables or a .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================================================
    # Application Settings
    # ========================================================================
    app_name: str = Field(default="Scriptboard", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    log_level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # ========================================================================
    # Language Model Settings
    # ========================================================================
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key (LLM, moderation and TTS)")
    openai_model: str = Field(default="gpt-4o-mini", description="Chat completion model")
    llm_temperature: float = Field(default=0.3, description="Sampling temperature for completions")
    llm_max_retries: int = Field(default=3, description="Attempts per completion call")
    llm_retry_base_delay: float = Field(
        default=1.0, description="Base retry delay in seconds (doubles after every failed attempt)"
    )
    moderation_failure_policy: Literal["allow", "block"] = Field(
        default="allow",
        description="What to do when the moderation classifier itself fails: 'allow' (warn and continue) or 'block'",
    )

    # ========================================================================
    # Stock Footage Settings
    # ========================================================================
    pexels_api_key: Optional[str] = Field(default=None, description="Pexels API key")
    pixabay_api_key: Optional[str] = Field(default=None, description="Pixabay API key")
    stock_request_timeout: float = Field(default=15.0, description="Timeout for stock provider requests (seconds)")
    stock_results_per_page: int = Field(default=5, description="Results requested per provider per query")
    stock_top_n: int = Field(default=3, description="Ranked suggestions kept per segment")
    stock_max_queries: int = Field(default=3, description="Search queries used per segment")
    stock_include_photos: bool = Field(
        default=True, description="Fall back to photos when a provider returns fewer than 3 videos"
    )
    asset_cache_ttl_days: int = Field(default=90, description="Stock asset cache lifetime in days")
    asset_segment_delay: float = Field(
        default=0.5, description="Delay between segments during asset search (seconds)"
    )

    # ========================================================================
    # TTS (Text-to-Speech) Settings
    # ========================================================================
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API key")
    elevenlabs_base_url: str = Field(default="https://api.elevenlabs.io/v1", description="ElevenLabs API base URL")
    elevenlabs_model: str = Field(default="eleven_turbo_v2", description="ElevenLabs model id")
    elevenlabs_output_format: str = Field(default="mp3_44100_128", description="ElevenLabs output format")
    openai_tts_model: str = Field(default="tts-1", description="OpenAI TTS model ('tts-1' or 'tts-1-hd')")
    tts_request_timeout: float = Field(default=30.0, description="Timeout per synthesis request (seconds)")
    tts_max_attempts: int = Field(default=3, description="Attempts per speech provider")
    tts_initial_delay: float = Field(default=1.0, description="First retry delay for synthesis (seconds)")
    tts_max_delay: float = Field(default=10.0, description="Retry delay cap for synthesis (seconds)")
    tts_backoff_multiplier: float = Field(default=2.0, description="Retry delay multiplier for synthesis")
    tts_max_concurrent: int = Field(default=5, description="Maximum concurrent synthesis jobs in a batch")
    tts_cache_ttl_days: int = Field(default=30, description="TTS cache lifetime in days")
    tts_bucket: str = Field(default="tts-audio", description="Object storage bucket for synthesized audio")
    tts_fallback_bitrate: int = Field(
        default=128000, description="Bitrate (bits/s) used to estimate duration when probing fails"
    )

    # ========================================================================
    # Pipeline Settings
    # ========================================================================
    auto_optimize_max_attempts: int = Field(default=3, description="Attempts for the auto-optimize loop")
    llm_segment_delay: float = Field(
        default=0.0, description="Delay between per-segment LLM calls in Pipeline A (seconds)"
    )

    # ========================================================================
    # Storage Settings
    # ========================================================================
    storage_path: str = Field(default="storage/projects", description="Storage path for project documents")
    cache_db_path: str = Field(default="storage/cache.db", description="SQLite file for the asset and TTS caches")
    object_storage_path: str = Field(default="storage/objects", description="Root directory for stored objects")
    object_storage_base_url: str = Field(
        default="http://localhost:8000/media", description="Public URL prefix for stored objects"
    )


# Global settings instance
settings = Settings()
