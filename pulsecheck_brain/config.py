"""
Centralized configuration management using Pydantic Settings.

Configuration is loaded from environment variables with sensible defaults.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClassifierConfig(BaseSettings):
    """Safety classifier (LLM) configuration."""

    model_config = SettingsConfigDict(env_prefix="PULSE_CLASSIFIER_", env_file=".env", extra="ignore")

    base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI-compatible API base URL")
    api_key: Optional[str] = Field(default=None, description="API key (falls back to OPENAI_API_KEY)")
    model: str = Field(default="gpt-4o-mini", description="Model used for escalation classification")
    temperature: float = Field(default=0.1, ge=0.0, le=1.0, description="Sampling temperature (low = deterministic)")
    max_tokens: int = Field(default=500, ge=64, le=4096, description="Token ceiling for the classification response")
    request_timeout_seconds: float = Field(default=15.0, gt=0, description="httpx client timeout")
    hard_timeout_seconds: float = Field(default=20.0, gt=0, description="Hard ceiling for one classifier round-trip")


class EscalationConfig(BaseSettings):
    """Chat safety escalation configuration."""

    model_config = SettingsConfigDict(env_prefix="PULSE_ESCALATION_", env_file=".env", extra="ignore")

    enabled: bool = Field(default=True, description="Enable escalation classification of chat turns")
    history_window_days: int = Field(default=30, ge=1, le=365, description="Rolling window for recurrence detection")
    history_limit: int = Field(default=5, ge=1, le=50, description="Max recent incidents loaded per user")
    recent_message_limit: int = Field(default=5, ge=0, le=20, description="Prior turns rendered into the prompt")
    recurrence_threshold: int = Field(default=3, ge=1, le=20, description="Incidents in window that trigger the pattern alert")
    recurrence_floor_enabled: bool = Field(
        default=False,
        description="Raise tier 1 to tier 2 when the recurrence threshold is met (otherwise prompt-only)",
    )
    monitor_confidence_threshold: float = Field(
        default=0.8, ge=0.0, le=1.0,
        description="Tier 1 results above this confidence are marked should_escalate",
    )
    repository_timeout_seconds: float = Field(default=5.0, gt=0, description="Timeout for each repository read")
    queue_max_size: int = Field(default=256, ge=1, le=10000, description="Bounded queue size for classification jobs")
    worker_count: int = Field(default=2, ge=1, le=16, description="Concurrent classification workers")
    shutdown_timeout_seconds: float = Field(default=30.0, ge=0, description="Max time to drain the queue on shutdown")


class Settings(BaseSettings):
    """Application-wide settings."""

    model_config = SettingsConfigDict(
        env_prefix="PULSE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # General
    log_level: str = Field(default="INFO", description="Logging level")

    # Nested configs
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    escalation: EscalationConfig = Field(default_factory=EscalationConfig)


# Singleton settings instance
settings = Settings()
