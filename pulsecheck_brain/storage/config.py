"""
Database configuration for PulseCheck Brain.

Escalation records and conversation safety flags live in PostgreSQL.
Configuration is loaded from PULSE_DB_* environment variables.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """PostgreSQL connection settings for the escalation store."""

    model_config = SettingsConfigDict(
        env_prefix="PULSE_DB_",
        env_file=".env",
        extra="ignore",
    )

    enabled: bool = Field(default=True, description="Enable escalation persistence")
    run_migrations: bool = Field(default=True, description="Apply pending SQL migrations on startup")

    host: str = Field(default="localhost", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    database: str = Field(default="pulsecheck", description="Database name")
    user: str = Field(default="pulsecheck", description="Database user")
    password: str = Field(default="", description="Database password")
    url: Optional[str] = Field(
        default=None,
        description="Full postgresql:// DSN (overrides host/port/database/user/password)",
    )

    min_pool_size: int = Field(default=1, ge=1, description="Minimum connections in pool")
    max_pool_size: int = Field(default=5, ge=1, description="Maximum connections in pool")
    connect_timeout: float = Field(default=10.0, gt=0, description="Connection timeout in seconds")
    # Escalation queries are single-row writes and small indexed reads
    command_timeout: float = Field(default=10.0, gt=0, description="Per-statement timeout in seconds")
    application_name: str = Field(default="pulsecheck-brain", description="Reported in pg_stat_activity")

    @property
    def dsn(self) -> str:
        """Build PostgreSQL connection string."""
        if self.url:
            return self.url
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


# Singleton settings instance
db_settings = DatabaseConfig()
