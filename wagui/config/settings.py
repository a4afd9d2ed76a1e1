"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_url() -> str:
    """SQLite file under ./data, relative to the working directory."""
    data_dir = os.path.join(os.getcwd(), "data")
    return f"sqlite+aiosqlite:///{os.path.join(data_dir, 'wagui.db')}"


def _get_default_transcripts_root() -> str:
    return str(Path.home() / ".claude" / "projects")


class Settings(BaseSettings):
    """Server configuration loaded from WAGUI_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WAGUI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3099)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)
    log_file: Optional[str] = Field(default=None)
    # Empty means any origin; the UI is served from a different local port.
    cors_origins: str = Field(default="")
    max_request_bytes: int = Field(default=1048576)

    # Database
    database_url: str = Field(default_factory=_get_default_db_url)

    # SSE
    sse_backlog_limit: int = Field(default=50)
    sse_heartbeat_seconds: float = Field(default=15.0)
    subscriber_queue_size: int = Field(default=256)

    # Transcript follower
    transcripts_root: str = Field(default_factory=_get_default_transcripts_root)
    transcript_poll_interval_seconds: float = Field(default=0.5)

    # Completion gate
    lint_command: str = Field(default="pnpm lint")
    test_command: str = Field(default="pnpm test")
    command_timeout_seconds: float = Field(default=600.0)

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("transcript_poll_interval_seconds", "command_timeout_seconds")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
