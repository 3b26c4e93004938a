"""Pydantic models for configuration schema."""

import codecs
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ChannelConfig(BaseModel):
    """Vim channel configuration."""

    call_timeout: float = Field(10.0, gt=0.0, le=300.0, description="Seconds to wait for Vim")
    max_concurrent: int = Field(4, ge=1, le=32, description="Max concurrent requests")
    shutdown_timeout: float = Field(5.0, ge=0.0, le=60.0)


class SourceConfig(BaseModel):
    """Script source configuration."""

    encoding: str = "utf-8"
    home_dir: Path | None = None  # defaults to the user's home directory

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the encoding is known to Python."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v


class FileLoggingConfig(BaseModel):
    """File logging configuration."""

    enabled: bool = False
    path: Path = Path("vim-stacktrace.log")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "console"] = "json"
    file: FileLoggingConfig = FileLoggingConfig()


class StacktraceConfig(BaseSettings):
    """Root configuration for vim-stacktrace."""

    channel: ChannelConfig = ChannelConfig()
    source: SourceConfig = SourceConfig()
    logging: LoggingConfig = LoggingConfig()

    model_config = SettingsConfigDict(
        env_prefix="VIM_STACKTRACE_",
        env_file=".env",
        env_nested_delimiter="__",
        extra="ignore",
    )
