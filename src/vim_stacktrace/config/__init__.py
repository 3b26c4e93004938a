"""Configuration loading and validation."""

from .loader import load_config
from .schema import (
    ChannelConfig,
    FileLoggingConfig,
    LoggingConfig,
    SourceConfig,
    StacktraceConfig,
)

__all__ = [
    # Loader
    "load_config",
    # Root config
    "StacktraceConfig",
    # Sections
    "ChannelConfig",
    "SourceConfig",
    "LoggingConfig",
    "FileLoggingConfig",
]
