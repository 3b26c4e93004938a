"""Utility functions and helpers.

This module provides various utilities for vim-stacktrace:
- async_helpers: Exception hierarchy, timeouts
- locks: Reader/writer lock for shared caches
- logging: Structured logging configuration
"""

from vim_stacktrace.utils.async_helpers import (
    ChannelClosedError,
    ChannelError,
    ChannelTimeoutError,
    IntrospectionError,
    InvalidSelectionError,
    InvalidThrowpointError,
    RequestError,
    SourceReadError,
    StacktraceError,
    UnresolvableFrameError,
    with_timeout,
)
from vim_stacktrace.utils.locks import ReadWriteLock
from vim_stacktrace.utils.logging import (
    LogEventNames,
    LogFormat,
    LogLevel,
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    unbind_context,
)

__all__ = [
    # Errors
    "ChannelClosedError",
    "ChannelError",
    "ChannelTimeoutError",
    "IntrospectionError",
    "InvalidSelectionError",
    "InvalidThrowpointError",
    # Logging
    "LogEventNames",
    "LogFormat",
    "LogLevel",
    # Locks
    "ReadWriteLock",
    "RequestError",
    "SourceReadError",
    "StacktraceError",
    "UnresolvableFrameError",
    "bind_context",
    "clear_context",
    "configure_logging",
    "get_logger",
    "unbind_context",
    "with_timeout",
]
