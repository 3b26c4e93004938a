"""Error types and async helpers shared across the stacktrace service.

This module provides:
- The exception hierarchy used by the core and the adapters
- A timeout wrapper for channel round-trips

Errors that prevent a required part of a result propagate to the caller.
Errors that only prevent enriching a single frame are absorbed where they
occur (see StackBuilder).
"""

from __future__ import annotations

import asyncio
import builtins
from collections.abc import Awaitable
from typing import TypeVar

import structlog

log = structlog.get_logger()

T = TypeVar("T")


# =============================================================================
# Custom Exceptions
# =============================================================================


class StacktraceError(Exception):
    """Base exception for all stacktrace errors."""


class InvalidThrowpointError(StacktraceError):
    """Throwpoint is neither a function chain nor a file position."""


class UnresolvableFrameError(StacktraceError):
    """Source information for a single frame could not be obtained."""


class SourceReadError(UnresolvableFrameError):
    """A source file could not be read."""


class InvalidSelectionError(StacktraceError):
    """Selected candidate index is out of range.

    Attributes:
        index: The index returned by the selection capability.
    """

    def __init__(self, message: str, index: int) -> None:
        super().__init__(message)
        self.index = index


class IntrospectionError(StacktraceError):
    """A runtime query failed or returned an unexpected value."""


class RequestError(StacktraceError):
    """A channel request body is malformed."""


class ChannelError(StacktraceError):
    """Base exception for channel transport failures."""


class ChannelClosedError(ChannelError):
    """The channel was closed while a call was in flight."""


class ChannelTimeoutError(ChannelError):
    """A channel call did not get a reply in time."""


# =============================================================================
# Timeout Utilities
# =============================================================================


async def with_timeout(
    coro: Awaitable[T],
    timeout: float,
    error_message: str | None = None,
) -> T:
    """Execute an awaitable with a timeout.

    Args:
        coro: The coroutine or future to await.
        timeout: Timeout in seconds.
        error_message: Custom error message for timeout.

    Returns:
        The result of the awaitable.

    Raises:
        ChannelTimeoutError: If the operation times out.
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except builtins.TimeoutError as e:
        msg = error_message or f"Operation timed out after {timeout}s"
        log.warning("operation_timeout", timeout=timeout)
        raise ChannelTimeoutError(msg) from e
