"""ScriptRuntime and Selector implementation backed by a Vim channel.

The core runs on worker threads and queries Vim synchronously. Each query
is scheduled as a channel call on the event loop owning the channel and the
worker blocks until Vim replies.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import structlog

from vim_stacktrace.utils.async_helpers import IntrospectionError

if TYPE_CHECKING:
    from vim_stacktrace.adapters.vim.channel import VimChannel

log = structlog.get_logger()


class ChannelRuntime:
    """Vim introspection through channel calls.

    Implements both ScriptRuntime and Selector.

    Example:
        runtime = ChannelRuntime(channel, asyncio.get_running_loop())
        sfile = await asyncio.to_thread(runtime.expand, "<sfile>")
    """

    def __init__(self, channel: VimChannel, loop: asyncio.AbstractEventLoop) -> None:
        """Initialize the ChannelRuntime.

        Args:
            channel: Connected Vim channel
            loop: Event loop the channel runs on
        """
        self._channel = channel
        self._loop = loop

    def expand(self, expression: str) -> str:
        return self._call_str("expand", expression)

    def describe_function(self, name: str) -> str:
        return self._call_str("execute", f":verbose function {name}")

    def message_history(self) -> str:
        return self._call_str("execute", ":message")

    def select(self, candidates: Sequence[str]) -> int:
        return self._call_int("inputlist", list(candidates))

    def _call(self, func: str, *args: Any) -> Any:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            raise RuntimeError("ChannelRuntime cannot be used from its event loop thread")

        log.debug("runtime_call", func=func)
        future = asyncio.run_coroutine_threadsafe(self._channel.call(func, *args), self._loop)
        return future.result()

    def _call_str(self, func: str, *args: Any) -> str:
        result = self._call(func, *args)
        if not isinstance(result, str):
            raise IntrospectionError(f"{func}({args!r}) is not string: {result!r}")
        return result

    def _call_int(self, func: str, *args: Any) -> int:
        result = self._call(func, *args)
        # JSON numbers may arrive as floats
        if isinstance(result, bool) or not isinstance(result, (int, float)):
            raise IntrospectionError(f"{func}({args!r}) is not number: {result!r}")
        return int(result)
