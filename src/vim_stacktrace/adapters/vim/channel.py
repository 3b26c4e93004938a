"""Vim JSON channel client.

This module implements the job side of Vim's JSON channel protocol
(:h channel-use, :h channel-commands) over a pair of streams, normally the
stdin/stdout of a job started with job_start(..., {'mode': 'json'}).

Messages from Vim:
- [{number}, {body}]: a request (number > 0) or a notification (number 0),
  or the reply to one of our commands (number < 0)

Messages to Vim:
- [{number}, {result}]: reply to a request
- ["call", {func}, {args}, {number}]: call a function, Vim replies [{number}, {result}]
- ["expr", {expr}, {number}]: evaluate an expression
- ["ex", {command}]: execute an Ex command, no reply
"""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import itertools
import json
import sys
from collections.abc import AsyncIterator
from typing import Any, Protocol

import structlog

from vim_stacktrace.models.channel import ChannelMessage
from vim_stacktrace.utils.async_helpers import (
    ChannelClosedError,
    IntrospectionError,
    with_timeout,
)
from vim_stacktrace.utils.logging import LogEventNames

log = structlog.get_logger()

# Reply Vim sends when a "call" or "expr" command fails
VIM_ERROR = "ERROR"


class ChannelWriter(Protocol):
    """The subset of asyncio.StreamWriter the channel writes through."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def close(self) -> None: ...


class VimChannel:
    """Bidirectional JSON channel to a Vim instance.

    Responsibilities:
    - Decode incoming messages, which may arrive split or batched
    - Route replies to the commands awaiting them
    - Queue requests from Vim for listen()
    - Serialize outgoing messages

    Example:
        channel = await open_stdio_channel(call_timeout=10)
        async for message in channel.listen():
            await channel.send(message.msg_id, {"ok": True})
    """

    READ_CHUNK_SIZE = 65536

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: ChannelWriter,
        call_timeout: float = 10.0,
    ) -> None:
        """Initialize the VimChannel.

        Args:
            reader: Stream of messages from Vim
            writer: Stream of messages to Vim
            call_timeout: Seconds to wait for the reply to a command
        """
        self._reader = reader
        self._writer = writer
        self._call_timeout = call_timeout

        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._json = json.JSONDecoder()
        self._buffer = ""

        self._ids = itertools.count(-1, -1)
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._incoming: asyncio.Queue[ChannelMessage | None] = asyncio.Queue()
        self._write_lock = asyncio.Lock()
        self._read_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def is_connected(self) -> bool:
        return self._read_task is not None and not self._closed

    async def connect(self) -> None:
        """Start reading messages from Vim."""
        if self._read_task is None:
            self._read_task = asyncio.create_task(self._read_loop(), name="vim_channel_reader")
            log.info(LogEventNames.CHANNEL_CONNECTED)

    async def disconnect(self) -> None:
        """Stop reading, fail pending commands and close the writer."""
        if self._read_task is not None and not self._read_task.done():
            self._read_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._read_task
        self._close_pending()
        self._writer.close()
        log.info(LogEventNames.CHANNEL_DISCONNECTED)

    async def listen(self) -> AsyncIterator[ChannelMessage]:
        """
        Yield requests and notifications from Vim until the channel closes.

        Yields:
            ChannelMessage: Each message that is not a reply to our commands
        """
        while True:
            message = await self._incoming.get()
            if message is None:
                return
            yield message

    async def send(self, msg_id: int, body: Any) -> None:
        """Reply to a request from Vim.

        Args:
            msg_id: Number of the request being answered
            body: JSON-serializable reply
        """
        await self._write([msg_id, body])

    async def call(self, func: str, *args: Any) -> Any:
        """Call a Vim function and wait for its result.

        Args:
            func: Function name, e.g. "expand"
            *args: JSON-serializable arguments

        Returns:
            The decoded return value

        Raises:
            IntrospectionError: If Vim reports an error
            ChannelTimeoutError: If no reply arrives in time
            ChannelClosedError: If the channel closes before the reply
        """
        msg_id = next(self._ids)
        return await self._request(["call", func, list(args), msg_id], msg_id, f"{func}()")

    async def expr(self, expression: str) -> Any:
        """Evaluate an expression in Vim and wait for its value."""
        msg_id = next(self._ids)
        return await self._request(["expr", expression, msg_id], msg_id, expression)

    async def ex(self, command: str) -> None:
        """Execute an Ex command in Vim without waiting."""
        await self._write(["ex", command])

    async def _request(self, payload: list[Any], msg_id: int, what: str) -> Any:
        if self._closed:
            raise ChannelClosedError("Channel is closed")

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[msg_id] = future
        try:
            await self._write(payload)
            result = await with_timeout(
                future,
                self._call_timeout,
                f"No reply from Vim for {what} after {self._call_timeout}s",
            )
        finally:
            self._pending.pop(msg_id, None)

        if result == VIM_ERROR:
            raise IntrospectionError(f"Vim failed to evaluate {what}")
        return result

    async def _write(self, payload: list[Any]) -> None:
        data = json.dumps(payload, ensure_ascii=False) + "\n"
        async with self._write_lock:
            self._writer.write(data.encode("utf-8"))
            await self._writer.drain()

    async def _read_loop(self) -> None:
        try:
            while True:
                chunk = await self._reader.read(self.READ_CHUNK_SIZE)
                if not chunk:
                    log.info(LogEventNames.CHANNEL_EOF)
                    break
                self._buffer += self._decoder.decode(chunk)
                for payload in self._drain_buffer():
                    self._dispatch(payload)
        finally:
            self._close_pending()

    def _drain_buffer(self) -> list[Any]:
        """Decode every complete JSON value in the buffer."""
        payloads = []
        while True:
            self._buffer = self._buffer.lstrip()
            if not self._buffer:
                break
            try:
                payload, end = self._json.raw_decode(self._buffer)
            except json.JSONDecodeError:
                newline = self._buffer.find("\n")
                if newline == -1:
                    break  # incomplete, wait for more data
                log.warning("malformed_channel_message", data=self._buffer[:newline][:200])
                self._buffer = self._buffer[newline + 1 :]
                continue
            payloads.append(payload)
            self._buffer = self._buffer[end:]
        return payloads

    def _dispatch(self, payload: Any) -> None:
        if not (
            isinstance(payload, list)
            and len(payload) == 2
            and isinstance(payload[0], int)
            and not isinstance(payload[0], bool)
        ):
            log.warning("unexpected_channel_message", payload=repr(payload)[:200])
            return

        msg_id, body = payload
        future = self._pending.get(msg_id)
        if future is not None:
            if not future.done():
                future.set_result(body)
            return
        if msg_id < 0:
            log.warning("unexpected_channel_reply", msg_id=msg_id)
            return
        self._incoming.put_nowait(ChannelMessage(msg_id=msg_id, body=body))

    def _close_pending(self) -> None:
        if self._closed:
            return
        self._closed = True
        for future in self._pending.values():
            if not future.done():
                future.set_exception(ChannelClosedError("Channel closed before reply"))
        self._incoming.put_nowait(None)


async def open_stdio_channel(call_timeout: float = 10.0) -> VimChannel:
    """Create a VimChannel over this process's stdin and stdout.

    Args:
        call_timeout: Seconds to wait for the reply to a command

    Returns:
        Unconnected VimChannel
    """
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return VimChannel(reader, writer, call_timeout=call_timeout)
