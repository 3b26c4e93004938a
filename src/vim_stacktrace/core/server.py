"""Channel server that answers stacktrace requests from Vim.

This module implements the StacktraceServer class that serves as the main
loop of a vim-stacktrace job. It:
- Manages the channel lifecycle (connect, listen, disconnect)
- Runs requests on worker threads with concurrency control
- Handles graceful shutdown on signals (SIGTERM, SIGINT) and on EOF
- Provides observability through structured logging

Requests run on worker threads because answering one takes several
synchronous round-trips to Vim, which are served by the event loop while
the worker waits.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING, Any

import structlog

from vim_stacktrace.utils.logging import LogEventNames, bind_context, clear_context

if TYPE_CHECKING:
    from vim_stacktrace.adapters.vim.channel import VimChannel
    from vim_stacktrace.config.schema import StacktraceConfig
    from vim_stacktrace.core.request_handler import RequestHandler
    from vim_stacktrace.models.channel import ChannelMessage

log = structlog.get_logger()


class StacktraceServer:
    """Main loop coordinating the channel and the request handler.

    Responsibilities:
    - Route incoming channel messages to the request handler
    - Send replies for requests that expect one
    - Handle graceful startup and shutdown
    - Limit the number of requests running at once

    Example:
        server = StacktraceServer(config, channel, handler)
        await server.start()  # Blocks until EOF or a shutdown signal
    """

    def __init__(
        self,
        config: StacktraceConfig,
        channel: VimChannel,
        handler: RequestHandler,
    ) -> None:
        """Initialize the StacktraceServer.

        Args:
            config: Application configuration
            channel: Channel to Vim, not yet connected
            handler: Request handler
        """
        self._config = config
        self._channel = channel
        self._handler = handler

        # Concurrency control
        self._max_concurrent = config.channel.max_concurrent
        self._shutdown_timeout = config.channel.shutdown_timeout
        self._semaphore: asyncio.Semaphore | None = None
        self._active_tasks: set[asyncio.Task[None]] = set()

        # Lifecycle state
        self._running = False

        # Statistics
        self._requests_processed = 0
        self._errors_count = 0

    @property
    def is_running(self) -> bool:
        """Return True if the server is currently running."""
        return self._running

    @property
    def stats(self) -> dict[str, int]:
        """Return processing statistics."""
        return {
            "requests_processed": self._requests_processed,
            "errors_count": self._errors_count,
            "active_tasks": len(self._active_tasks),
        }

    async def start(self, handle_signals: bool = True) -> None:
        """Start the server and answer requests until the channel closes.

        Args:
            handle_signals: Install SIGTERM/SIGINT handlers that stop the server
        """
        if self._running:
            log.warning("server_already_running")
            return

        log.info(LogEventNames.SERVER_STARTING, config=self._config.model_dump(mode="json"))

        self._semaphore = asyncio.Semaphore(self._max_concurrent)
        await self._channel.connect()

        if handle_signals:
            self._setup_signal_handlers()

        self._running = True
        log.info(LogEventNames.SERVER_STARTED)

        try:
            await self._listen_for_messages()
        finally:
            # The listener ends on EOF as well as after stop()
            await self.stop()

    async def stop(self) -> None:
        """Gracefully stop the server.

        This method:
        1. Waits for in-flight requests to complete (with timeout)
        2. Disconnects the channel, which ends the listener
        """
        if not self._running:
            return
        self._running = False

        log.info(LogEventNames.SERVER_STOPPING, active_tasks=len(self._active_tasks))
        await self._wait_for_tasks()
        await self._cleanup()

        log.info(
            LogEventNames.SERVER_STOPPED,
            requests_processed=self._requests_processed,
            errors=self._errors_count,
        )

    async def process_message(self, message: ChannelMessage) -> None:
        """Answer a single channel message.

        The handler runs on a worker thread. Failures are reported to Vim as
        an error object and never end the server.

        Args:
            message: Request or notification from Vim
        """
        if not self._semaphore:
            return

        async with self._semaphore:
            bind_context(msg_id=message.msg_id)
            try:
                log.debug(LogEventNames.REQUEST_RECEIVED)
                try:
                    reply = await asyncio.to_thread(self._handler.respond, message.body)
                except Exception as e:
                    log.exception(LogEventNames.REQUEST_ERROR, error=str(e))
                    reply = {"error": f"internal error: {e}"}

                self._requests_processed += 1
                if _is_error(reply):
                    self._errors_count += 1

                if message.expects_reply:
                    try:
                        await self._channel.send(message.msg_id, reply)
                    except (ConnectionError, OSError) as e:
                        log.warning("reply_not_sent", error=str(e))
                log.debug(LogEventNames.REQUEST_COMPLETED)
            finally:
                clear_context()

    async def _listen_for_messages(self) -> None:
        """Dispatch incoming messages until the channel closes."""
        async for message in self._channel.listen():
            task = asyncio.create_task(
                self.process_message(message),
                name=f"request_{message.msg_id}",
            )
            self._active_tasks.add(task)
            task.add_done_callback(self._active_tasks.discard)

    async def _wait_for_tasks(self) -> None:
        """Wait for active tasks to complete with timeout."""
        current = asyncio.current_task()
        tasks = {task for task in self._active_tasks if task is not current}
        if not tasks:
            return

        log.info("waiting_for_active_tasks", count=len(tasks))

        done, pending = await asyncio.wait(tasks, timeout=self._shutdown_timeout or None)
        if pending:
            log.warning("cancelling_pending_tasks", count=len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        log.info("tasks_completed", completed=len(done), cancelled=len(pending))

    async def _cleanup(self) -> None:
        """Clean up resources."""
        log.debug("cleaning_up_resources")
        try:
            await self._channel.disconnect()
        except OSError as e:
            log.warning("channel_disconnect_error", error=str(e))

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(
                sig,
                lambda s: asyncio.create_task(self._handle_signal(s)),
                sig,
            )
            log.debug("signal_handler_registered", signal=sig.name)

    async def _handle_signal(self, sig: signal.Signals) -> None:
        """Handle shutdown signal.

        Args:
            sig: Signal that was received
        """
        log.info("received_signal", signal=sig.name)
        await self.stop()


def _is_error(reply: Any) -> bool:
    return isinstance(reply, dict) and set(reply) == {"error"}
