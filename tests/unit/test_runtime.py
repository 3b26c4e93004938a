"""Tests for ChannelRuntime, the synchronous bridge to a Vim channel."""

import asyncio
import contextlib
from collections.abc import AsyncIterator

import pytest

from vim_stacktrace.adapters.vim.channel import VimChannel
from vim_stacktrace.adapters.vim.runtime import ChannelRuntime
from vim_stacktrace.utils.async_helpers import IntrospectionError


@pytest.fixture
async def runtime(fake_vim) -> AsyncIterator[ChannelRuntime]:
    """Create a runtime whose Vim answers calls from fake_vim.replies."""
    channel = VimChannel(fake_vim.reader, fake_vim, call_timeout=2.0)
    await channel.connect()
    server = asyncio.create_task(fake_vim.serve())
    yield ChannelRuntime(channel, asyncio.get_running_loop())
    server.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await server
    await channel.disconnect()


class TestChannelRuntime:
    """Test runtime queries issued from worker threads."""

    @pytest.mark.asyncio
    async def test_expand(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["expand"] = "function F[1]..G"

        assert await asyncio.to_thread(runtime.expand, "<sfile>") == "function F[1]..G"
        assert fake_vim.messages()[0][:3] == ["call", "expand", ["<sfile>"]]

    @pytest.mark.asyncio
    async def test_describe_function(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["execute"] = "\n   function F()\n1    return 1\n   endfunction"

        dump = await asyncio.to_thread(runtime.describe_function, "<SNR>2_test")

        assert "function F()" in dump
        assert fake_vim.messages()[0][:3] == ["call", "execute", [":verbose function <SNR>2_test"]]

    @pytest.mark.asyncio
    async def test_message_history(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["execute"] = "\nmessages"

        assert await asyncio.to_thread(runtime.message_history) == "\nmessages"
        assert fake_vim.messages()[0][2] == [":message"]

    @pytest.mark.asyncio
    async def test_select(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["inputlist"] = 2

        assert await asyncio.to_thread(runtime.select, ["1. a", "2. b"]) == 2
        assert fake_vim.messages()[0][2] == [["1. a", "2. b"]]

    @pytest.mark.asyncio
    async def test_select_float_reply(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["inputlist"] = 1.0
        assert await asyncio.to_thread(runtime.select, ["1. a"]) == 1

    @pytest.mark.asyncio
    async def test_unknown_function(self, runtime: ChannelRuntime) -> None:
        """Test that Vim's error reply surfaces as IntrospectionError."""
        with pytest.raises(IntrospectionError):
            await asyncio.to_thread(runtime.describe_function, "Nope")

    @pytest.mark.asyncio
    async def test_wrong_result_types(self, runtime: ChannelRuntime, fake_vim) -> None:
        fake_vim.replies["expand"] = 27
        fake_vim.replies["inputlist"] = "two"

        with pytest.raises(IntrospectionError, match="not string"):
            await asyncio.to_thread(runtime.expand, "<sfile>")
        with pytest.raises(IntrospectionError, match="not number"):
            await asyncio.to_thread(runtime.select, ["1. a"])

    @pytest.mark.asyncio
    async def test_refuses_event_loop_thread(self, runtime: ChannelRuntime) -> None:
        """Test that a blocking query on the loop thread is rejected."""
        with pytest.raises(RuntimeError):
            runtime.expand("<sfile>")
