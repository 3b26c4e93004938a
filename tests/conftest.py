"""Shared test fixtures for vim-stacktrace."""

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from vim_stacktrace.utils.async_helpers import IntrospectionError

# Script sourced by the integration-style stack builder tests. Line numbers
# of the definitions: F 2, s:test 7, s:d.f 12, s:test2 16.
SAMPLE_SCRIPT = """
function! F() abort
  let l:G = {-> s:test()}
  return l:G()
endfunction

function! s:test() abort
  return s:d.f()
endfunction

let s:d = {}
function! s:d.f() abort
  return s:test2()
endfunction

function! s:test2() abort
  return printf('%s[%s]', expand('<sfile>'), expand('<slnum>'))
endfunction
"""

SAMPLE_MSGHIST = """
Error detected while processing function Main[2]..<SNR>96_test[1]..<SNR>96_test2[1]..F:
line    3:
E121: Undefined variable: err1
E15: Invalid expression: err1
line    4:
E121: Undefined variable: err2
E15: Invalid expression: err2
Error detected while processing /path/to/file.vim:
line   33:
E605: Exception not caught: 0
"""


def function_dump(
    signature: str,
    body: Sequence[str],
    path: str | None = None,
    line: int | None = None,
) -> str:
    """Render a function the way execute(':verbose function ...') does."""
    lines = ["", f"   function {signature}"]
    if path is not None:
        last_set = f"\tLast set from {path}"
        if line is not None:
            last_set += f" line {line}"
        lines.append(last_set)
    for i, text in enumerate(body, start=1):
        lines.append(f"{i:<3}{text}")
    lines.append("   endfunction")
    return "\n".join(lines)


class FakeRuntime:
    """In-memory ScriptRuntime and Selector."""

    def __init__(
        self,
        dumps: dict[str, str] | None = None,
        sfile: str = "",
        msghist: str = "",
        selection: int = 0,
    ) -> None:
        self.dumps = dumps or {}
        self.sfile = sfile
        self.msghist = msghist
        self.selection = selection
        self.described: list[str] = []
        self.candidates: list[str] = []

    def expand(self, expression: str) -> str:
        if expression != "<sfile>":
            raise IntrospectionError(f"unsupported expression: {expression}")
        return self.sfile

    def describe_function(self, name: str) -> str:
        self.described.append(name)
        if name not in self.dumps:
            raise IntrospectionError(f"E123: Undefined function: {name}")
        return self.dumps[name]

    def message_history(self) -> str:
        return self.msghist

    def select(self, candidates: Sequence[str]) -> int:
        self.candidates = list(candidates)
        return self.selection


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    """Create a runtime that knows no functions."""
    return FakeRuntime()


@pytest.fixture
def sample_msghist() -> str:
    """Return message history holding three errors."""
    return SAMPLE_MSGHIST


@pytest.fixture
def sample_script(tmp_path: Path) -> Path:
    """Write the sample Vim script to a temporary file."""
    path = tmp_path / "sample.vim"
    path.write_text(SAMPLE_SCRIPT)
    return path


@pytest.fixture
def sample_runtime(sample_script: Path) -> FakeRuntime:
    """Create a runtime that has sourced the sample script as <SNR>2_."""
    path = str(sample_script)
    return FakeRuntime(
        dumps={
            "F": function_dump(
                "F() abort",
                ["  let l:G = {-> s:test()}", "  return l:G()"],
                path=path,
            ),
            "<SNR>2_test": function_dump("<SNR>2_test() abort", ["  return s:d.f()"], path=path),
            "{1}": function_dump("1() dict abort", ["  return s:test2()"], path=path),
            "<SNR>2_test2": function_dump(
                "<SNR>2_test2() abort",
                ["  return printf('%s[%s]', expand('<sfile>'), expand('<slnum>'))"],
                path=path,
            ),
        }
    )


@pytest.fixture
def make_dump():
    """Return the function dump renderer."""
    return function_dump


@pytest.fixture
def make_runtime():
    """Return the FakeRuntime class."""
    return FakeRuntime


class FakeVim:
    """Vim side of a JSON channel, backed by in-memory streams.

    Replies to "call" commands with results from `replies`, keyed by
    function name.
    """

    def __init__(self, replies: dict[str, Any] | None = None) -> None:
        self.reader = asyncio.StreamReader()
        self.written = bytearray()
        self.closed = False
        self.replies = replies or {}
        self._answered = 0

    # ChannelWriter
    def write(self, data: bytes) -> None:
        self.written.extend(data)

    async def drain(self) -> None:
        await asyncio.sleep(0)

    def close(self) -> None:
        self.closed = True

    def messages(self) -> list[Any]:
        """Every message the channel has written so far."""
        return [json.loads(line) for line in self.written.decode().splitlines() if line]

    def feed(self, *payloads: Any) -> None:
        """Deliver messages to the channel."""
        for payload in payloads:
            self.reader.feed_data(json.dumps(payload).encode() + b"\n")

    async def wait_for_messages(self, count: int, timeout: float = 2.0) -> list[Any]:
        """Wait until the channel has written at least count messages."""
        deadline = asyncio.get_running_loop().time() + timeout
        while len(self.messages()) < count:
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError(f"expected {count} messages, got {self.messages()}")
            await asyncio.sleep(0.005)
        return self.messages()

    async def serve(self) -> None:
        """Answer call commands until cancelled."""
        while True:
            messages = self.messages()
            for message in messages[self._answered :]:
                if message[0] == "call":
                    _, func, _args, msg_id = message
                    self.feed([msg_id, self.replies.get(func, "ERROR")])
            self._answered = len(messages)
            await asyncio.sleep(0.005)


@pytest.fixture
async def fake_vim() -> FakeVim:
    """Create the Vim side of a channel on the running loop."""
    return FakeVim()
