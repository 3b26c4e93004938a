"""Concrete implementations of runtime and source interfaces."""

from .source.filesystem import LocalSourceReader
from .source.indexer import VimScriptFunctionIndexer
from .vim.channel import VimChannel, open_stdio_channel
from .vim.runtime import ChannelRuntime

__all__ = [
    "ChannelRuntime",
    "LocalSourceReader",
    "VimChannel",
    "VimScriptFunctionIndexer",
    "open_stdio_channel",
]
